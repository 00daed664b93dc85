"""
openweather.py — Current weather and air quality from OpenWeather.

Two endpoints feed the risk normaliser:

    GET {base}/weather?lat=..&lon=..&appid=..         → WeatherObservation
    GET {base}/air_pollution?lat=..&lon=..&appid=..   → ordinal AQI (1–5)

Temperatures are requested in the provider default (Kelvin); conversion to
Celsius happens in the normaliser, never here.

Error Handling
==============
    No API key         → ExternalServiceError (caller degrades the signal)
    HTTP 4xx/5xx       → ExternalServiceError
    Transport/timeout  → ExternalServiceError
    Odd payload shape  → fields left as None (the normaliser defaults them)

No retries: the live assessment degrades a failing source to "absent"
instead of waiting on it.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

import httpx

from backend.app.core.config import settings
from backend.app.core.errors import ExternalServiceError
from backend.app.risk.signals import (
    WeatherObservation,
    parse_air_quality_ordinal,
    parse_weather_payload,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "openweather"


class WeatherProvider(Protocol):
    """Capability: current weather + air quality for a coordinate."""

    async def fetch_weather(self, latitude: float, longitude: float) -> Optional[WeatherObservation]:
        ...

    async def fetch_air_quality(self, latitude: float, longitude: float) -> Optional[int]:
        ...


class OpenWeatherClient:
    """
    Async OpenWeather client.

    Usage:
        client = OpenWeatherClient(api_key="...")
        obs = await client.fetch_weather(13.08, 80.27)
        aqi = await client.fetch_air_quality(13.08, 80.27)
        await client.close()
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.OPENWEATHER_API_KEY
        self.base_url = (base_url or settings.OPENWEATHER_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.WEATHER_FETCH_TIMEOUT
        self._http_client = http_client

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def _get_json(self, path: str, latitude: float, longitude: float) -> Dict[str, Any]:
        if not self.api_key:
            raise ExternalServiceError(SERVICE_NAME, "API key not configured")

        params = {"lat": latitude, "lon": longitude, "appid": self.api_key}
        client = await self._get_client()
        try:
            response = await client.get(f"{self.base_url}/{path}", params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error("OpenWeather %s error: HTTP %d", path, e.response.status_code)
            raise ExternalServiceError(
                SERVICE_NAME, f"HTTP {e.response.status_code} from /{path}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("OpenWeather %s request failed: %s", path, e)
            raise ExternalServiceError(SERVICE_NAME, f"/{path} request failed") from e

        if not isinstance(data, dict):
            raise ExternalServiceError(SERVICE_NAME, f"unexpected /{path} payload")
        return data

    async def fetch_weather(self, latitude: float, longitude: float) -> Optional[WeatherObservation]:
        data = await self._get_json("weather", latitude, longitude)
        observation = parse_weather_payload(data)
        logger.info(
            "Weather fetched for lat=%.4f, lon=%.4f: %s",
            latitude, longitude, observation.condition if observation else None,
            extra={"lat": latitude, "lon": longitude, "provider": SERVICE_NAME},
        )
        return observation

    async def fetch_air_quality(self, latitude: float, longitude: float) -> Optional[int]:
        """Ordinal AQI (1 Good … 5 Very Poor), or None when not reported."""
        data = await self._get_json("air_pollution", latitude, longitude)
        return parse_air_quality_ordinal(data)
