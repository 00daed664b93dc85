"""
assistant.py — Disaster-aware chat assistant backed by Groq.

The dashboard sends the user's message together with whatever live data it
already holds (raw provider payloads). That data is folded into a system
prompt so the model answers about *current* conditions:

    city          → "The user is asking about Chennai."
    weather       → "Current weather: 31°C, light rain, humidity 78%, wind speed 4.1 m/s."
    aqi           → "Air Quality Index: 150 (Moderate)."      (ordinal × 50)
    earthquakes   → "Recent earthquakes: magnitude 5.1 at ..." (first 3)

Groq exposes an OpenAI-compatible chat-completions endpoint; the call is a
single POST with a bearer token.

Failure Policy
==============
The assistant never raises to the route. A missing API key, a malformed
context or any provider failure returns a fixed reply with
``success=False``; the cause is logged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from backend.app.core.config import settings
from backend.app.ingestion.usgs_feed import parse_usgs_feature
from backend.app.risk.signals import (
    aqi_index_from_ordinal,
    aqi_label,
    parse_air_quality_ordinal,
    parse_weather_payload,
)

logger = logging.getLogger(__name__)

CHAT_TEMPERATURE = 0.7
CHAT_MAX_TOKENS = 300
PROMPT_EARTHQUAKE_COUNT = 3

UNAVAILABLE_REPLY = "AI service is currently unavailable. Please check the API configuration."
ERROR_REPLY = "I apologize, but I encountered an error processing your request. Please try again."

SYSTEM_PROMPT_TEMPLATE = """You are a friendly and knowledgeable disaster risk analysis assistant for DisasterSense.
You help users understand disaster risks, weather patterns, seismic activity, and safety conditions.

{context}

Provide helpful, accurate, and concise responses. Be empathetic and prioritize safety.
If asked about current conditions, use the context provided above.
Keep responses under 100 words unless more detail is needed.
Use a friendly, professional tone."""


@dataclass
class ChatReply:
    success: bool
    response: str

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "response": self.response}


def _fmt(value: Optional[float], fmt: str = "{:g}") -> str:
    return "N/A" if value is None else fmt.format(value)


def build_context_prompt(context: Optional[Dict[str, Any]] = None) -> str:
    """
    Render the live-data context into prompt sentences.

    Parameters
    ----------
    context : dict | None
        Keys (all optional): ``city`` (str), ``weather`` (OpenWeather
        current-weather payload), ``aqi`` (OpenWeather air-pollution
        payload), ``earthquakes`` (list of USGS GeoJSON features).

    Examples
    --------
    >>> build_context_prompt({"city": "Chennai"})
    'You are a disaster risk analysis expert assistant. The user is asking about Chennai.'
    """
    context = context or {}
    parts = ["You are a disaster risk analysis expert assistant."]

    city = context.get("city")
    if city:
        parts.append(f"The user is asking about {city}.")

    weather = parse_weather_payload(context.get("weather"))
    if weather is not None:
        temp = weather.temperature_c
        parts.append(
            "Current weather: {temp}°C, {desc}, humidity {hum}%, wind speed {wind} m/s.".format(
                temp="N/A" if temp is None else round(temp),
                desc=weather.description or "N/A",
                hum=_fmt(weather.humidity_pct),
                wind=_fmt(weather.wind_speed_ms),
            )
        )

    ordinal = parse_air_quality_ordinal(context.get("aqi"))
    if ordinal is not None:
        parts.append(
            f"Air Quality Index: {aqi_index_from_ordinal(ordinal):.0f} ({aqi_label(ordinal)})."
        )

    quakes = []
    for feature in (context.get("earthquakes") or [])[:PROMPT_EARTHQUAKE_COUNT]:
        event = parse_usgs_feature(feature) if isinstance(feature, dict) else None
        if event is not None:
            quakes.append(f"magnitude {event.magnitude:.1f} at {event.place}")
    if quakes:
        parts.append(f"Recent earthquakes: {', '.join(quakes)}.")

    return " ".join(parts)


class ChatAssistant:
    """
    Groq chat-completions client.

    Usage:
        assistant = ChatAssistant()
        reply = await assistant.reply("Is it safe to travel?", {"city": "Pune"})
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.GROQ_API_KEY
        self.api_url = api_url or settings.GROQ_API_URL
        self.model = model or settings.GROQ_MODEL
        self.timeout = timeout or settings.CHAT_TIMEOUT_S
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

    def build_messages(self, message: str, context: Optional[Dict[str, Any]] = None) -> List[Dict[str, str]]:
        system_prompt = SYSTEM_PROMPT_TEMPLATE.format(context=build_context_prompt(context))
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": message},
        ]

    async def reply(self, message: str, context: Optional[Dict[str, Any]] = None) -> ChatReply:
        if not self.api_key:
            logger.warning("Groq API key not configured")
            return ChatReply(success=False, response=UNAVAILABLE_REPLY)

        try:
            messages = self.build_messages(message, context)
        except (AttributeError, ValueError, KeyError, IndexError, TypeError) as e:
            logger.warning("Malformed chat context: %r", e, extra={"provider": "groq"})
            return ChatReply(success=False, response=ERROR_REPLY)

        body = {
            "model": self.model,
            "messages": messages,
            "temperature": CHAT_TEMPERATURE,
            "max_tokens": CHAT_MAX_TOKENS,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        client = await self._get_client()
        try:
            response = await client.post(self.api_url, json=body, headers=headers)
            response.raise_for_status()
            content = response.json()["choices"][0]["message"]["content"]
        except httpx.HTTPStatusError as e:
            logger.error("Groq API error: HTTP %d", e.response.status_code, extra={"provider": "groq"})
            return ChatReply(success=False, response=ERROR_REPLY)
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as e:
            logger.error("Groq request failed: %r", e, extra={"provider": "groq"})
            return ChatReply(success=False, response=ERROR_REPLY)

        return ChatReply(success=True, response=str(content).strip())
