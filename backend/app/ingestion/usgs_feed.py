"""
usgs_feed.py — Recent earthquakes from the USGS GeoJSON summary feed.

Feed: https://earthquake.usgs.gov/earthquakes/feed/v1.0/summary/all_day.geojson
(every event of the last 24 h, updated about every minute).

Regional Selection
==================
The feed is global. For a location-specific score only nearby events are
relevant:

    1. keep events within SEISMIC_REGION_RADIUS_KM (3000 km) of the origin
    2. if none are nearby, fall back to the first SEISMIC_FALLBACK_EVENTS
       (10) events of the feed, in feed order

The normaliser still applies its own magnitude (≥ 4.5) and 24 h filters,
so the fallback rarely moves the score for quiet regions.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx

from backend.app.core.config import settings
from backend.app.core.errors import ExternalServiceError
from backend.app.risk.signals import SeismicEvent
from backend.app.spatial.distance import Coordinate, haversine

logger = logging.getLogger(__name__)

SERVICE_NAME = "usgs"


class SeismicFeed(Protocol):
    """Capability: the recent global earthquake list."""

    async def fetch_recent_events(self) -> List[SeismicEvent]:
        ...


# ═══════════════════════════════════════════════════════════════════════════
# Parsing
# ═══════════════════════════════════════════════════════════════════════════

def parse_usgs_feature(feature: Dict[str, Any]) -> Optional[SeismicEvent]:
    """
    Parse one GeoJSON feature into a SeismicEvent.

    USGS GeoJSON format:
        feature = {
            "type": "Feature",
            "properties": { "mag": 5.2, "place": "...", "time": 1708617600000, ... },
            "geometry": { "type": "Point", "coordinates": [lon, lat, depth_km] },
            "id": "us7000m..."
        }

    Returns None (and logs) for features without a magnitude, time or point.
    """
    try:
        props = feature["properties"]
        coords = feature["geometry"]["coordinates"]  # [lon, lat, depth]

        if props.get("mag") is None or props.get("time") is None:
            return None

        # USGS gives milliseconds since epoch
        timestamp = datetime.fromtimestamp(props["time"] / 1000.0, tz=timezone.utc)

        return SeismicEvent(
            magnitude=float(props["mag"]),
            time=timestamp,
            latitude=float(coords[1]),
            longitude=float(coords[0]),
            depth_km=max(0.0, float(coords[2])) if len(coords) > 2 and coords[2] is not None else 0.0,
            place=str(props.get("place") or "Unknown"),
            event_id=str(feature.get("id", "")),
        )
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        logger.warning("Failed to parse USGS feature: %s", exc)
        return None


def parse_usgs_feed(payload: Dict[str, Any]) -> List[SeismicEvent]:
    """Parse a whole feed; malformed features are skipped."""
    events: List[SeismicEvent] = []
    for feature in payload.get("features") or []:
        event = parse_usgs_feature(feature)
        if event is not None:
            events.append(event)
    return events


def select_regional_events(
    events: Sequence[SeismicEvent],
    origin: Coordinate,
    radius_km: Optional[float] = None,
    fallback_count: Optional[int] = None,
) -> List[SeismicEvent]:
    """
    Events within ``radius_km`` of ``origin``; the first ``fallback_count``
    feed events when nothing is nearby.
    """
    radius_km = radius_km if radius_km is not None else settings.SEISMIC_REGION_RADIUS_KM
    fallback_count = fallback_count if fallback_count is not None else settings.SEISMIC_FALLBACK_EVENTS

    nearby = [
        e for e in events
        if haversine(origin, Coordinate(e.latitude, e.longitude)) <= radius_km
    ]
    if nearby:
        return nearby
    return list(events[:fallback_count])


# ═══════════════════════════════════════════════════════════════════════════
# Client
# ═══════════════════════════════════════════════════════════════════════════

class UsgsFeedClient:
    """Async client for the USGS summary feed."""

    def __init__(
        self,
        feed_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.feed_url = feed_url or settings.USGS_FEED_URL
        self.timeout = timeout or settings.USGS_FETCH_TIMEOUT
        self._http_client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def fetch_recent_events(self) -> List[SeismicEvent]:
        client = await self._get_client()
        try:
            response = await client.get(self.feed_url, headers={"Accept": "application/json"})
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error("USGS feed error: HTTP %d", e.response.status_code)
            raise ExternalServiceError(SERVICE_NAME, f"HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("USGS feed request failed: %s", e)
            raise ExternalServiceError(SERVICE_NAME, "feed request failed") from e

        if not isinstance(data, dict):
            raise ExternalServiceError(SERVICE_NAME, "unexpected feed payload")

        events = parse_usgs_feed(data)
        logger.info("USGS feed: %d events", len(events), extra={"provider": SERVICE_NAME})
        return events
