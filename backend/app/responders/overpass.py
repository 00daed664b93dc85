"""
overpass.py — OpenStreetMap Overpass API client for responder facilities.

A single Overpass QL query asks for point (node) and areal (way) features
tagged with one of the requested amenity types around the origin:

    [out:json][timeout:10];
    (
      node["amenity"~"^(hospital|police|fire_station)$"](around:5000,13.08,80.27);
      way["amenity"~"^(hospital|police|fire_station)$"](around:5000,13.08,80.27);
    );
    out center;

``out center`` makes the server attach a ``center`` {lat, lon} to every
way, so areal features arrive with a ready-made centroid.

The client returns the raw JSON document. Interpretation (centroids,
names, distances) belongs to the locator.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol, Sequence

import httpx

from backend.app.core.config import settings
from backend.app.spatial.distance import Coordinate

logger = logging.getLogger(__name__)

QUERY_OSM_TYPES = ("node", "way")


class GeoQueryClient(Protocol):
    """Capability: amenity features within a radius of a point."""

    async def query_amenities(
        self,
        origin: Coordinate,
        radius_m: int,
        amenity_types: Sequence[str],
    ) -> Dict[str, Any]:
        ...


def build_overpass_query(
    origin: Coordinate,
    radius_m: int,
    amenity_types: Sequence[str],
    server_timeout_s: int = 10,
) -> str:
    """Construct the Overpass QL query for the given amenity set."""
    amenity_regex = "|".join(amenity_types)
    around = f"(around:{int(radius_m)},{origin.latitude},{origin.longitude})"
    lines = [f"[out:json][timeout:{int(server_timeout_s)}];", "("]
    for osm_type in QUERY_OSM_TYPES:
        lines.append(f'  {osm_type}["amenity"~"^({amenity_regex})$"]{around};')
    lines.extend([");", "out center;"])
    return "\n".join(lines)


class OverpassClient:
    """
    Async Overpass client.

    Non-2xx responses raise ``httpx.HTTPStatusError``; transport problems
    raise the matching ``httpx`` exception. Callers decide what a failure
    means. No retries here.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url or settings.OVERPASS_URL
        self.timeout = timeout or settings.RESPONDER_TIMEOUT_S
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

    async def query_amenities(
        self,
        origin: Coordinate,
        radius_m: int,
        amenity_types: Sequence[str],
    ) -> Dict[str, Any]:
        query = build_overpass_query(
            origin, radius_m, amenity_types, server_timeout_s=int(self.timeout),
        )
        client = await self._get_client()

        response = await client.post(self.url, data={"data": query})
        response.raise_for_status()
        payload = response.json()

        logger.debug(
            "Overpass returned %d elements",
            len(payload.get("elements") or []) if isinstance(payload, dict) else -1,
            extra={"provider": "overpass", "radius_m": radius_m},
        )
        return payload
