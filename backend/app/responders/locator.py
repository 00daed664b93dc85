"""
locator.py — Nearest emergency responders for a coordinate.

Pipeline (one call, one provider query):

    1. QUERY    →  geo provider: node/way amenity ∈ {hospital, police, fire_station}
                   within radius_m of the origin (bounded by a total timeout)
    2. RESOLVE  →  representative point per element: its own lat/lon for
                   nodes, the server-computed ``center`` for ways
    3. MEASURE  →  haversine distance from origin, rounded to 2 dp
    4. NAME     →  tags.name, else "Unnamed <type>"
    5. RANK     →  dedupe by (osm type, id), sort ascending by distance,
                   keep the first ``limit`` (10)

Failure Semantics
=================
The lookup either returns a complete ranked list or raises
``LocatorUnavailable``; there is no partial result. Transport errors,
non-2xx responses, the timeout, and payloads that cannot be interpreted
(non-object JSON, an Overpass runtime-error remark, an element with no
usable coordinate) all collapse to that one error. An empty ``elements``
list is a valid, empty answer.

No retries and no caching happen here.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

import httpx

from backend.app.core.config import settings
from backend.app.core.errors import LocatorUnavailable
from backend.app.responders.overpass import GeoQueryClient
from backend.app.spatial.distance import Coordinate, format_distance, haversine

logger = logging.getLogger(__name__)


class FacilityType(str, Enum):
    HOSPITAL = "hospital"
    POLICE = "police"
    FIRE_STATION = "fire_station"


RESPONDER_AMENITIES: Tuple[str, ...] = tuple(f.value for f in FacilityType)

DISTANCE_DECIMALS = 2


# ═══════════════════════════════════════════════════════════════════════════
# Data Structures
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ResponderCandidate:
    """One facility as reported by the provider, before ranking."""
    name: Optional[str]
    facility_type: FacilityType
    location: Coordinate
    osm_type: str = "node"
    osm_id: Optional[int] = None

    @property
    def display_name(self) -> str:
        return self.name or f"Unnamed {self.facility_type.value}"


@dataclass(frozen=True)
class RankedResponder:
    """A candidate with its distance from the query origin."""
    name: str
    facility_type: FacilityType
    location: Coordinate
    distance_km: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.facility_type.value,
            "lat": self.location.latitude,
            "lng": self.location.longitude,
            "distance": self.distance_km,
            "distance_display": format_distance(self.distance_km),
        }


# ═══════════════════════════════════════════════════════════════════════════
# Payload Interpretation
# ═══════════════════════════════════════════════════════════════════════════

class MalformedPayload(ValueError):
    """Provider answered, but not with something we can rank."""


def _element_location(element: Dict[str, Any]) -> Coordinate:
    if "lat" in element and "lon" in element:
        return Coordinate(float(element["lat"]), float(element["lon"]))
    center = element.get("center")
    if isinstance(center, dict) and "lat" in center and "lon" in center:
        return Coordinate(float(center["lat"]), float(center["lon"]))
    raise MalformedPayload(
        f"{element.get('type', 'element')} {element.get('id')} has no coordinate"
    )


def parse_candidates(payload: Any) -> List[ResponderCandidate]:
    """
    Turn an Overpass JSON document into responder candidates.

    Elements whose amenity tag is outside the responder set are ignored;
    repeated (type, id) pairs are kept once.

    Raises
    ------
    MalformedPayload
        When the document (or any element) cannot be interpreted.
    """
    if not isinstance(payload, dict):
        raise MalformedPayload("payload is not a JSON object")

    remark = payload.get("remark")
    if isinstance(remark, str) and "runtime error" in remark.lower():
        raise MalformedPayload(f"provider remark: {remark}")

    elements = payload.get("elements")
    if elements is None:
        return []
    if not isinstance(elements, list):
        raise MalformedPayload("'elements' is not a list")

    candidates: List[ResponderCandidate] = []
    seen: Set[Tuple[str, Any]] = set()

    for element in elements:
        if not isinstance(element, dict):
            raise MalformedPayload("element is not an object")

        tags = element.get("tags") or {}
        if not isinstance(tags, dict):
            raise MalformedPayload("element tags is not an object")
        try:
            facility_type = FacilityType(tags.get("amenity"))
        except ValueError:
            continue

        key = (str(element.get("type", "node")), element.get("id"))
        if key[1] is not None and key in seen:
            continue
        seen.add(key)

        try:
            location = _element_location(element)
        except (TypeError, ValueError) as e:
            raise MalformedPayload(str(e)) from e

        candidates.append(ResponderCandidate(
            name=tags.get("name") or None,
            facility_type=facility_type,
            location=location,
            osm_type=key[0],
            osm_id=key[1],
        ))

    return candidates


def rank_candidates(
    origin: Coordinate,
    candidates: Sequence[ResponderCandidate],
    limit: int,
) -> List[RankedResponder]:
    """Distance, sort ascending, truncate."""
    ranked = [
        RankedResponder(
            name=c.display_name,
            facility_type=c.facility_type,
            location=c.location,
            distance_km=round(haversine(origin, c.location), DISTANCE_DECIMALS),
        )
        for c in candidates
    ]
    ranked.sort(key=lambda r: r.distance_km)
    return ranked[:limit]


# ═══════════════════════════════════════════════════════════════════════════
# Locator
# ═══════════════════════════════════════════════════════════════════════════

class ResponderLocator:
    """
    Ranked responder lookup over an injectable geo-query client.

    Usage:
        locator = ResponderLocator(OverpassClient())
        nearest = await locator.locate(Coordinate(13.0827, 80.2707))
    """

    def __init__(
        self,
        client: GeoQueryClient,
        *,
        timeout_s: Optional[float] = None,
        limit: Optional[int] = None,
        default_radius_m: Optional[int] = None,
    ):
        self.client = client
        self.timeout_s = timeout_s if timeout_s is not None else settings.RESPONDER_TIMEOUT_S
        self.limit = limit if limit is not None else settings.RESPONDER_RESULT_LIMIT
        self.default_radius_m = settings.RESPONDER_SEARCH_RADIUS_M if default_radius_m is None else default_radius_m

    async def locate(
        self,
        origin: Coordinate,
        radius_m: Optional[int] = None,
    ) -> List[RankedResponder]:
        """
        Up to ``limit`` responders nearest to ``origin``, closest first.

        Raises
        ------
        LocatorUnavailable
            On any provider failure; never returns a partial list.
        """
        radius_m = int(self.default_radius_m if radius_m is None else radius_m)
        start = time.monotonic()

        try:
            payload = await asyncio.wait_for(
                self.client.query_amenities(origin, radius_m, RESPONDER_AMENITIES),
                timeout=self.timeout_s,
            )
            candidates = parse_candidates(payload)
        except asyncio.TimeoutError as e:
            logger.warning(
                "Responder lookup timed out after %.1fs", self.timeout_s,
                extra={"lat": origin.latitude, "lon": origin.longitude, "radius_m": radius_m},
            )
            raise LocatorUnavailable("timeout") from e
        except httpx.HTTPError as e:
            logger.warning(
                "Responder provider request failed: %s", e,
                extra={"lat": origin.latitude, "lon": origin.longitude, "radius_m": radius_m},
            )
            raise LocatorUnavailable("transport") from e
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(
                "Responder provider payload rejected: %s", e,
                extra={"lat": origin.latitude, "lon": origin.longitude, "radius_m": radius_m},
            )
            raise LocatorUnavailable("malformed") from e

        ranked = rank_candidates(origin, candidates, self.limit)

        logger.info(
            "Located %d responders (%d candidates) within %dm",
            len(ranked), len(candidates), radius_m,
            extra={
                "lat": origin.latitude,
                "lon": origin.longitude,
                "radius_m": radius_m,
                "responder_count": len(ranked),
                "duration_ms": round((time.monotonic() - start) * 1000, 1),
            },
        )
        return ranked
