"""
FastAPI route: nearest emergency responders.

    GET /api/v1/responders?lat=13.0827&lng=80.2707&radius=5000

Lookups are cached in Redis for REDIS_RESPONDER_TTL, keyed on the origin
rounded to 3 decimal places plus the radius. A locator failure is never
cached and surfaces as 503 LOCATOR_UNAVAILABLE.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from backend.app.api.deps import get_locator
from backend.app.api.schemas import RespondersResponse
from backend.app.core.cache import cache_get, cache_set, responder_cache_key
from backend.app.core.config import settings
from backend.app.responders.locator import ResponderLocator
from backend.app.spatial.distance import Coordinate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/responders", tags=["responders"])


@router.get(
    "",
    response_model=RespondersResponse,
    summary="Nearest hospitals, police and fire stations",
    responses={503: {"description": "Emergency services lookup temporarily unavailable"}},
)
async def nearest_responders(
    lat: float = Query(..., ge=-90.0, le=90.0, description="Latitude", examples=[13.0827]),
    lng: float = Query(..., ge=-180.0, le=180.0, description="Longitude", examples=[80.2707]),
    radius: Optional[int] = Query(
        default=None, ge=100, le=50_000,
        description="Search radius in meters (default 5000)",
    ),
    locator: ResponderLocator = Depends(get_locator),
):
    radius_m = settings.RESPONDER_SEARCH_RADIUS_M if radius is None else radius
    origin = Coordinate(lat, lng)

    key = responder_cache_key(lat, lng, radius_m)
    cached = await cache_get(key)
    if cached is not None:
        logger.debug("Cache HIT for %s", key)
        return {**cached, "cached": True}

    ranked = await locator.locate(origin, radius_m)

    body = {
        "count": len(ranked),
        "radius_m": radius_m,
        "origin": origin.to_dict(),
        "responders": [r.to_dict() for r in ranked],
    }
    await cache_set(key, body, ttl=settings.REDIS_RESPONDER_TTL)
    return {**body, "cached": False}
