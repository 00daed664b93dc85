"""
Redis cache layer — async Redis client with typed helpers.

Only responder lookups are cached. Keys are built from the origin rounded
to 3 decimal places (~110 m) plus the search radius, so nearby callers
share an entry. Risk assessments are never cached: their only identity
is their literal inputs.

A missing or unreachable Redis degrades to a cache miss; it never fails
the request.

Usage:
    from backend.app.core.cache import cache_get, cache_set, responder_cache_key

    key = responder_cache_key(28.6139, 77.2090, 5000)
    cached = await cache_get(key)
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from backend.app.core.config import settings

logger = logging.getLogger(__name__)

RESPONDER_KEY_PRECISION = 3

# Created on first use
_redis_client = None


async def _get_redis():
    """Get or create async Redis client (None when caching is disabled)."""
    global _redis_client
    if not settings.CACHE_ENABLED:
        return None
    if _redis_client is None:
        try:
            import redis.asyncio as aioredis
            _redis_client = aioredis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=1.0,
            )
            logger.info("Redis client created: %s", settings.REDIS_URL)
        except Exception as e:
            logger.warning("Redis unavailable, caching disabled: %s", e)
            return None
    return _redis_client


def responder_cache_key(latitude: float, longitude: float, radius_m: int) -> str:
    """Cache key for a responder lookup: rounded origin + radius."""
    lat = round(latitude, RESPONDER_KEY_PRECISION)
    lon = round(longitude, RESPONDER_KEY_PRECISION)
    return f"responders:{lat:.{RESPONDER_KEY_PRECISION}f}:{lon:.{RESPONDER_KEY_PRECISION}f}:{int(radius_m)}"


async def cache_get(key: str) -> Optional[Any]:
    """Get a cached value by key. Returns None on miss or error."""
    client = await _get_redis()
    if not client:
        return None
    try:
        raw = await client.get(key)
        if raw is not None:
            return json.loads(raw)
    except Exception as e:
        logger.warning("Cache GET error for %s: %s", key, e)
    return None


async def cache_set(key: str, value: Any, ttl: Optional[int] = None) -> bool:
    """Set a cached value with optional TTL (seconds)."""
    client = await _get_redis()
    if not client:
        return False
    try:
        serialised = json.dumps(value, default=str)
        await client.set(key, serialised, ex=ttl or settings.REDIS_CACHE_TTL)
        return True
    except Exception as e:
        logger.warning("Cache SET error for %s: %s", key, e)
        return False


async def ping_cache() -> bool:
    """True when Redis answers PING."""
    client = await _get_redis()
    if not client:
        return False
    try:
        return bool(await client.ping())
    except Exception as e:
        logger.debug("Redis PING failed: %s", e)
        return False


async def close_redis() -> None:
    """Close Redis connection."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("Redis connection closed")
