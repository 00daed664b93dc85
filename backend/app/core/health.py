"""
Health probes for DisasterSense.

Each component check maps onto the features that depend on it:

    database       risk-score history, SOS reports        (unhealthy if down)
    redis          responder lookup cache                 (degraded if down)
    providers      live assessment (OpenWeather), chat    (degraded if a key
                   (Groq); USGS and Overpass are keyless   is missing)

Only the database can make the service unhealthy; everything else has a
fallback (uncached lookups, absent signals, the unavailable chat reply).
Provider checks never touch the network.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List

from sqlalchemy import text

from backend.app.core.cache import ping_cache
from backend.app.core.config import settings
from backend.app.core.database import engine

logger = logging.getLogger(__name__)

_STARTED_AT = time.monotonic()


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


_SEVERITY = {HealthStatus.HEALTHY: 0, HealthStatus.DEGRADED: 1, HealthStatus.UNHEALTHY: 2}


@dataclass
class ComponentHealth:
    name: str
    status: HealthStatus = HealthStatus.HEALTHY
    latency_ms: float = 0.0
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.message:
            out["message"] = self.message
        if self.details:
            out["details"] = self.details
        return out


@dataclass
class HealthReport:
    components: List[ComponentHealth] = field(default_factory=list)
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def status(self) -> HealthStatus:
        worst = HealthStatus.HEALTHY
        for comp in self.components:
            if _SEVERITY[comp.status] > _SEVERITY[worst]:
                worst = comp.status
        return worst

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "timestamp": self.checked_at.isoformat(),
            "uptime_seconds": round(time.monotonic() - _STARTED_AT, 1),
            "components": [c.to_dict() for c in self.components],
        }


def _redact(url: str) -> str:
    """Drop the userinfo part of a connection URL."""
    scheme, sep, rest = url.partition("://")
    return f"{scheme}{sep}{rest.rsplit('@', 1)[-1]}" if sep else url


async def check_database() -> ComponentHealth:
    """SELECT 1 against the record store."""
    comp = ComponentHealth(name="database", details={"url": _redact(settings.DATABASE_URL)})
    start = time.monotonic()
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        comp.message = "Record store reachable"
    except Exception as e:
        logger.warning("Database health check failed: %s", e)
        comp.status = HealthStatus.UNHEALTHY
        comp.message = f"Record store unreachable: {e}"
    comp.latency_ms = (time.monotonic() - start) * 1000
    return comp


async def check_redis() -> ComponentHealth:
    comp = ComponentHealth(name="redis", details={"url": _redact(settings.REDIS_URL)})
    start = time.monotonic()
    if not settings.CACHE_ENABLED:
        comp.message = "Caching disabled"
    elif await ping_cache():
        comp.message = "Responder cache available"
    else:
        comp.status = HealthStatus.DEGRADED
        comp.message = "Responder cache unreachable; lookups go straight to Overpass"
    comp.latency_ms = (time.monotonic() - start) * 1000
    return comp


async def check_external_apis() -> ComponentHealth:
    """Report which providers are configured and which features lose a signal without them."""
    comp = ComponentHealth(name="external_apis")
    providers = {
        "openweather": {
            "url": settings.OPENWEATHER_BASE_URL,
            "configured": bool(settings.OPENWEATHER_API_KEY),
            "affects": "live risk assessment (weather, air quality)",
        },
        "groq": {
            "url": settings.GROQ_API_URL,
            "configured": bool(settings.GROQ_API_KEY),
            "affects": "chat assistant",
        },
        "usgs": {"url": settings.USGS_FEED_URL, "configured": True},
        "overpass": {"url": settings.OVERPASS_URL, "configured": True},
    }
    missing = [name for name, p in providers.items() if not p["configured"]]
    if missing:
        comp.status = HealthStatus.DEGRADED
        comp.message = f"Missing API keys: {', '.join(missing)}"
    else:
        comp.message = "All providers configured"
    comp.details = providers
    return comp


async def run_health_check() -> HealthReport:
    """Run every component check concurrently."""
    components = await asyncio.gather(check_database(), check_redis(), check_external_apis())
    return HealthReport(components=list(components))
