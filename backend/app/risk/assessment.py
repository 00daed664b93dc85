"""
assessment.py — Live risk assessment for a coordinate.

Fetches every signal source concurrently, degrades failures, then hands
the surviving signals to the aggregator:

    weather       ──┐
    air quality   ──┼── asyncio.gather ──► compute_risk ──► RiskAssessment
    seismic feed  ──┘          (+ caller-supplied news risk)

A source that fails is logged, treated as absent (severity 0) and named in
``unavailable_signals``. The aggregator itself never sees a failure; it
cannot tell "absent" from "failed", so the decision is made here.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, List, Optional

from backend.app.core.errors import DisasterSenseError
from backend.app.ingestion.openweather import WeatherProvider
from backend.app.ingestion.usgs_feed import SeismicFeed, select_regional_events
from backend.app.risk.aggregator import RiskAssessment, compute_risk
from backend.app.risk.signals import NewsRisk, aqi_index_from_ordinal
from backend.app.spatial.distance import Coordinate

logger = logging.getLogger(__name__)


def _degrade(name: str, result: Any, unavailable: List[str]) -> Any:
    """Return ``result``, or None (recording ``name``) when it is an exception."""
    if isinstance(result, Exception):
        level = logging.WARNING if isinstance(result, DisasterSenseError) else logging.ERROR
        logger.log(level, "Signal '%s' unavailable: %r", name, result)
        unavailable.append(name)
        return None
    if isinstance(result, BaseException):
        # cancellation and interpreter exits are not degradable
        raise result
    return result


async def assess_location(
    latitude: float,
    longitude: float,
    *,
    weather_provider: WeatherProvider,
    seismic_feed: SeismicFeed,
    news_risk: Optional[NewsRisk] = None,
    now: Optional[datetime] = None,
) -> RiskAssessment:
    """
    Fetch live signals for a location and compute its risk.

    Parameters
    ----------
    latitude, longitude : float
        Location (validated by the caller).
    weather_provider : WeatherProvider
        Source of the weather observation and the ordinal AQI.
    seismic_feed : SeismicFeed
        Source of the global recent-earthquake list.
    news_risk : NewsRisk | None
        Pre-computed news risk; None selects the three-way weights.
    now : datetime | None
        Reference time for the seismic window.

    Returns
    -------
    RiskAssessment
        With ``unavailable_signals`` naming every source that failed.
    """
    origin = Coordinate(latitude, longitude)

    weather, aqi_ordinal, events = await asyncio.gather(
        weather_provider.fetch_weather(latitude, longitude),
        weather_provider.fetch_air_quality(latitude, longitude),
        seismic_feed.fetch_recent_events(),
        return_exceptions=True,
    )

    unavailable: List[str] = []
    weather = _degrade("weather", weather, unavailable)
    aqi_ordinal = _degrade("air_quality", aqi_ordinal, unavailable)
    events = _degrade("seismic", events, unavailable)

    regional = select_regional_events(events, origin) if events else []
    aqi_index = aqi_index_from_ordinal(aqi_ordinal) if aqi_ordinal is not None else None

    assessment = compute_risk(
        weather,
        regional,
        aqi_index,
        news_risk,
        now=now,
        unavailable_signals=unavailable,
    )

    logger.info(
        "Risk assessed for lat=%.4f, lon=%.4f: %.1f (%s)",
        latitude, longitude, assessment.score, assessment.level.value,
        extra={
            "lat": latitude,
            "lon": longitude,
            "risk_score": assessment.score,
            "risk_level": assessment.level.value,
            "unavailable": unavailable,
        },
    )
    return assessment
