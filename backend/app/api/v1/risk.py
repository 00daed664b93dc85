"""
FastAPI routes: risk scoring and risk-score history.

    POST /api/v1/risk/compute   score from caller-supplied signals
    POST /api/v1/risk/assess    score from live provider signals
    GET  /api/v1/risk/weights   weight tables + level thresholds
    POST /api/v1/risk/log       record a displayed score
    GET  /api/v1/risk/logs      history, newest first
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.deps import get_seismic_feed, get_weather_provider
from backend.app.api.schemas import (
    LevelThresholdOut,
    NewsRiskIn,
    RiskAssessmentOut,
    RiskAssessRequest,
    RiskComputeRequest,
    RiskLogIn,
    RiskLogListResponse,
    RiskLogOut,
    WeightsResponse,
)
from backend.app.core.database import get_db
from backend.app.ingestion.openweather import WeatherProvider
from backend.app.ingestion.usgs_feed import SeismicFeed
from backend.app.records import repository
from backend.app.risk.aggregator import (
    LEVEL_THRESHOLDS,
    WEIGHTS_WITH_NEWS,
    WEIGHTS_WITHOUT_NEWS,
    RiskLevel,
    compute_risk,
)
from backend.app.risk.assessment import assess_location
from backend.app.risk.signals import (
    NewsRisk,
    SeismicEvent,
    WeatherObservation,
    aqi_index_from_ordinal,
)

router = APIRouter(prefix="/api/v1/risk", tags=["risk"])


def _news_risk(news: Optional[NewsRiskIn]) -> Optional[NewsRisk]:
    if news is None:
        return None
    return NewsRisk(score=news.score, events=list(news.events))


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------

@router.post(
    "/compute",
    response_model=RiskAssessmentOut,
    summary="Risk score from supplied signals",
)
async def compute_risk_score(req: RiskComputeRequest):
    """
    Normalise the supplied signals and combine them.

    Omitting ``news_risk`` selects the three-way weights; sending it (even
    with score 0) selects the four-way weights.
    """
    weather = None
    if req.weather is not None:
        weather = WeatherObservation(**req.weather.model_dump())

    events = [
        SeismicEvent(
            magnitude=e.magnitude,
            time=e.time,
            latitude=e.latitude,
            longitude=e.longitude,
            depth_km=e.depth_km,
            place=e.place,
        )
        for e in req.seismic_events
    ]
    aqi_index = aqi_index_from_ordinal(req.aqi_ordinal) if req.aqi_ordinal is not None else None

    assessment = compute_risk(weather, events, aqi_index, _news_risk(req.news_risk))
    return assessment.to_dict()


@router.post(
    "/assess",
    response_model=RiskAssessmentOut,
    summary="Live risk score for a location",
)
async def assess_risk(
    req: RiskAssessRequest,
    weather_provider: WeatherProvider = Depends(get_weather_provider),
    seismic_feed: SeismicFeed = Depends(get_seismic_feed),
):
    """Fetch weather, air quality and recent earthquakes, then score them."""
    assessment = await assess_location(
        req.latitude,
        req.longitude,
        weather_provider=weather_provider,
        seismic_feed=seismic_feed,
        news_risk=_news_risk(req.news_risk),
    )
    return assessment.to_dict()


@router.get("/weights", response_model=WeightsResponse, summary="Weight tables and thresholds")
async def get_weights():
    thresholds = [
        LevelThresholdOut(level=level.value, above=bound, color=level.color)
        for bound, level in LEVEL_THRESHOLDS
    ]
    thresholds.append(
        LevelThresholdOut(level=RiskLevel.LOW.value, above=None, color=RiskLevel.LOW.color)
    )
    return WeightsResponse(
        with_news=WEIGHTS_WITH_NEWS.to_dict(),
        without_news=WEIGHTS_WITHOUT_NEWS.to_dict(),
        thresholds=thresholds,
    )


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------

@router.post("/log", response_model=RiskLogOut, status_code=201, summary="Log a risk score")
async def log_risk_score(req: RiskLogIn, db: AsyncSession = Depends(get_db)):
    log = await repository.create_risk_log(db, req.city, req.risk_score)
    return log.to_dict()


@router.get("/logs", response_model=RiskLogListResponse, summary="Risk score history")
async def list_risk_logs(
    city: Optional[str] = Query(default=None, description="Case-insensitive city filter"),
    limit: int = Query(default=repository.DEFAULT_LOG_LIMIT, ge=1, le=500),
    skip: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    logs, total = await repository.list_risk_logs(db, city=city, limit=limit, skip=skip)
    return {"count": len(logs), "total": total, "data": [log.to_dict() for log in logs]}
