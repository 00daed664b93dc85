"""
Pydantic schemas for the DisasterSense API.

Separated from the route handlers so they are reusable across the
codebase (routes, tests). Coordinates are range-checked here: the core
components assume valid input.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from backend.app.records.models import DESCRIPTION_MAX_LENGTH, DisasterType


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------

class LocationInput(BaseModel):
    latitude: float = Field(
        ..., ge=-90.0, le=90.0,
        description="Latitude in decimal degrees",
        examples=[13.0827],
    )
    longitude: float = Field(
        ..., ge=-180.0, le=180.0,
        description="Longitude in decimal degrees",
        examples=[80.2707],
    )


class NewsRiskIn(BaseModel):
    """Pre-computed news risk from the text-analysis service."""
    score: float = Field(..., description="News risk score (clamped to 0–10)", examples=[4.5])
    events: List[Any] = Field(default_factory=list, description="Opaque news events")


# ---------------------------------------------------------------------------
# Risk
# ---------------------------------------------------------------------------

class WeatherIn(BaseModel):
    """Current observation; any field may be omitted."""
    temperature_k: Optional[float] = Field(
        default=None, ge=0.0,
        description="Temperature in Kelvin",
        examples=[315.15],
    )
    humidity_pct: Optional[float] = Field(default=None, ge=0.0, le=100.0, examples=[95])
    wind_speed_ms: Optional[float] = Field(default=None, ge=0.0, examples=[25])
    condition: Optional[str] = Field(
        default=None,
        description="Coarse condition class, e.g. Thunderstorm / Rain / Clear",
        examples=["Thunderstorm"],
    )
    description: Optional[str] = None


class SeismicEventIn(BaseModel):
    magnitude: float = Field(..., ge=-2.0, le=10.0, examples=[6.2])
    time: datetime = Field(..., description="Event time (UTC if no offset given)")
    latitude: float = Field(default=0.0, ge=-90.0, le=90.0)
    longitude: float = Field(default=0.0, ge=-180.0, le=180.0)
    depth_km: float = Field(default=0.0, ge=0.0)
    place: str = "Unknown"

    @field_validator("time")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class RiskComputeRequest(BaseModel):
    """Request body for POST /api/v1/risk/compute."""
    weather: Optional[WeatherIn] = Field(default=None, description="null = no weather signal")
    seismic_events: List[SeismicEventIn] = Field(default_factory=list)
    aqi_ordinal: Optional[int] = Field(
        default=None, ge=1, le=5,
        description="Provider air-quality ordinal (1 Good … 5 Very Poor)",
        examples=[4],
    )
    news_risk: Optional[NewsRiskIn] = Field(
        default=None,
        description="null = no news signal (selects the three-way weights)",
    )


class RiskAssessRequest(LocationInput):
    """Request body for POST /api/v1/risk/assess."""
    news_risk: Optional[NewsRiskIn] = None


class RiskAssessmentOut(BaseModel):
    score: float = Field(..., description="Overall risk score 0–10")
    level: str = Field(..., description="Low / Moderate / High / Extreme")
    color: str
    breakdown: Dict[str, float]
    weights: Dict[str, float]
    news_present: bool
    news_event_count: int = 0
    unavailable_signals: List[str] = []


class LevelThresholdOut(BaseModel):
    level: str
    above: Optional[float] = Field(..., description="Score must exceed this (null = floor)")
    color: str


class WeightsResponse(BaseModel):
    with_news: Dict[str, float]
    without_news: Dict[str, float]
    thresholds: List[LevelThresholdOut]


# ---------------------------------------------------------------------------
# Responders
# ---------------------------------------------------------------------------

class ResponderOut(BaseModel):
    name: str
    type: str = Field(..., description="hospital | police | fire_station")
    lat: float
    lng: float
    distance: float = Field(..., description="Distance from origin in km (2 dp)")
    distance_display: str


class RespondersResponse(BaseModel):
    count: int
    radius_m: int
    origin: Dict[str, float]
    responders: List[ResponderOut]
    cached: bool = False


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

class RiskLogIn(BaseModel):
    city: str = Field(..., min_length=1, max_length=120, examples=["Chennai"])
    risk_score: float = Field(..., ge=0.0, le=100.0, examples=[42.0])

    @field_validator("city")
    @classmethod
    def strip_city(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("city must not be blank")
        return v


class RiskLogOut(BaseModel):
    id: int
    city: str
    risk_score: float
    timestamp: str


class RiskLogListResponse(BaseModel):
    count: int
    total: int
    data: List[RiskLogOut]


class EmergencyReportIn(BaseModel):
    disaster_type: DisasterType = Field(..., examples=["Flood"])
    lat: float = Field(..., ge=-90.0, le=90.0)
    lng: float = Field(..., ge=-180.0, le=180.0)
    description: str = Field(default="", max_length=DESCRIPTION_MAX_LENGTH)


class EmergencyReportOut(BaseModel):
    id: int
    disaster_type: str
    lat: float
    lng: float
    description: str
    created_at: str


class EmergencyReportListResponse(BaseModel):
    count: int
    total: int
    data: List[EmergencyReportOut]


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------

class ChatContext(BaseModel):
    """Live data the dashboard already holds (raw provider payloads)."""
    city: Optional[str] = None
    weather: Optional[Dict[str, Any]] = None
    aqi: Optional[Dict[str, Any]] = None
    earthquakes: Optional[List[Dict[str, Any]]] = None


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)
    context: Optional[ChatContext] = None


class ChatResponse(BaseModel):
    success: bool
    response: str
