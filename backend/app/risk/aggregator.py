"""
aggregator.py — Weighted combination of signal severities into one risk score.

Produces:
    • score        (0–10, one decimal place)
    • level        (Low / Moderate / High / Extreme)
    • breakdown    (per-category severity, one decimal place)

═══════════════════════════════════════════════════════════════════════════
WEIGHT TABLES
═══════════════════════════════════════════════════════════════════════════

Two fixed tables; the presence of a news signal picks one. This is a
switch between records, not a blend. An explicit news score of 0 still
selects the news table.

                     weather   seismic   air_quality   news
    with news          0.32      0.32       0.16        0.20
    without news       0.40      0.40       0.20         —

    score = min(round(Σ wᵢ · Sᵢ, 1), 10)

═══════════════════════════════════════════════════════════════════════════
LEVEL THRESHOLDS (on the rounded score)
═══════════════════════════════════════════════════════════════════════════

    score > 7   → Extreme
    score > 5   → High
    score > 3   → Moderate
    otherwise   → Low

Each bound belongs to the lower tier: 3.0 is Low, 3.1 is Moderate.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from backend.app.risk.signals import (
    SEVERITY_MAX,
    NewsRisk,
    SeismicEvent,
    WeatherObservation,
    air_quality_severity,
    news_severity,
    seismic_severity,
    weather_severity,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════════════

class SignalCategory(str, Enum):
    WEATHER = "weather"
    SEISMIC = "seismic"
    AIR_QUALITY = "air_quality"
    NEWS = "news"


class RiskLevel(str, Enum):
    """Four-tier risk classification."""
    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"
    EXTREME = "Extreme"

    @property
    def color(self) -> str:
        return LEVEL_COLORS[self]


LEVEL_COLORS = {
    RiskLevel.LOW: "green",
    RiskLevel.MODERATE: "yellow",
    RiskLevel.HIGH: "orange",
    RiskLevel.EXTREME: "red",
}

# (score strictly above, level), checked top-down
LEVEL_THRESHOLDS = (
    (7.0, RiskLevel.EXTREME),
    (5.0, RiskLevel.HIGH),
    (3.0, RiskLevel.MODERATE),
)


# ═══════════════════════════════════════════════════════════════════════════
# Weight Tables
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class WeightTable:
    """Fixed per-category weights; ``news`` is None when the table excludes it."""
    name: str
    weather: float
    seismic: float
    air_quality: float
    news: Optional[float] = None

    @property
    def categories(self) -> List[SignalCategory]:
        active = [SignalCategory.WEATHER, SignalCategory.SEISMIC, SignalCategory.AIR_QUALITY]
        if self.news is not None:
            active.append(SignalCategory.NEWS)
        return active

    def weight_for(self, category: SignalCategory) -> float:
        return getattr(self, category.value) or 0.0

    @property
    def total(self) -> float:
        return math.fsum(self.weight_for(c) for c in self.categories)

    def to_dict(self) -> Dict[str, float]:
        return {c.value: self.weight_for(c) for c in self.categories}


WEIGHTS_WITH_NEWS = WeightTable(
    name="with_news",
    weather=0.32,
    seismic=0.32,
    air_quality=0.16,
    news=0.20,
)

WEIGHTS_WITHOUT_NEWS = WeightTable(
    name="without_news",
    weather=0.40,
    seismic=0.40,
    air_quality=0.20,
)


def select_weights(news_present: bool) -> WeightTable:
    """Pick the weight table for the given news presence."""
    return WEIGHTS_WITH_NEWS if news_present else WEIGHTS_WITHOUT_NEWS


# ═══════════════════════════════════════════════════════════════════════════
# Data Structures
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RiskAssessment:
    """
    Output of one aggregation call. Owned by the caller; never retained.

    Attributes
    ----------
    score : float
        Weighted sum of severities, rounded to one decimal place, capped at 10.
    level : RiskLevel
        Threshold classification of ``score``.
    breakdown : dict
        Category → severity (rounded to one decimal place). Always holds
        weather, seismic and air_quality; holds news only when supplied.
    weights : WeightTable
        The table that produced ``score``.
    news_event_count : int
        Number of news events behind the news score (0 when absent).
    """
    score: float
    level: RiskLevel
    breakdown: Dict[str, float]
    weights: WeightTable
    news_event_count: int = 0
    unavailable_signals: List[str] = field(default_factory=list)

    @property
    def news_present(self) -> bool:
        return self.weights.news is not None

    def to_dict(self) -> Dict[str, Any]:
        """Serialise for API response."""
        return {
            "score": self.score,
            "level": self.level.value,
            "color": self.level.color,
            "breakdown": dict(self.breakdown),
            "weights": self.weights.to_dict(),
            "news_present": self.news_present,
            "news_event_count": self.news_event_count,
            "unavailable_signals": list(self.unavailable_signals),
        }


# ═══════════════════════════════════════════════════════════════════════════
# Classification
# ═══════════════════════════════════════════════════════════════════════════

def classify_risk_level(score: float) -> RiskLevel:
    """
    Map a score (0–10) to its risk level.

    >>> classify_risk_level(3.0)
    <RiskLevel.LOW: 'Low'>
    >>> classify_risk_level(7.1)
    <RiskLevel.EXTREME: 'Extreme'>
    """
    for lower_bound, level in LEVEL_THRESHOLDS:
        if score > lower_bound:
            return level
    return RiskLevel.LOW


# ═══════════════════════════════════════════════════════════════════════════
# Aggregation
# ═══════════════════════════════════════════════════════════════════════════

def aggregate_severities(
    severities: Dict[SignalCategory, float],
    *,
    news_present: bool,
    news_event_count: int = 0,
    unavailable_signals: Optional[List[str]] = None,
) -> RiskAssessment:
    """
    Combine already-normalised severities with the selected weight table.

    Categories missing from ``severities`` count as 0.
    """
    weights = select_weights(news_present)

    raw_score = math.fsum(
        weights.weight_for(category) * severities.get(category, 0.0)
        for category in weights.categories
    )
    # only an all-extreme input with weather at 12 can push past the ceiling
    score = min(round(raw_score, 1), SEVERITY_MAX)

    breakdown = {
        category.value: round(severities.get(category, 0.0), 1)
        for category in weights.categories
    }

    return RiskAssessment(
        score=score,
        level=classify_risk_level(score),
        breakdown=breakdown,
        weights=weights,
        news_event_count=news_event_count,
        unavailable_signals=list(unavailable_signals or []),
    )


def compute_risk(
    weather: Optional[WeatherObservation],
    seismic_events: Optional[Sequence[SeismicEvent]],
    air_quality_index: Optional[float],
    news_risk: Optional[NewsRisk] = None,
    *,
    now: Optional[datetime] = None,
    unavailable_signals: Optional[List[str]] = None,
) -> RiskAssessment:
    """
    Compute the risk assessment for one location.

    This is the main entry point. It normalises each signal, selects the
    weight table by news presence and classifies the rounded score.

    Parameters
    ----------
    weather : WeatherObservation | None
        Current observation; None when the weather signal is absent.
    seismic_events : sequence of SeismicEvent | None
        Candidate events (filtered by magnitude and age internally).
    air_quality_index : float | None
        Pollutant index, i.e. the provider ordinal already rescaled
        with ``aqi_index_from_ordinal``.
    news_risk : NewsRisk | None
        None means "no news signal" and selects the three-way weights.
    now : datetime | None
        Reference time for the seismic 24 h window.
    unavailable_signals : list of str | None
        Names of sources the caller could not reach (recorded only).

    Returns
    -------
    RiskAssessment

    Examples
    --------
    >>> r = compute_risk(None, [], None)
    >>> r.score, r.level.value
    (0.0, 'Low')
    """
    severities = {
        SignalCategory.WEATHER: weather_severity(weather),
        SignalCategory.SEISMIC: seismic_severity(seismic_events, now),
        SignalCategory.AIR_QUALITY: air_quality_severity(air_quality_index),
    }
    if news_risk is not None:
        severities[SignalCategory.NEWS] = news_severity(news_risk)

    assessment = aggregate_severities(
        severities,
        news_present=news_risk is not None,
        news_event_count=news_risk.event_count if news_risk is not None else 0,
        unavailable_signals=unavailable_signals,
    )

    logger.debug(
        "Risk computed: score=%.1f level=%s weights=%s",
        assessment.score, assessment.level.value, assessment.weights.name,
        extra={"risk_score": assessment.score, "risk_level": assessment.level.value},
    )
    return assessment
