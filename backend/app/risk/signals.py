"""
signals.py — Normalise raw hazard signals onto a common 0–10 severity scale.

Four independent signal categories feed the risk aggregator:

    • weather      — current observation (temperature, humidity, wind, condition)
    • seismic      — recent earthquake events
    • air_quality  — provider ordinal index (1–5)
    • news         — externally computed news-risk score (optional)

Every function here is pure: no I/O, no clock access unless ``now`` is
omitted. A missing category yields severity 0; a missing sub-field falls
back to an explicit neutral default rather than failing the whole score.

═══════════════════════════════════════════════════════════════════════════
WEATHER SEVERITY (additive, not clamped, max 12)
═══════════════════════════════════════════════════════════════════════════

    temperature (°C)   > 40 or < −10  → +4
                       > 35 or < 0    → +2
    humidity (%)       > 90           → +2
    wind (m/s)         > 20           → +3
                       > 10           → +1
    condition          Thunderstorm   → +3
                       Rain           → +1

Temperature arrives in Kelvin and is converted (−273.15) before the
thresholds are applied.

═══════════════════════════════════════════════════════════════════════════
SEISMIC SEVERITY (0–10)
═══════════════════════════════════════════════════════════════════════════

Only events with magnitude ≥ 4.5 in the last 24 hours count. Each adds a
magnitude-tiered contribution; the sum is dampened by 0.8 and clamped:

    M ≥ 7.5 → 8      M ≥ 6.0 → 2      M ≥ 4.5 → 0.3
    M ≥ 7.0 → 5      M ≥ 5.5 → 1
    M ≥ 6.5 → 3      M ≥ 5.0 → 0.5

    S_seismic = min(0.8 · Σ tier(M), 10)

A single moderate quake stays in the low range; only clusters of strong
events reach the ceiling.

═══════════════════════════════════════════════════════════════════════════
AIR-QUALITY SEVERITY (0–10)
═══════════════════════════════════════════════════════════════════════════

The provider reports an ordinal 1–5 (Good … Very Poor). It is rescaled by
AQI_ORDINAL_SCALE (×50) to an index, then stepped with strict ``>``:

    > 300 → 10    > 200 → 7    > 150 → 5    > 100 → 3    > 50 → 1

So ordinal 4 (Poor) → 200 → 5, and ordinal 5 (Very Poor) → 250 → 7.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Constants
# ═══════════════════════════════════════════════════════════════════════════

SEVERITY_MAX = 10.0
KELVIN_OFFSET = 273.15

# Neutral defaults for missing weather sub-fields
DEFAULT_TEMPERATURE_C = 20.0
DEFAULT_HUMIDITY_PCT = 50.0
DEFAULT_WIND_SPEED_MS = 0.0

# Seismic filter + dampening
SEISMIC_MIN_MAGNITUDE = 4.5
SEISMIC_WINDOW = timedelta(hours=24)
SEISMIC_DAMPENING = 0.8

# (minimum magnitude, contribution), checked top-down
SEISMIC_TIERS = (
    (7.5, 8.0),
    (7.0, 5.0),
    (6.5, 3.0),
    (6.0, 2.0),
    (5.5, 1.0),
    (5.0, 0.5),
    (4.5, 0.3),
)

# Provider ordinal (1–5) → pollutant index
AQI_ORDINAL_SCALE = 50

# (index strictly above, severity), checked top-down
AQI_TIERS = (
    (300, 10.0),
    (200, 7.0),
    (150, 5.0),
    (100, 3.0),
    (50, 1.0),
)

AQI_LABELS = {
    1: "Good",
    2: "Fair",
    3: "Moderate",
    4: "Poor",
    5: "Very Poor",
}


# ═══════════════════════════════════════════════════════════════════════════
# Input Structures
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class WeatherObservation:
    """
    Current weather at a location, as reported by the weather provider.

    Every field is optional; ``None`` means the provider omitted it.
    """
    temperature_k: Optional[float] = None
    humidity_pct: Optional[float] = None
    wind_speed_ms: Optional[float] = None
    condition: Optional[str] = None        # coarse class, e.g. "Rain"
    description: Optional[str] = None      # free text, e.g. "light rain"

    @property
    def temperature_c(self) -> Optional[float]:
        if self.temperature_k is None:
            return None
        return self.temperature_k - KELVIN_OFFSET


@dataclass(frozen=True)
class SeismicEvent:
    """One earthquake from the seismic feed."""
    magnitude: float
    time: datetime
    latitude: float = 0.0
    longitude: float = 0.0
    depth_km: float = 0.0
    place: str = "Unknown"
    event_id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.event_id,
            "magnitude": self.magnitude,
            "time": self.time.isoformat(),
            "latitude": self.latitude,
            "longitude": self.longitude,
            "depth_km": self.depth_km,
            "place": self.place,
        }


@dataclass(frozen=True)
class NewsRisk:
    """
    Pre-computed news-derived risk from the text-analysis collaborator.

    Only ``score`` feeds the aggregation; ``events`` is carried for display.
    """
    score: float
    events: List[Any] = field(default_factory=list)

    @property
    def event_count(self) -> int:
        return len(self.events)


# ═══════════════════════════════════════════════════════════════════════════
# Normalisation Functions
# ═══════════════════════════════════════════════════════════════════════════

def weather_severity(observation: Optional[WeatherObservation]) -> float:
    """
    Additive weather severity.

    Parameters
    ----------
    observation : WeatherObservation | None
        ``None`` means the weather signal is absent.

    Returns
    -------
    float
        0–12. Not clamped here; the weighted sum bounds the final score.

    Examples
    --------
    >>> weather_severity(WeatherObservation(315.15, 95, 25, "Thunderstorm"))
    12.0
    >>> weather_severity(None)
    0.0
    """
    if observation is None:
        return 0.0

    temp_c = observation.temperature_c
    if temp_c is None:
        temp_c = DEFAULT_TEMPERATURE_C
    humidity = observation.humidity_pct
    if humidity is None:
        humidity = DEFAULT_HUMIDITY_PCT
    wind = observation.wind_speed_ms
    if wind is None:
        wind = DEFAULT_WIND_SPEED_MS

    severity = 0.0

    if temp_c > 40 or temp_c < -10:
        severity += 4
    elif temp_c > 35 or temp_c < 0:
        severity += 2

    if humidity > 90:
        severity += 2

    if wind > 20:
        severity += 3
    elif wind > 10:
        severity += 1

    if observation.condition == "Thunderstorm":
        severity += 3
    elif observation.condition == "Rain":
        severity += 1

    return severity


def magnitude_contribution(magnitude: float) -> float:
    """Tiered contribution of a single event (0 below M4.5)."""
    for min_mag, contribution in SEISMIC_TIERS:
        if magnitude >= min_mag:
            return contribution
    return 0.0


def recent_significant_events(
    events: Sequence[SeismicEvent],
    now: Optional[datetime] = None,
) -> List[SeismicEvent]:
    """Events with M ≥ 4.5 that happened less than 24 hours before ``now``."""
    now = now or datetime.now(timezone.utc)
    return [
        e for e in events
        if e.magnitude >= SEISMIC_MIN_MAGNITUDE and now - e.time < SEISMIC_WINDOW
    ]


def seismic_severity(
    events: Optional[Sequence[SeismicEvent]],
    now: Optional[datetime] = None,
) -> float:
    """
    Dampened, clamped seismic severity.

    Parameters
    ----------
    events : sequence of SeismicEvent | None
        Candidate events; anything too small or too old is ignored.
    now : datetime | None
        Reference time (timezone-aware). Defaults to the current UTC time.

    Returns
    -------
    float
        0–10.

    Examples
    --------
    >>> t = datetime(2026, 1, 1, tzinfo=timezone.utc)
    >>> seismic_severity([SeismicEvent(6.2, t)], now=t)
    1.6
    """
    if not events:
        return 0.0

    total = sum(
        magnitude_contribution(e.magnitude)
        for e in recent_significant_events(events, now)
    )
    return min(total * SEISMIC_DAMPENING, SEVERITY_MAX)


def aqi_index_from_ordinal(ordinal: float) -> float:
    """Rescale the provider's 1–5 ordinal to a pollutant index."""
    return ordinal * AQI_ORDINAL_SCALE


def air_quality_severity(aqi_index: Optional[float]) -> float:
    """
    Step function on the (already rescaled) pollutant index.

    >>> air_quality_severity(aqi_index_from_ordinal(4))
    5.0
    >>> air_quality_severity(None)
    0.0
    """
    if not aqi_index:
        return 0.0
    for lower_bound, severity in AQI_TIERS:
        if aqi_index > lower_bound:
            return severity
    return 0.0


def news_severity(news: Optional[NewsRisk]) -> float:
    """News score clamped to [0, 10]; 0 when absent."""
    if news is None:
        return 0.0
    return max(0.0, min(float(news.score), SEVERITY_MAX))


def aqi_label(ordinal: int) -> str:
    return AQI_LABELS.get(int(ordinal), "Very Poor")


# ═══════════════════════════════════════════════════════════════════════════
# Provider Payload Parsing
# ═══════════════════════════════════════════════════════════════════════════

def parse_weather_payload(payload: Optional[Dict[str, Any]]) -> Optional[WeatherObservation]:
    """
    Build a WeatherObservation from an OpenWeather current-weather payload.

    OpenWeather format (abridged):
        {
            "main": {"temp": 301.2, "humidity": 78},
            "wind": {"speed": 4.1},
            "weather": [{"main": "Rain", "description": "light rain"}]
        }

    Missing sections become ``None`` fields, never errors.
    """
    if not payload:
        return None

    main = payload.get("main") or {}
    wind = payload.get("wind") or {}
    conditions = payload.get("weather") or []
    first = conditions[0] if conditions and isinstance(conditions[0], dict) else {}

    return WeatherObservation(
        temperature_k=_optional_float(main.get("temp")),
        humidity_pct=_optional_float(main.get("humidity")),
        wind_speed_ms=_optional_float(wind.get("speed")),
        condition=first.get("main"),
        description=first.get("description"),
    )


def parse_air_quality_ordinal(payload: Optional[Dict[str, Any]]) -> Optional[int]:
    """
    Extract the ordinal AQI from an OpenWeather air-pollution payload.

        {"list": [{"main": {"aqi": 3}, "components": {...}}]}
    """
    if not payload:
        return None
    entries = payload.get("list") or []
    if not entries:
        return None
    value = (entries[0].get("main") or {}).get("aqi")
    if value is None:
        return None
    return int(value)


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric weather value: %r", value)
        return None
