"""
Tests for the weighted risk aggregator.

Covers:
    • Weight tables (sum to one, discrete switch on news presence)
    • Level classification boundaries
    • Score rounding, ceiling and breakdown contents
    • End-to-end scenarios through compute_risk
"""

from __future__ import annotations

import pytest

from backend.app.risk.aggregator import (
    LEVEL_COLORS,
    WEIGHTS_WITH_NEWS,
    WEIGHTS_WITHOUT_NEWS,
    RiskLevel,
    SignalCategory,
    aggregate_severities,
    classify_risk_level,
    compute_risk,
    select_weights,
)
from backend.app.risk.signals import (
    KELVIN_OFFSET,
    NewsRisk,
    WeatherObservation,
    aqi_index_from_ordinal,
)

from conftest import NOW, quake

STORM = WeatherObservation(42 + KELVIN_OFFSET, 95, 25, "Thunderstorm")


# ═══════════════════════════════════════════════════════════════════════════
# Weight tables
# ═══════════════════════════════════════════════════════════════════════════

class TestWeightTables:
    @pytest.mark.parametrize("table", [WEIGHTS_WITH_NEWS, WEIGHTS_WITHOUT_NEWS])
    def test_sum_to_one(self, table):
        assert table.total == 1.0

    def test_with_news_values(self):
        assert WEIGHTS_WITH_NEWS.to_dict() == {
            "weather": 0.32, "seismic": 0.32, "air_quality": 0.16, "news": 0.20,
        }

    def test_without_news_values(self):
        assert WEIGHTS_WITHOUT_NEWS.to_dict() == {
            "weather": 0.40, "seismic": 0.40, "air_quality": 0.20,
        }

    def test_selection_is_boolean_switch(self):
        assert select_weights(True) is WEIGHTS_WITH_NEWS
        assert select_weights(False) is WEIGHTS_WITHOUT_NEWS

    def test_without_news_has_no_news_category(self):
        assert SignalCategory.NEWS not in WEIGHTS_WITHOUT_NEWS.categories
        assert WEIGHTS_WITHOUT_NEWS.weight_for(SignalCategory.NEWS) == 0.0


# ═══════════════════════════════════════════════════════════════════════════
# Classification
# ═══════════════════════════════════════════════════════════════════════════

class TestClassification:
    @pytest.mark.parametrize("score, level", [
        (0.0, RiskLevel.LOW),
        (3.0, RiskLevel.LOW),
        (3.1, RiskLevel.MODERATE),
        (5.0, RiskLevel.MODERATE),
        (5.1, RiskLevel.HIGH),
        (7.0, RiskLevel.HIGH),
        (7.1, RiskLevel.EXTREME),
        (10.0, RiskLevel.EXTREME),
    ])
    def test_boundaries(self, score, level):
        assert classify_risk_level(score) is level

    def test_every_level_has_a_colour(self):
        assert set(LEVEL_COLORS) == set(RiskLevel)
        assert RiskLevel.EXTREME.color == "red"
        assert RiskLevel.LOW.color == "green"


# ═══════════════════════════════════════════════════════════════════════════
# Aggregation
# ═══════════════════════════════════════════════════════════════════════════

class TestAggregation:
    def test_no_signals(self):
        result = compute_risk(None, [], None)
        assert result.score == 0.0
        assert result.level is RiskLevel.LOW
        assert result.breakdown == {"weather": 0.0, "seismic": 0.0, "air_quality": 0.0}
        assert not result.news_present

    def test_weather_only_is_not_capped_by_normaliser(self):
        result = compute_risk(STORM, [], None)
        assert result.breakdown["weather"] == 12.0
        assert result.score == pytest.approx(4.8)
        assert result.level is RiskLevel.MODERATE

    def test_full_scenario_without_news(self):
        result = compute_risk(
            STORM, [quake(7.0), quake(6.5)], aqi_index_from_ordinal(5), now=NOW,
        )
        # 0.4·12 + 0.4·6.4 + 0.2·7 = 8.76
        assert result.score == pytest.approx(8.8)
        assert result.level is RiskLevel.EXTREME
        assert result.breakdown == {"weather": 12.0, "seismic": 6.4, "air_quality": 7.0}

    def test_explicit_zero_news_switches_table(self):
        result = compute_risk(
            STORM, [quake(7.0), quake(6.5)], aqi_index_from_ordinal(5),
            NewsRisk(score=0.0), now=NOW,
        )
        # 0.32·12 + 0.32·6.4 + 0.16·7 + 0.2·0 = 7.008
        assert result.score == pytest.approx(7.0)
        assert result.level is RiskLevel.HIGH
        assert result.breakdown["news"] == 0.0
        assert result.news_present
        assert result.weights is WEIGHTS_WITH_NEWS

    def test_news_contributes(self):
        result = compute_risk(None, [], None, NewsRisk(score=9.0, events=[1, 2, 3]))
        assert result.score == pytest.approx(1.8)
        assert result.news_event_count == 3

    def test_score_ceiling(self):
        severities = {
            SignalCategory.WEATHER: 12.0,
            SignalCategory.SEISMIC: 10.0,
            SignalCategory.AIR_QUALITY: 10.0,
        }
        result = aggregate_severities(severities, news_present=False)
        assert result.score == 10.0
        assert result.level is RiskLevel.EXTREME

    def test_breakdown_rounded(self):
        result = compute_risk(None, [quake(4.6)], None, now=NOW)
        assert result.breakdown["seismic"] == 0.2  # 0.3 · 0.8 = 0.24

    def test_score_matches_weighted_breakdown(self):
        result = compute_risk(
            WeatherObservation(36 + KELVIN_OFFSET, 92, 12, "Rain"),
            [quake(5.6)],
            aqi_index_from_ordinal(3),
            NewsRisk(score=6.0),
            now=NOW,
        )
        expected = sum(
            result.weights.to_dict()[k] * v for k, v in result.breakdown.items()
        )
        assert result.score == pytest.approx(round(expected, 1))

    def test_to_dict(self):
        d = compute_risk(STORM, [], None, unavailable_signals=["seismic"]).to_dict()
        assert d["level"] == "Moderate"
        assert d["color"] == "yellow"
        assert d["weights"] == WEIGHTS_WITHOUT_NEWS.to_dict()
        assert d["unavailable_signals"] == ["seismic"]
        assert d["news_present"] is False
