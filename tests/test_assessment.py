"""
Tests for the live assessment service (concurrent fetch + degradation).
"""

from __future__ import annotations

import pytest

from backend.app.core.errors import ExternalServiceError
from backend.app.risk.aggregator import RiskLevel, WEIGHTS_WITH_NEWS
from backend.app.risk.assessment import assess_location
from backend.app.risk.signals import KELVIN_OFFSET, NewsRisk, WeatherObservation

from conftest import NOW, FakeSeismicFeed, FakeWeatherProvider, quake

STORM = WeatherObservation(42 + KELVIN_OFFSET, 95, 25, "Thunderstorm")


class TestAssessLocation:
    @pytest.mark.asyncio
    async def test_all_sources_available(self):
        result = await assess_location(
            13.0, 80.0,
            weather_provider=FakeWeatherProvider(weather=STORM, aqi=5),
            seismic_feed=FakeSeismicFeed([quake(7.0, lat=13.5, lon=80.5), quake(6.5, lat=12.0, lon=79.0)]),
            now=NOW,
        )
        assert result.score == pytest.approx(8.8)
        assert result.level is RiskLevel.EXTREME
        assert result.unavailable_signals == []

    @pytest.mark.asyncio
    async def test_failed_weather_degrades_to_absent(self):
        result = await assess_location(
            13.0, 80.0,
            weather_provider=FakeWeatherProvider(
                weather_exc=ExternalServiceError("openweather", "down"), aqi=4,
            ),
            seismic_feed=FakeSeismicFeed(),
            now=NOW,
        )
        assert result.unavailable_signals == ["weather"]
        assert result.breakdown["weather"] == 0.0
        assert result.breakdown["air_quality"] == 5.0
        assert result.score == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_every_source_failing_still_scores(self):
        result = await assess_location(
            13.0, 80.0,
            weather_provider=FakeWeatherProvider(
                weather_exc=RuntimeError("boom"), aqi_exc=RuntimeError("boom"),
            ),
            seismic_feed=FakeSeismicFeed(exc=ExternalServiceError("usgs", "down")),
            now=NOW,
        )
        assert result.score == 0.0
        assert result.level is RiskLevel.LOW
        assert sorted(result.unavailable_signals) == ["air_quality", "seismic", "weather"]

    @pytest.mark.asyncio
    async def test_distant_quakes_fall_back_to_feed_head(self):
        far = [quake(6.0, lat=-40.0, lon=-70.0) for _ in range(12)]
        result = await assess_location(
            13.0, 80.0,
            weather_provider=FakeWeatherProvider(),
            seismic_feed=FakeSeismicFeed(far),
            now=NOW,
        )
        # first 10 events only: 10 × 2 × 0.8 = 16 → clamped to 10
        assert result.breakdown["seismic"] == 10.0

    @pytest.mark.asyncio
    async def test_news_selects_four_way_table(self):
        result = await assess_location(
            13.0, 80.0,
            weather_provider=FakeWeatherProvider(),
            seismic_feed=FakeSeismicFeed(),
            news_risk=NewsRisk(score=5.0, events=["a"]),
            now=NOW,
        )
        assert result.weights is WEIGHTS_WITH_NEWS
        assert result.score == pytest.approx(1.0)
        assert result.news_event_count == 1
