"""
Tests for core plumbing: cache keys, cache degradation, log formatting,
the error hierarchy and health aggregation.
"""

from __future__ import annotations

import json
import logging

import pytest

from backend.app.core import cache, health
from backend.app.core.errors import (
    ExternalServiceError,
    LocatorUnavailable,
    NotFoundError,
)
from backend.app.core.logging_config import (
    JSONFormatter,
    PrettyFormatter,
    get_request_context,
    set_request_context,
)


class TestCacheKey:
    def test_rounded_to_three_places(self):
        assert cache.responder_cache_key(28.61394, 77.20902, 5000) == "responders:28.614:77.209:5000"

    def test_nearby_origins_share_key(self):
        a = cache.responder_cache_key(13.08271, 80.27071, 5000)
        b = cache.responder_cache_key(13.08269, 80.27069, 5000)
        assert a == b

    def test_radius_is_part_of_key(self):
        assert cache.responder_cache_key(0, 0, 5000) != cache.responder_cache_key(0, 0, 2000)

    @pytest.mark.asyncio
    async def test_disabled_cache_is_a_miss(self):
        assert await cache.cache_get("anything") is None
        assert await cache.cache_set("anything", {"a": 1}) is False
        assert await cache.ping_cache() is False


class TestErrors:
    def test_locator_unavailable(self):
        err = LocatorUnavailable("timeout")
        assert err.status_code == 503
        assert err.error_code == "LOCATOR_UNAVAILABLE"
        assert err.reason == "timeout"
        assert "timeout" not in err.message

    def test_not_found(self):
        err = NotFoundError("EmergencyReport", id=3)
        assert err.status_code == 404
        assert err.details == {"resource": "EmergencyReport", "id": 3}

    def test_external_service(self):
        err = ExternalServiceError("usgs", "HTTP 500")
        assert err.status_code == 502
        assert "usgs" in err.message


class TestJSONFormatter:
    def test_extra_fields_and_context(self):
        set_request_context(request_id="req-1", endpoint="/api/v1/responders")
        try:
            record = logging.LogRecord("t", logging.INFO, __file__, 1, "located %d", (3,), None)
            record.responder_count = 3
            record.radius_m = 5000
            entry = json.loads(JSONFormatter().format(record))
        finally:
            set_request_context()

        assert entry["message"] == "located 3"
        assert entry["responder_count"] == 3
        assert entry["radius_m"] == 5000
        assert entry["context"]["request_id"] == "req-1"
        assert get_request_context() == {}


class TestHealth:
    @pytest.mark.asyncio
    async def test_redis_disabled_is_healthy(self):
        comp = await health.check_redis()
        assert comp.status is health.HealthStatus.HEALTHY
        assert comp.message == "Caching disabled"

    @pytest.mark.asyncio
    async def test_missing_keys_degrade(self, monkeypatch):
        monkeypatch.setattr(health.settings, "OPENWEATHER_API_KEY", None)
        monkeypatch.setattr(health.settings, "GROQ_API_KEY", "gsk")
        comp = await health.check_external_apis()
        assert comp.status is health.HealthStatus.DEGRADED
        assert "openweather" in comp.message

    @pytest.mark.asyncio
    async def test_database_failure_makes_report_unhealthy(self, monkeypatch):
        async def broken():
            return health.ComponentHealth(name="database", status=health.HealthStatus.UNHEALTHY)

        monkeypatch.setattr(health, "check_database", broken)
        report = await health.run_health_check()
        assert report.status is health.HealthStatus.UNHEALTHY
        assert report.to_dict()["components"][0]["name"] == "database"


class TestPrettyFormatter:
    def test_structured_fields_rendered(self):
        record = logging.LogRecord("t", logging.WARNING, __file__, 1, "slow lookup", (), None)
        record.provider = "overpass"
        record.duration_ms = 1234.567
        line = PrettyFormatter().format(record)
        assert "slow lookup" in line
        assert "provider=overpass" in line
        assert "duration_ms=1234.6" in line
