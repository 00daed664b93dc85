"""
API tests for GET /api/v1/responders.

The locator dependency is swapped for one backed by FakeGeoClient;
Redis is disabled in tests, so the cache path is exercised by patching
the route's cache helpers.
"""

from __future__ import annotations

import httpx

from backend.app.api.v1 import responders as responders_route

from conftest import FakeGeoClient, node, way


def elements():
    return [
        way(1, 13.10, 80.30, "hospital", "Government General Hospital"),
        node(2, 13.083, 80.271, "police", "Egmore Police Station"),
        node(3, 13.09, 80.28, "fire_station"),
    ]


class TestRespondersEndpoint:
    def test_ranked_response(self, client, override_locator):
        override_locator(FakeGeoClient({"elements": elements()}))
        resp = client.get("/api/v1/responders", params={"lat": 13.0827, "lng": 80.2707})
        assert resp.status_code == 200
        body = resp.json()
        assert body["count"] == 3
        assert body["radius_m"] == 5000
        assert body["origin"] == {"lat": 13.0827, "lng": 80.2707}
        assert body["cached"] is False
        names = [r["name"] for r in body["responders"]]
        assert names == ["Egmore Police Station", "Unnamed fire_station", "Government General Hospital"]
        distances = [r["distance"] for r in body["responders"]]
        assert distances == sorted(distances)
        assert body["responders"][0]["type"] == "police"

    def test_radius_override(self, client, override_locator):
        fake = override_locator(FakeGeoClient())
        resp = client.get("/api/v1/responders", params={"lat": 13.0, "lng": 80.0, "radius": 2000})
        assert resp.status_code == 200
        assert resp.json()["radius_m"] == 2000
        assert fake.calls[0]["radius_m"] == 2000

    def test_empty_result(self, client, override_locator):
        override_locator(FakeGeoClient({"elements": []}))
        body = client.get("/api/v1/responders", params={"lat": 13.0, "lng": 80.0}).json()
        assert body["count"] == 0
        assert body["responders"] == []

    def test_provider_failure_is_503(self, client, override_locator):
        override_locator(FakeGeoClient(exc=httpx.ConnectError("refused")))
        resp = client.get("/api/v1/responders", params={"lat": 13.0, "lng": 80.0})
        assert resp.status_code == 503
        error = resp.json()["error"]
        assert error["code"] == "LOCATOR_UNAVAILABLE"
        assert error["message"] == "Emergency services lookup temporarily unavailable"
        assert "responders" not in resp.json()

    def test_invalid_coordinates(self, client, override_locator):
        fake = override_locator(FakeGeoClient())
        resp = client.get("/api/v1/responders", params={"lat": 95, "lng": 80})
        assert resp.status_code == 422
        assert fake.calls == []

    def test_missing_coordinates(self, client):
        assert client.get("/api/v1/responders").status_code == 422

    def test_cache_hit_skips_provider(self, client, override_locator, monkeypatch):
        fake = override_locator(FakeGeoClient())
        cached = {
            "count": 1,
            "radius_m": 5000,
            "origin": {"lat": 13.0, "lng": 80.0},
            "responders": [{
                "name": "Cached Hospital", "type": "hospital", "lat": 13.001, "lng": 80.0,
                "distance": 0.11, "distance_display": "111 m",
            }],
        }
        keys = []

        async def fake_get(key):
            keys.append(key)
            return cached

        monkeypatch.setattr(responders_route, "cache_get", fake_get)
        body = client.get("/api/v1/responders", params={"lat": 13.00004, "lng": 80.00001}).json()
        assert body["cached"] is True
        assert body["responders"][0]["name"] == "Cached Hospital"
        assert keys == ["responders:13.000:80.000:5000"]
        assert fake.calls == []

    def test_result_is_stored_in_cache(self, client, override_locator, monkeypatch):
        override_locator(FakeGeoClient({"elements": elements()}))
        stored = {}

        async def fake_set(key, value, ttl=None):
            stored[key] = (value, ttl)
            return True

        monkeypatch.setattr(responders_route, "cache_set", fake_set)
        client.get("/api/v1/responders", params={"lat": 13.0827, "lng": 80.2707})
        value, ttl = stored["responders:13.083:80.271:5000"]
        assert value["count"] == 3
        assert "cached" not in value
        assert ttl == 900

    def test_failure_is_not_cached(self, client, override_locator, monkeypatch):
        override_locator(FakeGeoClient(exc=httpx.ReadTimeout("slow")))
        stored = {}

        async def fake_set(key, value, ttl=None):
            stored[key] = value
            return True

        monkeypatch.setattr(responders_route, "cache_set", fake_set)
        assert client.get("/api/v1/responders", params={"lat": 13.0, "lng": 80.0}).status_code == 503
        assert stored == {}
