"""
Shared fixtures: test settings, in-process provider fakes, and a
throwaway SQLite record store.

Environment variables are set before any ``backend`` import so the
settings singleton picks them up.
"""

from __future__ import annotations

import asyncio
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DATABASE_AUTO_CREATE"] = "false"
os.environ["CACHE_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from backend.app.api import deps
from backend.app.core.database import Base, get_db
from backend.app.main import app
from backend.app.records import models  # noqa: F401  (registers tables)
from backend.app.risk.signals import SeismicEvent, WeatherObservation
from backend.app.spatial.distance import Coordinate

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


# ═══════════════════════════════════════════════════════════════════════════
# Provider fakes
# ═══════════════════════════════════════════════════════════════════════════

class FakeGeoClient:
    """GeoQueryClient returning a canned payload (or raising)."""

    def __init__(self, payload: Any = None, exc: Optional[BaseException] = None, delay: float = 0.0):
        self.payload = payload if payload is not None else {"elements": []}
        self.exc = exc
        self.delay = delay
        self.calls: List[Dict[str, Any]] = []

    async def query_amenities(self, origin: Coordinate, radius_m: int, amenity_types: Sequence[str]):
        self.calls.append({"origin": origin, "radius_m": radius_m, "amenity_types": tuple(amenity_types)})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc is not None:
            raise self.exc
        return self.payload


class FakeWeatherProvider:
    def __init__(
        self,
        weather: Optional[WeatherObservation] = None,
        aqi: Optional[int] = None,
        weather_exc: Optional[Exception] = None,
        aqi_exc: Optional[Exception] = None,
    ):
        self.weather = weather
        self.aqi = aqi
        self.weather_exc = weather_exc
        self.aqi_exc = aqi_exc

    async def fetch_weather(self, latitude: float, longitude: float):
        if self.weather_exc is not None:
            raise self.weather_exc
        return self.weather

    async def fetch_air_quality(self, latitude: float, longitude: float):
        if self.aqi_exc is not None:
            raise self.aqi_exc
        return self.aqi

    async def close(self) -> None:
        pass


class FakeSeismicFeed:
    def __init__(self, events: Optional[List[SeismicEvent]] = None, exc: Optional[Exception] = None):
        self.events = events or []
        self.exc = exc

    async def fetch_recent_events(self):
        if self.exc is not None:
            raise self.exc
        return list(self.events)

    async def close(self) -> None:
        pass


def node(osm_id: int, lat: float, lon: float, amenity: str, name: Optional[str] = None) -> Dict[str, Any]:
    tags = {"amenity": amenity}
    if name is not None:
        tags["name"] = name
    return {"type": "node", "id": osm_id, "lat": lat, "lon": lon, "tags": tags}


def way(osm_id: int, lat: float, lon: float, amenity: str, name: Optional[str] = None) -> Dict[str, Any]:
    tags = {"amenity": amenity}
    if name is not None:
        tags["name"] = name
    return {"type": "way", "id": osm_id, "center": {"lat": lat, "lon": lon}, "tags": tags}


def quake(magnitude: float, hours_ago: float = 1.0, lat: float = 0.0, lon: float = 0.0, place: str = "Test") -> SeismicEvent:
    return SeismicEvent(
        magnitude=magnitude,
        time=NOW - timedelta(hours=hours_ago),
        latitude=lat,
        longitude=lon,
        place=place,
    )


# ═══════════════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def origin() -> Coordinate:
    return Coordinate(13.0827, 80.2707)


@pytest.fixture
def client():
    """TestClient without lifespan (no table creation, no shutdown hooks)."""
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def db_client(client, tmp_path):
    """TestClient whose ``get_db`` points at a fresh SQLite file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'records.db'}", poolclass=NullPool)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    state = {"created": False}

    async def _get_test_db():
        if not state["created"]:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            state["created"] = True
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_test_db
    return client


@pytest.fixture
def override_locator():
    """Install a FakeGeoClient-backed locator; returns the fake."""
    from backend.app.responders.locator import ResponderLocator

    def _install(fake: FakeGeoClient, **kwargs) -> FakeGeoClient:
        app.dependency_overrides[deps.get_locator] = lambda: ResponderLocator(fake, **kwargs)
        return fake

    return _install
