"""
Tests for great-circle distance and coordinate validation.
"""

from __future__ import annotations

import pytest

from backend.app.spatial.distance import (
    EARTH_RADIUS_KM,
    Coordinate,
    format_distance,
    haversine,
)

CHENNAI = Coordinate(13.0827, 80.2707)
MUMBAI = Coordinate(19.0760, 72.8777)


class TestHaversine:
    def test_zero_distance(self):
        assert haversine(CHENNAI, CHENNAI) == 0.0

    def test_symmetric(self):
        assert haversine(CHENNAI, MUMBAI) == pytest.approx(haversine(MUMBAI, CHENNAI))

    def test_one_degree_on_equator(self):
        assert haversine(Coordinate(0, 0), Coordinate(0, 1)) == pytest.approx(111.19, abs=0.5)

    def test_chennai_to_mumbai(self):
        # ~1030 km great-circle
        assert haversine(CHENNAI, MUMBAI) == pytest.approx(1030, abs=15)

    def test_antipodes_is_half_circumference(self):
        d = haversine(Coordinate(0, 0), Coordinate(0, 180))
        assert d == pytest.approx(3.141592653589793 * EARTH_RADIUS_KM, rel=1e-9)

    def test_crosses_antimeridian(self):
        d = haversine(Coordinate(0, 179.5), Coordinate(0, -179.5))
        assert d == pytest.approx(111.19, abs=0.5)


class TestCoordinate:
    @pytest.mark.parametrize("lat, lon", [(91, 0), (-90.01, 0), (0, 180.5), (0, -181)])
    def test_out_of_range(self, lat, lon):
        with pytest.raises(ValueError):
            Coordinate(lat, lon)

    def test_poles_and_antimeridian_allowed(self):
        Coordinate(90, 180)
        Coordinate(-90, -180)

    def test_to_dict(self):
        assert CHENNAI.to_dict() == {"lat": 13.0827, "lng": 80.2707}


class TestFormatDistance:
    @pytest.mark.parametrize("km, text", [
        (0.0, "0 m"), (0.45, "450 m"), (0.999, "999 m"), (1.0, "1.00 km"), (3.7266, "3.73 km"),
    ])
    def test_format(self, km, text):
        assert format_distance(km) == text
