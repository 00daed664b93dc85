"""
distance.py — Great-circle distance between geographic coordinates.

All distances are in **kilometers**. Coordinates are in **decimal degrees**.

Mathematical Foundation — Haversine Formula
============================================
Given two points P₁(φ₁, λ₁) and P₂(φ₂, λ₂):

    a = sin²(Δφ / 2) + cos(φ₁) · cos(φ₂) · sin²(Δλ / 2)
    c = 2 · atan2(√a, √(1 − a))
    d = R · c

Where:
    φ  = latitude in radians
    λ  = longitude in radians
    R  = Earth's mean radius = 6,371 km

The function is symmetric, d(P, P) = 0, and one degree of longitude on the
equator comes out at ≈ 111.19 km.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EARTH_RADIUS_KM: float = 6_371.0


# ---------------------------------------------------------------------------
# Core data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Coordinate:
    """A geographic point in decimal degrees."""
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not (-90.0 <= self.latitude <= 90.0):
            raise ValueError(
                f"Latitude must be in [-90, 90], got {self.latitude}"
            )
        if not (-180.0 <= self.longitude <= 180.0):
            raise ValueError(
                f"Longitude must be in [-180, 180], got {self.longitude}"
            )

    @property
    def lat_rad(self) -> float:
        """Latitude in radians."""
        return math.radians(self.latitude)

    @property
    def lon_rad(self) -> float:
        """Longitude in radians."""
        return math.radians(self.longitude)

    def to_dict(self) -> dict:
        return {"lat": self.latitude, "lng": self.longitude}


# ---------------------------------------------------------------------------
# Haversine implementation
# ---------------------------------------------------------------------------

def haversine(point1: Coordinate, point2: Coordinate) -> float:
    """
    Compute the great-circle distance between two points.

    Parameters
    ----------
    point1 : Coordinate
        Origin point (e.g. caller location).
    point2 : Coordinate
        Target point (e.g. a hospital).

    Returns
    -------
    float
        Distance in kilometers, unrounded. Callers round for display.

    Examples
    --------
    >>> round(haversine(Coordinate(0, 0), Coordinate(0, 1)), 2)
    111.19
    >>> haversine(Coordinate(13.08, 80.27), Coordinate(13.08, 80.27))
    0.0
    """
    d_lat = point2.lat_rad - point1.lat_rad
    d_lon = point2.lon_rad - point1.lon_rad

    a = (
        math.sin(d_lat / 2.0) ** 2
        + math.cos(point1.lat_rad)
        * math.cos(point2.lat_rad)
        * math.sin(d_lon / 2.0) ** 2
    )

    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))

    return EARTH_RADIUS_KM * c


# ---------------------------------------------------------------------------
# Utility: Human-readable distance
# ---------------------------------------------------------------------------

def format_distance(km: float) -> str:
    """
    Format a distance for display.

    >>> format_distance(0.45)
    '450 m'
    >>> format_distance(3.7266)
    '3.73 km'
    """
    if km < 1.0:
        return f"{int(round(km * 1000))} m"
    return f"{km:.2f} km"
