"""Great-circle distance between WGS84 coordinates.

Inputs are not range-checked; NaN coordinates yield NaN.
"""

from __future__ import annotations

from dataclasses import dataclass
from math import asin, cos, radians, sin, sqrt

from ..core.constants import EARTH_RADIUS_METERS


@dataclass(frozen=True)
class Coordinate:
    """A latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float


def distance_meters(a: Coordinate, b: Coordinate) -> float:
    """Haversine distance in meters between two points."""
    lat1 = radians(a.latitude)
    lat2 = radians(b.latitude)
    dlat = lat2 - lat1
    dlon = radians(b.longitude - a.longitude)

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    # Rounding can push antipodal points just past 1.0.
    if h > 1.0:
        h = 1.0
    return 2 * EARTH_RADIUS_METERS * asin(sqrt(h))
