"""
Geospatial helpers.

We keep a tiny geometry layer here so the geofence and fraud modules can do distance
calculations without pulling in heavier GIS dependencies. Distances use a spherical
Earth (R = 6 371 000 m); for attendance-scale pairs this agrees with a PostGIS
geography distance to well under 0.5%.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from math import asin, cos, radians, sin, sqrt

from geoattend.domain.errors import InvalidCoordinate

EARTH_RADIUS_M = 6_371_000


def check_coordinate(lat: float, lon: float) -> tuple[float, float]:
    """Return `(lat, lon)` as floats or raise `InvalidCoordinate`."""
    try:
        lat_f = float(lat)
        lon_f = float(lon)
    except (TypeError, ValueError):
        raise InvalidCoordinate(lat, lon) from None
    if not (math.isfinite(lat_f) and math.isfinite(lon_f)):
        raise InvalidCoordinate(lat, lon)
    if not (-90.0 <= lat_f <= 90.0 and -180.0 <= lon_f <= 180.0):
        raise InvalidCoordinate(lat, lon)
    return lat_f, lon_f


@dataclass(frozen=True)
class Coordinate:
    """A latitude/longitude pair in decimal degrees (WGS84)."""

    lat: float
    lon: float

    def __post_init__(self) -> None:
        lat, lon = check_coordinate(self.lat, self.lon)
        # frozen: bypass __setattr__ to store the normalized floats
        object.__setattr__(self, "lat", lat)
        object.__setattr__(self, "lon", lon)


def haversine_m(a: Coordinate, b: Coordinate) -> float:
    """Compute great-circle distance in meters between two points."""
    lat1 = radians(a.lat)
    lon1 = radians(a.lon)
    lat2 = radians(b.lat)
    lon2 = radians(b.lon)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    # Float error can push h a hair past 1.0 for antipodal points.
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_M * asin(sqrt(h))


def distance_m(a: Coordinate, b: Coordinate) -> float:
    """Distance between two coordinates in meters (0.0 for identical points)."""
    if a == b:
        return 0.0
    return haversine_m(a, b)
