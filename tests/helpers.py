"""Builders shared by the test modules."""

import math
from datetime import datetime, timezone

from geoattend.core import geohash
from geoattend.core.geo import EARTH_RADIUS_M, Coordinate
from geoattend.domain.models import GeospatialEntity

# Meters per degree of latitude on the haversine sphere; moving due north by
# `m / M_PER_DEG_LAT` degrees puts a point exactly `m` meters away.
M_PER_DEG_LAT = math.pi * EARTH_RADIUS_M / 180.0

KATHMANDU = Coordinate(lat=27.7172, lon=85.3240)


def north_of(point: Coordinate, meters: float) -> Coordinate:
    return Coordinate(lat=point.lat + meters / M_PER_DEG_LAT, lon=point.lon)


def make_entity(
    name: str,
    code: str,
    point: Coordinate,
    *,
    radius_m: int = 100,
    department_ids: list[str] | None = None,
    created_at: datetime | None = None,
) -> GeospatialEntity:
    return GeospatialEntity(
        id=f"id-{code}",
        name=name,
        code=code,
        latitude=point.lat,
        longitude=point.lon,
        geohash=geohash.encode(point.lat, point.lon, 8),
        radius_m=radius_m,
        department_ids=department_ids or [],
        created_at=created_at or datetime(2025, 1, 1, tzinfo=timezone.utc),
    )
