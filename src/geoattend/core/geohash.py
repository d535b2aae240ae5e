"""
Geohash encoding (via `pygeohash`).

Entity records are stored at precision 8 (~38m x 19m cells); proximity search prunes
on a 6-character prefix (~1.2km x 0.6km). This module adds the coordinate range
check, the precision bound and alphabet validation on top of the library codec.
"""

from __future__ import annotations

import pygeohash

from geoattend.core.geo import check_coordinate

BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"
_ALPHABET = frozenset(BASE32)

ENTITY_PRECISION = 8
MAX_PRECISION = 12


def encode(lat: float, lon: float, precision: int = ENTITY_PRECISION) -> str:
    """Encode a coordinate into a geohash string of `precision` characters."""
    lat_f, lon_f = check_coordinate(lat, lon)
    if not 1 <= int(precision) <= MAX_PRECISION:
        raise ValueError(f"precision must be between 1 and {MAX_PRECISION}")
    return pygeohash.encode(lat_f, lon_f, precision=int(precision))


def _normalize(geohash: str) -> str:
    value = geohash.strip().lower()
    if not value:
        raise ValueError("geohash must not be empty")
    for ch in value:
        if ch not in _ALPHABET:
            raise ValueError(f"Invalid geohash character {ch!r} in {geohash!r}")
    return value


def bounds(geohash: str) -> tuple[float, float, float, float]:
    """Return the cell of `geohash` as (min_lat, min_lon, max_lat, max_lon)."""
    lat, lon, lat_err, lon_err = pygeohash.decode_exactly(_normalize(geohash))
    return lat - lat_err, lon - lon_err, lat + lat_err, lon + lon_err


def decode(geohash: str) -> tuple[float, float]:
    """Return the (lat, lon) centre of the geohash cell."""
    lat, lon, _, _ = pygeohash.decode_exactly(_normalize(geohash))
    return lat, lon
