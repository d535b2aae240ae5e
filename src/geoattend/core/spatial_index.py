"""
Lightweight spatial indexing (grid bucket) for lat/lon points.

Used by proximity search when exact recall matters: unlike a geohash-prefix filter,
a radius query here visits every cell the search circle can touch, including cells
across the antimeridian, so no entity inside the radius is missed.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from geoattend.core.geo import EARTH_RADIUS_M, Coordinate, haversine_m

T = TypeVar("T")

_M_PER_DEG = math.pi * EARTH_RADIUS_M / 180.0


@dataclass(frozen=True)
class _Entry(Generic[T]):
    item: T
    point: Coordinate


class SpatialGridIndex(Generic[T]):
    def __init__(
        self,
        items: list[T],
        *,
        get_coordinate: Callable[[T], Coordinate],
        cell_size_m: float = 1200.0,
    ):
        if float(cell_size_m) <= 0:
            raise ValueError("cell_size_m must be > 0")
        self._cell_deg = float(cell_size_m) / _M_PER_DEG
        self._lon_cells = int(math.ceil(360.0 / self._cell_deg))
        self._cells: dict[tuple[int, int], list[_Entry[T]]] = {}
        self._size = 0

        for it in items:
            point = get_coordinate(it)
            self._cells.setdefault(self._cell_key(point.lat, point.lon), []).append(_Entry(item=it, point=point))
            self._size += 1

    def __len__(self) -> int:
        return self._size

    def _lat_index(self, lat: float) -> int:
        return int(math.floor((lat + 90.0) / self._cell_deg))

    def _lon_index(self, lon: float) -> int:
        return int(math.floor((lon + 180.0) / self._cell_deg)) % self._lon_cells

    def _cell_key(self, lat: float, lon: float) -> tuple[int, int]:
        return self._lat_index(lat), self._lon_index(lon)

    def _candidate_cells(self, center: Coordinate, radius_m: float) -> list[tuple[int, int]] | None:
        """Cells the search circle can touch, or None when a full scan is cheaper."""
        dlat = radius_m / _M_PER_DEG
        lat_min = max(-90.0, center.lat - dlat)
        lat_max = min(90.0, center.lat + dlat)

        edge_lat = max(abs(lat_min), abs(lat_max))
        if edge_lat >= 89.999:
            lon_span = None
        else:
            dlon = 1.01 * dlat / math.cos(math.radians(edge_lat))
            lon_span = None if dlon >= 180.0 else dlon

        lat_rows = range(self._lat_index(lat_min), self._lat_index(lat_max) + 1)
        if lon_span is None:
            lon_cols = range(self._lon_cells)
        else:
            first = int(math.floor((center.lon - lon_span + 180.0) / self._cell_deg))
            last = int(math.floor((center.lon + lon_span + 180.0) / self._cell_deg))
            lon_cols = range(first, last + 1)

        if len(lat_rows) * min(len(lon_cols), self._lon_cells) > len(self._cells):
            return None
        cols = sorted({c % self._lon_cells for c in lon_cols})
        return [(r, c) for r in lat_rows for c in cols]

    def query_within(self, center: Coordinate, radius_m: float) -> list[tuple[T, float]]:
        """Return `(item, distance_m)` for every item within `radius_m` of `center`."""
        r = float(radius_m)
        if r < 0:
            return []

        keys = self._candidate_cells(center, r)
        if keys is None:
            buckets = list(self._cells.values())
        else:
            buckets = [self._cells[k] for k in keys if k in self._cells]

        out: list[tuple[T, float]] = []
        for cell in buckets:
            for e in cell:
                d = haversine_m(center, e.point)
                if d <= r:
                    out.append((e.item, d))
        return out
