"""
Nearby-entity search.

Two candidate strategies:
- `geohash_prefix` (default): keep entities whose stored geohash shares the first
  `prefix_length` characters of the center's geohash, then filter by exact distance.
  Cheap, but an entity just across a cell edge from the center is not returned even
  when it is inside the radius, and radii larger than the prefix cell cannot reach
  past it.
- `grid`: exact recall through `SpatialGridIndex` over the whole catalog.

Results are sorted ascending by distance and capped (50 by default).
"""

from __future__ import annotations

import logging
from typing import Literal

from geoattend.catalog.store import EntityRepository
from geoattend.config.settings import GeofenceSettings
from geoattend.core import geohash
from geoattend.core.geo import Coordinate, distance_m
from geoattend.core.spatial_index import SpatialGridIndex
from geoattend.domain.models import GeospatialEntity, NearbyEntity

logger = logging.getLogger(__name__)

Strategy = Literal["geohash_prefix", "grid"]


def search_prefix(center: Coordinate, *, precision: int = geohash.ENTITY_PRECISION, prefix_length: int = 6) -> str:
    """Geohash prefix used to prune candidates around `center`."""
    return geohash.encode(center.lat, center.lon, precision)[:prefix_length]


class ProximitySearch:
    """Find entities near a point using the configured candidate strategy."""

    def __init__(self, entities: EntityRepository, settings: GeofenceSettings | None = None):
        self._entities = entities
        self._settings = settings or GeofenceSettings()
        self._index: SpatialGridIndex[GeospatialEntity] | None = None
        self._index_version: int | None = None

    def _check_radius(self, radius_m: float) -> float:
        s = self._settings
        r = float(radius_m)
        if not s.min_search_radius_m <= r <= s.max_search_radius_m:
            raise ValueError(
                f"radius_m must be between {s.min_search_radius_m:g} and {s.max_search_radius_m:g} meters"
            )
        return r

    def _prefix_candidates(self, center: Coordinate, radius_m: float) -> list[tuple[GeospatialEntity, float]]:
        prefix = search_prefix(center, precision=self._settings.geohash_precision, prefix_length=self._settings.prefix_length)
        hits: list[tuple[GeospatialEntity, float]] = []
        for entity in self._entities.with_geohash_prefix(prefix):
            d = distance_m(center, entity.coordinate)
            if d <= radius_m:
                hits.append((entity, d))
        return hits

    def grid_index(self) -> SpatialGridIndex[GeospatialEntity]:
        """Grid index over the catalog, rebuilt only when the repository version changes."""
        version = self._entities.version
        if self._index is None or self._index_version != version:
            self._index = SpatialGridIndex(
                self._entities.all(),
                get_coordinate=lambda e: e.coordinate,
                cell_size_m=self._settings.grid_cell_size_m,
            )
            self._index_version = version
            logger.debug("Built grid index over %d entities (version %s)", len(self._index), version)
        return self._index

    def _grid_candidates(self, center: Coordinate, radius_m: float) -> list[tuple[GeospatialEntity, float]]:
        return self.grid_index().query_within(center, radius_m)

    def find_nearby(
        self,
        center: Coordinate,
        radius_m: float | None = None,
        *,
        strategy: Strategy | None = None,
    ) -> list[NearbyEntity]:
        """Entities within `radius_m` of `center`, nearest first."""
        r = self._check_radius(self._settings.default_search_radius_m if radius_m is None else radius_m)
        mode = strategy or self._settings.strategy
        if mode == "geohash_prefix":
            hits = self._prefix_candidates(center, r)
        elif mode == "grid":
            hits = self._grid_candidates(center, r)
        else:
            raise ValueError(f"Unknown proximity strategy: {mode!r}")

        hits.sort(key=lambda pair: (pair[1], pair[0].name))
        limited = hits[: self._settings.max_results]
        logger.debug("Nearby search (%s, %s) r=%sm strategy=%s hits=%d", center.lat, center.lon, r, mode, len(hits))
        return [NearbyEntity(entity=e, distance_m=int(d + 0.5), exact_distance_m=d) for e, d in limited]


def find_nearby(
    entities: EntityRepository,
    latitude: float,
    longitude: float,
    radius_m: float | None = None,
    *,
    settings: GeofenceSettings | None = None,
) -> list[NearbyEntity]:
    """Functional wrapper: validate raw coordinates, then search."""
    center = Coordinate(lat=latitude, lon=longitude)
    return ProximitySearch(entities, settings).find_nearby(center, radius_m)
