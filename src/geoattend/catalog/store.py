"""
Entity catalog (business locations).

`EntityRepository` is the storage contract the geofence and attendance layers depend
on; `EntityStore` is the in-process implementation used by the CLI and tests. A
database-backed repository only needs to provide the same methods.

Coordinates and geohash always change together: `create` and `update` derive the
geohash from the new coordinates, and `GeospatialEntity` itself rejects a mismatch.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Iterable, Protocol

from geoattend.core import geohash
from geoattend.domain.errors import DuplicateEntity, EntityNotFound
from geoattend.domain.models import EntityCreate, EntityPage, EntityUpdate, GeospatialEntity

logger = logging.getLogger(__name__)


class EntityRepository(Protocol):
    def get(self, entity_id: str) -> GeospatialEntity:
        raise NotImplementedError

    def all(self) -> list[GeospatialEntity]:
        raise NotImplementedError

    def with_geohash_prefix(self, prefix: str) -> list[GeospatialEntity]:
        raise NotImplementedError

    @property
    def version(self) -> int:
        """Counter that changes whenever the set of entities or their fields change."""
        raise NotImplementedError


class EntityStore:
    """Thread-safe in-memory entity catalog keyed by id, unique by code."""

    def __init__(self, entities: Iterable[GeospatialEntity] = (), *, geohash_precision: int = geohash.ENTITY_PRECISION):
        self._lock = threading.Lock()
        self._by_id: dict[str, GeospatialEntity] = {}
        self._id_by_code: dict[str, str] = {}
        self._precision = int(geohash_precision)
        self._version = 0
        for e in entities:
            if e.code in self._id_by_code:
                raise DuplicateEntity(e.code)
            self._by_id[e.id] = e
            self._id_by_code[e.code] = e.id

    def __len__(self) -> int:
        return len(self._by_id)

    @property
    def version(self) -> int:
        return self._version

    def create(self, payload: EntityCreate) -> GeospatialEntity:
        entity = GeospatialEntity(
            **payload.model_dump(),
            geohash=geohash.encode(payload.latitude, payload.longitude, self._precision),
        )
        with self._lock:
            if entity.code in self._id_by_code:
                raise DuplicateEntity(entity.code)
            self._by_id[entity.id] = entity
            self._id_by_code[entity.code] = entity.id
            self._version += 1
        logger.info("Created entity %s (%s) geohash=%s", entity.id, entity.code, entity.geohash)
        return entity

    def get(self, entity_id: str) -> GeospatialEntity:
        entity = self._by_id.get(entity_id)
        if entity is None:
            raise EntityNotFound(entity_id)
        return entity

    def get_by_code(self, code: str) -> GeospatialEntity:
        with self._lock:
            entity_id = self._id_by_code.get(code)
            entity = self._by_id.get(entity_id) if entity_id is not None else None
        if entity is None:
            raise EntityNotFound(code, field="code")
        return entity

    def all(self) -> list[GeospatialEntity]:
        with self._lock:
            return list(self._by_id.values())

    def with_geohash_prefix(self, prefix: str) -> list[GeospatialEntity]:
        return [e for e in self.all() if e.geohash.startswith(prefix)]

    def list(self, page: int = 1, limit: int = 20) -> EntityPage:
        """Newest first, 1-based pages."""
        if page < 1 or limit < 1:
            raise ValueError("page and limit must be >= 1")
        ordered = sorted(self.all(), key=lambda e: e.created_at, reverse=True)
        start = (page - 1) * limit
        return EntityPage(entities=ordered[start : start + limit], total=len(ordered), page=page, limit=limit)

    def update(self, entity_id: str, payload: EntityUpdate) -> GeospatialEntity:
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        with self._lock:
            current = self.get(entity_id)
            if payload.latitude is not None and payload.longitude is not None:
                changes["geohash"] = geohash.encode(payload.latitude, payload.longitude, self._precision)
            changes["updated_at"] = datetime.now(timezone.utc)
            # Re-validate so the coordinate/geohash invariant is checked on the new record.
            updated = GeospatialEntity.model_validate({**current.model_dump(), **changes})
            self._by_id[entity_id] = updated
            self._version += 1
        logger.info("Updated entity %s fields=%s", entity_id, sorted(changes))
        return updated

    def delete(self, entity_id: str) -> None:
        with self._lock:
            entity = self.get(entity_id)
            del self._id_by_code[entity.code]
            del self._by_id[entity_id]
            self._version += 1
        logger.info("Deleted entity %s (%s)", entity_id, entity.code)
