"""
Entity access resolution.

A user may attend at the entities assigned to them directly; when they have no active
direct assignment, the entities of their department apply instead. Direct assignments
are exclusive: they replace, not extend, the department's entities.
"""

from __future__ import annotations

import logging
import threading

from geoattend.catalog.store import EntityRepository
from geoattend.core.geo import Coordinate, distance_m
from geoattend.domain.errors import EntityNotFound, NoAuthorizedEntity
from geoattend.domain.models import (
    EntityDistance,
    GeospatialEntity,
    LocationAccessResult,
    UserEntityAssignment,
)

logger = logging.getLogger(__name__)


def _entity_distance(entity: GeospatialEntity, point: Coordinate) -> EntityDistance:
    d = distance_m(point, entity.coordinate)
    return EntityDistance(
        entity_id=entity.id,
        entity_name=entity.name,
        distance_m=d,
        is_within_radius=d <= entity.radius_m,
        latitude=entity.latitude,
        longitude=entity.longitude,
        radius_m=entity.radius_m,
    )


class EntityAccess:
    def __init__(self, entities: EntityRepository, *, suggestion_limit: int = 5):
        self._entities = entities
        self._suggestion_limit = int(suggestion_limit)
        self._lock = threading.Lock()
        self._assignments: dict[tuple[str, str], UserEntityAssignment] = {}
        self._departments: dict[str, str] = {}

    def set_user_department(self, user_id: str, department_id: str | None) -> None:
        with self._lock:
            if department_id is None:
                self._departments.pop(user_id, None)
            else:
                self._departments[user_id] = department_id

    def assign(self, user_id: str, entity_id: str, *, is_primary: bool = False) -> UserEntityAssignment:
        """Directly assign `entity_id` to `user_id` (the entity must exist)."""
        self._entities.get(entity_id)
        assignment = UserEntityAssignment(user_id=user_id, entity_id=entity_id, is_primary=is_primary)
        with self._lock:
            if is_primary:
                for key, other in list(self._assignments.items()):
                    if other.user_id == user_id and other.is_primary:
                        self._assignments[key] = other.model_copy(update={"is_primary": False})
            self._assignments[(user_id, entity_id)] = assignment
        return assignment

    def revoke(self, user_id: str, entity_id: str) -> None:
        with self._lock:
            current = self._assignments.get((user_id, entity_id))
            if current is not None:
                self._assignments[(user_id, entity_id)] = current.model_copy(update={"is_active": False})

    def assignments_for(self, user_id: str) -> list[UserEntityAssignment]:
        return [a for a in self._assignments.values() if a.user_id == user_id and a.is_active]

    def authorized_entities(self, user_id: str) -> list[GeospatialEntity]:
        direct: list[GeospatialEntity] = []
        for a in self.assignments_for(user_id):
            try:
                direct.append(self._entities.get(a.entity_id))
            except EntityNotFound:
                logger.warning("User %s is assigned to missing entity %s", user_id, a.entity_id)
        if direct:
            return direct

        department_id = self._departments.get(user_id)
        if department_id is None:
            return []
        return [e for e in self._entities.all() if department_id in e.department_ids]

    def has_access(self, user_id: str, entity_id: str) -> bool:
        return any(e.id == entity_id for e in self.authorized_entities(user_id))

    def ranked(self, user_id: str, point: Coordinate) -> list[EntityDistance]:
        """Authorized entities with distances, nearest first."""
        rows = [_entity_distance(e, point) for e in self.authorized_entities(user_id)]
        rows.sort(key=lambda r: r.distance_m)
        return rows

    def nearest_authorized(self, user_id: str, point: Coordinate) -> EntityDistance:
        rows = self.ranked(user_id, point)
        if not rows:
            raise NoAuthorizedEntity(user_id)
        return rows[0]

    def validate_location_access(self, user_id: str, latitude: float, longitude: float) -> LocationAccessResult:
        """Check the user's position against their nearest authorized entity.

        On failure the result carries up to `suggestion_limit` nearest authorized
        entities so the client can point the user somewhere valid.
        """
        point = Coordinate(lat=latitude, lon=longitude)
        rows = self.ranked(user_id, point)
        if not rows:
            return LocationAccessResult(is_valid=False, error_message=str(NoAuthorizedEntity(user_id)))

        nearest = rows[0]
        if nearest.is_within_radius:
            return LocationAccessResult(is_valid=True, entity=nearest)
        return LocationAccessResult(
            is_valid=False,
            error_message=(
                f'Location is {int(nearest.distance_m + 0.5)}m from nearest authorized entity '
                f'"{nearest.entity_name}" (radius: {nearest.radius_m}m)'
            ),
            nearest_entities=rows[: self._suggestion_limit],
        )
