"""
Radius validation against an entity's geofence.

Distances are compared unrounded; the displayed distance is rounded to the nearest
meter, and the "outside" message subtracts the radius from that rounded figure so
messages stay byte-compatible with earlier clients.
"""

from __future__ import annotations

import logging

from geoattend.catalog.store import EntityRepository
from geoattend.core.geo import Coordinate, distance_m
from geoattend.domain.models import GeospatialEntity, ValidationResult

logger = logging.getLogger(__name__)


def _round_m(value: float) -> int:
    # Half-up; round() would bank 0.5 to even.
    return int(value + 0.5)


def validate_within_radius(entity: GeospatialEntity, point: Coordinate) -> ValidationResult:
    """Check whether `point` lies inside `entity`'s allowed radius."""
    exact = distance_m(point, entity.coordinate)
    is_valid = exact <= entity.radius_m
    shown = _round_m(exact)

    if is_valid:
        message = f"Location is valid. You are {shown}m from {entity.name}"
    else:
        excess = shown - entity.radius_m
        message = f"Location is {excess}m outside the allowed {entity.radius_m}m radius of {entity.name}"

    logger.debug("Radius check entity=%s distance=%.2fm radius=%sm valid=%s", entity.id, exact, entity.radius_m, is_valid)
    return ValidationResult(
        is_valid=is_valid,
        distance_m=shown,
        allowed_radius_m=entity.radius_m,
        entity_name=entity.name,
        message=message,
        exact_distance_m=exact,
    )


def validate_location(
    entities: EntityRepository, entity_id: str, latitude: float, longitude: float
) -> ValidationResult:
    """Look up `entity_id` and validate the raw coordinates against it.

    Raises `InvalidCoordinate` for out-of-range input and `EntityNotFound` when the
    entity does not exist.
    """
    point = Coordinate(lat=latitude, lon=longitude)
    entity = entities.get(entity_id)
    return validate_within_radius(entity, point)
