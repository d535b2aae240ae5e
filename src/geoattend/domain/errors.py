"""
Error kinds raised by the geofence core and the attendance layer.

Every failure path maps to one distinguishable class so callers (CLI, a web layer)
can translate it into a user-facing response without parsing messages.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from geoattend.domain.models import ValidationResult


class GeoAttendError(Exception):
    """Base class for all domain errors."""


class InvalidCoordinate(GeoAttendError, ValueError):
    """Latitude/longitude outside [-90, 90] / [-180, 180] (or not a finite number)."""

    def __init__(self, lat: float, lon: float):
        self.lat = lat
        self.lon = lon
        super().__init__(
            f"Invalid coordinate ({lat}, {lon}): latitude must be between -90 and 90 degrees "
            "and longitude between -180 and 180 degrees"
        )


class EntityNotFound(GeoAttendError):
    """The referenced entity (business location) does not exist."""

    def __init__(self, key: str, *, field: str = "ID"):
        self.key = key
        self.field = field
        super().__init__(f"Entity with {field} '{key}' not found")


class DuplicateEntity(GeoAttendError):
    """An entity with the same external code already exists."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Entity with code '{code}' already exists")


class InvalidSequence(GeoAttendError):
    """Two location events are not in strict chronological order for one user."""


class OutsideGeofence(GeoAttendError):
    """A clock-in/check-in was attempted outside the entity's allowed radius."""

    def __init__(self, result: "ValidationResult"):
        self.result = result
        super().__init__(result.message)


class NoAuthorizedEntity(EntityNotFound):
    """The user has no entity assignments, directly or through a department."""

    def __init__(self, user_id: str):
        self.key = user_id
        self.field = "user"
        GeoAttendError.__init__(self, f"No authorized entities found for user '{user_id}'")


class EntityAccessDenied(GeoAttendError):
    """The user is not assigned to the entity they tried to attend at."""

    def __init__(self, user_id: str, entity_id: str):
        self.user_id = user_id
        self.entity_id = entity_id
        super().__init__(f"User '{user_id}' is not authorized for entity '{entity_id}'")
