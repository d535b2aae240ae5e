"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- admin inputs (`EntityCreate`, `EntityUpdate`) and query inputs (`ProximityQuery`)
- stored records (`GeospatialEntity`, `LocationEvent`, assignments)
- derived, never-persisted outputs (`ValidationResult`, `NearbyEntity`, `TravelSpeedResult`)

Numeric bounds (coordinates, entity radius 10..1000m, search radius 10..10000m) are
declared on the fields so bad input is rejected at the boundary.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from geoattend.core import geohash
from geoattend.core.geo import Coordinate

Latitude = Annotated[float, Field(ge=-90, le=90)]
Longitude = Annotated[float, Field(ge=-180, le=180)]

LocationPurpose = Literal["clock_in", "clock_out", "check_in", "check_out"]
RiskLevel = Literal["low", "medium", "high"]


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EntityCreate(BaseModel):
    """Admin payload for a new business location."""

    name: str = Field(..., min_length=1, max_length=255)
    code: str = Field(..., min_length=1, max_length=100)
    latitude: Latitude
    longitude: Longitude
    radius_m: int = Field(..., ge=10, le=1000)
    address: str | None = None
    description: str | None = None
    avatar_url: str | None = None
    cover_image_url: str | None = None
    department_ids: list[str] = Field(default_factory=list)


class EntityUpdate(BaseModel):
    """Partial update; latitude and longitude must be supplied together."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    radius_m: int | None = Field(default=None, ge=10, le=1000)
    address: str | None = None
    description: str | None = None
    avatar_url: str | None = None
    cover_image_url: str | None = None
    department_ids: list[str] | None = None

    @model_validator(mode="after")
    def _validate_location_pair(self) -> "EntityUpdate":
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be updated together")
        return self


class GeospatialEntity(BaseModel):
    """A business location with a circular geofence."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    name: str = Field(..., min_length=1, max_length=255)
    code: str = Field(..., min_length=1, max_length=100)
    latitude: Latitude
    longitude: Longitude
    geohash: str = Field(..., min_length=1, max_length=12)
    radius_m: int = Field(..., ge=10, le=1000)
    address: str | None = None
    description: str | None = None
    avatar_url: str | None = None
    cover_image_url: str | None = None
    department_ids: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _validate_geohash(self) -> "GeospatialEntity":
        expected = geohash.encode(self.latitude, self.longitude, len(self.geohash))
        if expected != self.geohash:
            raise ValueError(
                f"geohash '{self.geohash}' does not match coordinates ({self.latitude}, {self.longitude})"
            )
        return self

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(lat=self.latitude, lon=self.longitude)


class ValidationResult(BaseModel):
    """Outcome of a radius check; computed fresh on every call."""

    is_valid: bool
    distance_m: int
    allowed_radius_m: int
    entity_name: str
    message: str
    exact_distance_m: float = Field(..., ge=0)

    @property
    def is_within_radius(self) -> bool:
        return self.is_valid


class ProximityQuery(BaseModel):
    """Search center and radius for a nearby-entities lookup."""

    latitude: Latitude
    longitude: Longitude
    radius_m: float = Field(1000, ge=10, le=10_000)


class NearbyEntity(BaseModel):
    """One proximity search hit."""

    entity: GeospatialEntity
    distance_m: int
    exact_distance_m: float = Field(..., ge=0)

    def as_row(self) -> dict[str, Any]:
        """Flat dict used by listings (entity fields + distance)."""
        row = self.entity.model_dump(
            mode="json",
            include={
                "id",
                "name",
                "code",
                "address",
                "latitude",
                "longitude",
                "radius_m",
                "description",
                "avatar_url",
                "cover_image_url",
            },
        )
        row["distance_m"] = self.distance_m
        return row


class EntityPage(BaseModel):
    entities: list[GeospatialEntity]
    total: int
    page: int
    limit: int


class LocationEvent(BaseModel):
    """A timestamped clock-in/out or field check-in/out.

    Distance and within-radius are frozen at event time; the only later change is the
    one-time fraud flag annotation.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    user_id: str = Field(..., min_length=1)
    purpose: LocationPurpose
    latitude: Latitude
    longitude: Longitude
    timestamp: datetime
    entity_id: str | None = None
    place_name: str | None = None
    distance_m: int | None = None
    is_within_radius: bool | None = None
    travel_speed_kmph: float | None = None
    risk_level: RiskLevel = "low"
    flagged: bool = False
    flag_reason: str | None = None

    @field_validator("timestamp")
    @classmethod
    def _require_tz(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            raise ValueError("timestamp must be timezone-aware")
        return value

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(lat=self.latitude, lon=self.longitude)


class TravelSpeedResult(BaseModel):
    """Implied speed between two consecutive events of one user."""

    speed_kmph: float = Field(..., ge=0)
    flagged: bool
    distance_m: float = Field(..., ge=0)
    elapsed_minutes: float = Field(..., gt=0)
    risk_level: RiskLevel = "low"
    reason: str | None = None


class UserEntityAssignment(BaseModel):
    user_id: str
    entity_id: str
    is_primary: bool = False
    is_active: bool = True


class EntityDistance(BaseModel):
    """An authorized entity with its distance from the user's position."""

    entity_id: str
    entity_name: str
    distance_m: float = Field(..., ge=0)
    is_within_radius: bool
    latitude: float
    longitude: float
    radius_m: int


class LocationAccessResult(BaseModel):
    is_valid: bool
    entity: EntityDistance | None = None
    error_message: str | None = None
    nearest_entities: list[EntityDistance] = Field(default_factory=list)


class SuspiciousLocation(BaseModel):
    location_key: str
    occurrences: int
    dates: list[str] = Field(default_factory=list)


class PatternSummary(BaseModel):
    """Flagged-activity summary for one user over a look-back window."""

    user_id: str
    has_pattern: bool
    pattern_type: Literal["none", "speed_violations", "location_anomalies"]
    occurrences: int
    risk_level: RiskLevel
    average_speed_kmph: float
    max_speed_kmph: float
    repeated_locations: int
    suspicious_locations: list[SuspiciousLocation] = Field(default_factory=list)
    window_start: datetime
    window_end: datetime
