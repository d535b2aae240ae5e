"""
Attendance flows: clock-in/out at the workplace and field check-in/out at client sites.

Every flow runs the same pipeline:
1. validate the raw coordinates against the target entity's geofence;
2. compare with the user's most recent event through the travel-speed detector;
3. persist the new event with the distance, within-radius result and speed frozen
   at event time, then set the fraud flag if the detector raised it.

Same-user serialization (e.g. a double-submitted clock-in racing itself) belongs to
the storage layer; the checks here assume one writer per user.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime

from geoattend.attendance.access import EntityAccess
from geoattend.attendance.events import LocationEventLog
from geoattend.catalog.store import EntityRepository
from geoattend.config.settings import Settings, get_settings
from geoattend.core.geo import Coordinate
from geoattend.core.time import ensure_tz, local_date, now_in
from geoattend.domain.errors import EntityAccessDenied, InvalidSequence, OutsideGeofence
from geoattend.domain.models import (
    LocationEvent,
    LocationPurpose,
    PatternSummary,
    TravelSpeedResult,
    ValidationResult,
)
from geoattend.fraud.patterns import summarize_user_patterns
from geoattend.fraud.travel_speed import TravelSpeedDetector
from geoattend.geofence.validator import validate_within_radius

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttendanceOutcome:
    """What a clock/check call recorded."""

    event: LocationEvent
    validation: ValidationResult
    travel: TravelSpeedResult | None


class AttendanceService:
    def __init__(
        self,
        entities: EntityRepository,
        events: LocationEventLog,
        *,
        access: EntityAccess | None = None,
        detector: TravelSpeedDetector | None = None,
        settings: Settings | None = None,
    ):
        self._settings = settings or get_settings()
        self._entities = entities
        self._events = events
        self._access = access
        self._detector = detector or TravelSpeedDetector(self._settings.fraud)

    def _timestamp(self, at: datetime | None) -> datetime:
        if at is None:
            return now_in(self._settings.app.timezone)
        return ensure_tz(at, self._settings.app.timezone)

    def _local_date(self, ts: datetime) -> date:
        return local_date(ts, self._settings.app.timezone)

    def _events_on(self, user_id: str, day: date) -> list[LocationEvent]:
        return [e for e in self._events.for_user(user_id) if self._local_date(e.timestamp) == day]

    def _open_event(self, user_id: str, day: date, opener: LocationPurpose, closer: LocationPurpose) -> LocationEvent | None:
        """Latest `opener` event that day not followed by a `closer`."""
        open_event: LocationEvent | None = None
        for e in self._events_on(user_id, day):
            if e.purpose == opener:
                open_event = e
            elif e.purpose == closer:
                open_event = None
        return open_event

    def _travel(self, prev: LocationEvent | None, candidate: LocationEvent) -> TravelSpeedResult | None:
        if prev is None:
            return None
        if prev.timestamp == candidate.timestamp:
            logger.info(
                "Skipping travel-speed check for user %s: event shares timestamp %s with %s",
                candidate.user_id,
                candidate.timestamp.isoformat(),
                prev.id,
            )
            return None
        # Raises InvalidSequence for an event older than the user's latest one.
        return self._detector.evaluate(prev, candidate)

    def _record(
        self,
        *,
        user_id: str,
        purpose: LocationPurpose,
        entity_id: str,
        latitude: float,
        longitude: float,
        ts: datetime,
        allow_outside: bool | None,
        place_name: str | None = None,
    ) -> AttendanceOutcome:
        point = Coordinate(lat=latitude, lon=longitude)
        entity = self._entities.get(entity_id)
        if self._access is not None and not self._access.has_access(user_id, entity_id):
            raise EntityAccessDenied(user_id, entity_id)

        validation = validate_within_radius(entity, point)
        permit_outside = self._settings.attendance.allow_outside_geofence if allow_outside is None else allow_outside
        if not validation.is_valid and not permit_outside:
            logger.info("Rejected %s for user %s at entity %s: %s", purpose, user_id, entity_id, validation.message)
            raise OutsideGeofence(validation)

        candidate = LocationEvent(
            user_id=user_id,
            purpose=purpose,
            latitude=point.lat,
            longitude=point.lon,
            timestamp=ts,
            entity_id=entity.id,
            place_name=place_name or entity.name,
            distance_m=validation.distance_m,
            is_within_radius=validation.is_valid,
        )
        travel = self._travel(self._events.latest_for_user(user_id), candidate)
        if travel is not None:
            candidate = candidate.model_copy(
                update={"travel_speed_kmph": round(travel.speed_kmph, 2), "risk_level": travel.risk_level}
            )

        event = self._events.append(candidate)
        if travel is not None and travel.flagged:
            event = self._events.mark_flagged(event.id, travel.reason)
            logger.warning("Flagged %s %s for user %s: %s", purpose, event.id, user_id, travel.reason)

        logger.info(
            "Recorded %s %s for user %s at %s (%sm, within=%s)",
            purpose,
            event.id,
            user_id,
            entity.name,
            validation.distance_m,
            validation.is_valid,
        )
        return AttendanceOutcome(event=event, validation=validation, travel=travel)

    def clock_in(
        self,
        user_id: str,
        entity_id: str,
        latitude: float,
        longitude: float,
        *,
        at: datetime | None = None,
        allow_outside: bool | None = None,
    ) -> AttendanceOutcome:
        ts = self._timestamp(at)
        day = self._local_date(ts)
        if any(e.purpose == "clock_in" for e in self._events_on(user_id, day)):
            raise InvalidSequence(f"User '{user_id}' has already clocked in on {day.isoformat()}")
        return self._record(
            user_id=user_id,
            purpose="clock_in",
            entity_id=entity_id,
            latitude=latitude,
            longitude=longitude,
            ts=ts,
            allow_outside=allow_outside,
        )

    def clock_out(
        self,
        user_id: str,
        entity_id: str,
        latitude: float,
        longitude: float,
        *,
        at: datetime | None = None,
        allow_outside: bool | None = None,
    ) -> AttendanceOutcome:
        ts = self._timestamp(at)
        day = self._local_date(ts)
        if self._open_event(user_id, day, "clock_in", "clock_out") is None:
            raise InvalidSequence(f"User '{user_id}' has no open clock-in on {day.isoformat()}")
        if self._open_event(user_id, day, "check_in", "check_out") is not None:
            raise InvalidSequence(f"User '{user_id}' must check out of the current field visit first")
        return self._record(
            user_id=user_id,
            purpose="clock_out",
            entity_id=entity_id,
            latitude=latitude,
            longitude=longitude,
            ts=ts,
            allow_outside=allow_outside,
        )

    def check_in(
        self,
        user_id: str,
        entity_id: str,
        latitude: float,
        longitude: float,
        *,
        at: datetime | None = None,
        place_name: str | None = None,
        allow_outside: bool | None = None,
    ) -> AttendanceOutcome:
        """Field visit check-in; requires an open clock-in and no open visit."""
        ts = self._timestamp(at)
        day = self._local_date(ts)
        if self._open_event(user_id, day, "clock_in", "clock_out") is None:
            raise InvalidSequence(f"User '{user_id}' must clock in before checking in at a site")
        if self._open_event(user_id, day, "check_in", "check_out") is not None:
            raise InvalidSequence(f"User '{user_id}' is already checked in at a site")
        return self._record(
            user_id=user_id,
            purpose="check_in",
            entity_id=entity_id,
            latitude=latitude,
            longitude=longitude,
            ts=ts,
            allow_outside=allow_outside,
            place_name=place_name,
        )

    def check_out(
        self,
        user_id: str,
        entity_id: str,
        latitude: float,
        longitude: float,
        *,
        at: datetime | None = None,
        allow_outside: bool | None = None,
    ) -> AttendanceOutcome:
        ts = self._timestamp(at)
        day = self._local_date(ts)
        visit = self._open_event(user_id, day, "check_in", "check_out")
        if visit is None:
            raise InvalidSequence(f"User '{user_id}' has no open site check-in on {day.isoformat()}")
        if visit.entity_id != entity_id:
            raise InvalidSequence(
                f"User '{user_id}' is checked in at entity '{visit.entity_id}', not '{entity_id}'"
            )
        return self._record(
            user_id=user_id,
            purpose="check_out",
            entity_id=entity_id,
            latitude=latitude,
            longitude=longitude,
            ts=ts,
            allow_outside=allow_outside,
            place_name=visit.place_name,
        )

    def pattern_summary(self, user_id: str, *, now: datetime | None = None) -> PatternSummary:
        ts = self._timestamp(now)
        return summarize_user_patterns(
            user_id,
            self._events.for_user(user_id),
            now=ts,
            settings=self._settings.fraud.patterns,
        )
