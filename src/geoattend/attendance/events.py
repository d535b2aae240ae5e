"""
Location event log.

Events are kept in timestamp order per user so "the most recent event for user X" is
an explicit query instead of process-wide "last known location" state. Events are
immutable; the one permitted change is setting the fraud flag, and only once.
"""

from __future__ import annotations

import bisect
import threading
from datetime import datetime
from typing import Protocol

from geoattend.domain.models import LocationEvent


class LocationEventRepository(Protocol):
    def append(self, event: LocationEvent) -> LocationEvent:
        raise NotImplementedError

    def latest_for_user(self, user_id: str) -> LocationEvent | None:
        raise NotImplementedError

    def for_user(
        self, user_id: str, *, since: datetime | None = None, until: datetime | None = None
    ) -> list[LocationEvent]:
        raise NotImplementedError

    def mark_flagged(self, event_id: str, reason: str | None) -> LocationEvent:
        raise NotImplementedError


class LocationEventLog:
    """Thread-safe in-memory event log."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: dict[str, LocationEvent] = {}
        self._ids_by_user: dict[str, list[str]] = {}
        self._times_by_user: dict[str, list[datetime]] = {}

    def __len__(self) -> int:
        return len(self._events)

    def _get(self, event_id: str) -> LocationEvent:
        try:
            return self._events[event_id]
        except KeyError:
            raise KeyError(f"Location event '{event_id}' not found") from None

    def get(self, event_id: str) -> LocationEvent:
        with self._lock:
            return self._get(event_id)

    def append(self, event: LocationEvent) -> LocationEvent:
        with self._lock:
            if event.id in self._events:
                raise ValueError(f"Location event '{event.id}' already recorded")
            # Store before publishing the id in the per-user index.
            self._events[event.id] = event
            times = self._times_by_user.setdefault(event.user_id, [])
            ids = self._ids_by_user.setdefault(event.user_id, [])
            pos = bisect.bisect_right(times, event.timestamp)
            times.insert(pos, event.timestamp)
            ids.insert(pos, event.id)
        return event

    def latest_for_user(self, user_id: str) -> LocationEvent | None:
        with self._lock:
            ids = self._ids_by_user.get(user_id)
            if not ids:
                return None
            return self._events[ids[-1]]

    def for_user(
        self, user_id: str, *, since: datetime | None = None, until: datetime | None = None
    ) -> list[LocationEvent]:
        """Events for `user_id` in timestamp order, optionally bounded (inclusive)."""
        with self._lock:
            times = self._times_by_user.get(user_id, [])
            ids = self._ids_by_user.get(user_id, [])
            lo = bisect.bisect_left(times, since) if since is not None else 0
            hi = bisect.bisect_right(times, until) if until is not None else len(times)
            return [self._events[i] for i in ids[lo:hi]]

    def mark_flagged(self, event_id: str, reason: str | None) -> LocationEvent:
        """Set the fraud flag once; a second call returns the event unchanged."""
        with self._lock:
            event = self._get(event_id)
            if event.flagged:
                return event
            flagged = event.model_copy(update={"flagged": True, "flag_reason": reason})
            self._events[event_id] = flagged
            return flagged
