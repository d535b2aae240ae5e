"""
Timezone handling for location events.

Location events are compared by elapsed time, so every timestamp is timezone-aware;
mixing naive and aware datetimes would either raise or silently shift by hours.
Naive input is read as wall-clock time in the configured app timezone.
"""

from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo


def ensure_tz(dt: datetime, timezone: str) -> datetime:
    """Attach `timezone` to a naive datetime; aware ones are returned as-is."""
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=ZoneInfo(timezone))


def parse_datetime(value: str, timezone: str) -> datetime:
    """Parse an ISO-8601 timestamp (a trailing `Z` means UTC)."""
    text = value.strip()
    if text[-1:] in ("Z", "z"):
        text = f"{text[:-1]}+00:00"
    return ensure_tz(datetime.fromisoformat(text), timezone)


def now_in(timezone: str) -> datetime:
    """Current time as an aware datetime in `timezone`."""
    return datetime.now(ZoneInfo(timezone))


def local_date(dt: datetime, timezone: str) -> date:
    """Calendar date of `dt` in `timezone` (attendance days are local days)."""
    return ensure_tz(dt, timezone).astimezone(ZoneInfo(timezone)).date()
