from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from geoattend.core.time import ensure_tz, local_date, parse_datetime

KTM = "Asia/Kathmandu"


def test_parse_datetime_handles_z_suffix():
    assert parse_datetime("2025-03-03T03:15:00Z", KTM) == datetime(2025, 3, 3, 3, 15, tzinfo=timezone.utc)


def test_parse_datetime_attaches_timezone_to_naive_input():
    dt = parse_datetime("2025-03-03T09:00:00", KTM)
    assert dt.tzinfo == ZoneInfo(KTM)
    assert dt.utcoffset().total_seconds() == 5 * 3600 + 45 * 60


def test_ensure_tz_keeps_aware_datetimes():
    aware = datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert ensure_tz(aware, KTM) is aware


def test_local_date_uses_the_given_timezone():
    # 20:00 UTC is already the next day in Kathmandu (+05:45).
    assert local_date(datetime(2025, 3, 3, 20, 0, tzinfo=timezone.utc), KTM).isoformat() == "2025-03-04"
