"""
Repeated-suspicion summary over a user's recent location events.

Flagged events inside the look-back window are counted; flagged locations are grouped
on a ~100m grid (coordinates rounded to 3 decimals) so a spoofed spot reused day after
day shows up as a repeated location.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Iterable

from geoattend.config.settings import PatternSettings
from geoattend.domain.models import LocationEvent, PatternSummary, RiskLevel, SuspiciousLocation


def location_key(event: LocationEvent) -> str:
    return f"{round(event.latitude * 1000)},{round(event.longitude * 1000)}"


def summarize_user_patterns(
    user_id: str,
    events: Iterable[LocationEvent],
    *,
    now: datetime,
    settings: PatternSettings | None = None,
) -> PatternSummary:
    s = settings or PatternSettings()
    window_start = now - timedelta(days=s.window_days)

    flagged = [
        e
        for e in events
        if e.user_id == user_id and e.flagged and window_start <= e.timestamp <= now
    ]
    speeds = [e.travel_speed_kmph for e in flagged if e.travel_speed_kmph is not None]

    groups: dict[str, list[LocationEvent]] = defaultdict(list)
    for e in flagged:
        groups[location_key(e)].append(e)
    suspicious = [
        SuspiciousLocation(
            location_key=key,
            occurrences=len(group),
            dates=sorted({e.timestamp.date().isoformat() for e in group}),
        )
        for key, group in sorted(groups.items(), key=lambda kv: (-len(kv[1]), kv[0]))
    ]
    repeated = sum(1 for loc in suspicious if loc.occurrences >= s.repeated_location_threshold)

    occurrences = len(flagged)
    has_pattern = occurrences >= s.min_occurrences
    risk: RiskLevel = "low"
    pattern_type = "none"
    if has_pattern:
        risk = "high" if occurrences >= s.high_risk_occurrences else "medium"
        pattern_type = "location_anomalies" if repeated else "speed_violations"

    return PatternSummary(
        user_id=user_id,
        has_pattern=has_pattern,
        pattern_type=pattern_type,
        occurrences=occurrences,
        risk_level=risk,
        average_speed_kmph=sum(speeds) / len(speeds) if speeds else 0.0,
        max_speed_kmph=max(speeds) if speeds else 0.0,
        repeated_locations=repeated,
        suspicious_locations=suspicious,
        window_start=window_start,
        window_end=now,
    )
