"""
Travel-speed fraud heuristic.

Given two consecutive location events for one user, compute the implied travel speed
and flag the pair when it exceeds a physically implausible overland speed (200 km/h
by default). The detector is pure: persisting the flag onto the later event is the
caller's job.

Besides the binary flag, a risk level is reported for review queues:
- high: flagged, or at least `high_speed_kmph` (100 km/h by default)
- medium: at least `medium_speed_kmph` (60 km/h by default)
- low: otherwise
Only `flagged` marks an event; risk levels below the flag threshold are advisory.
"""

from __future__ import annotations

from geoattend.config.settings import FraudSettings
from geoattend.core.geo import distance_m
from geoattend.domain.errors import InvalidSequence
from geoattend.domain.models import LocationEvent, RiskLevel, TravelSpeedResult


def implied_speed_kmph(distance_meters: float, elapsed_minutes: float) -> float:
    """Speed in km/h for a distance covered in `elapsed_minutes` (> 0)."""
    if elapsed_minutes <= 0:
        raise InvalidSequence("elapsed time must be positive to compute a travel speed")
    return (distance_meters / 1000.0) / (elapsed_minutes / 60.0)


def classify_speed(speed_kmph: float, settings: FraudSettings) -> tuple[bool, RiskLevel]:
    """Return `(flagged, risk_level)` for a speed."""
    flagged = speed_kmph > settings.flag_speed_kmph
    if flagged or speed_kmph >= settings.high_speed_kmph:
        return flagged, "high"
    if speed_kmph >= settings.medium_speed_kmph:
        return flagged, "medium"
    return flagged, "low"


def _reason(speed: float, distance: float, minutes: float, flagged: bool, risk: RiskLevel) -> str | None:
    if flagged:
        return f"Impossible travel speed: {speed:.0f}km/h over {distance:.0f}m in {minutes:.0f} minutes"
    if risk == "high":
        return f"Very high travel speed: {speed:.0f}km/h - possible location spoofing"
    if risk == "medium":
        return f"High travel speed: {speed:.0f}km/h - requires review"
    return None


class TravelSpeedDetector:
    def __init__(self, settings: FraudSettings | None = None):
        self._settings = settings or FraudSettings()

    @property
    def settings(self) -> FraudSettings:
        return self._settings

    def evaluate(self, prev: LocationEvent, curr: LocationEvent) -> TravelSpeedResult:
        """Evaluate the move from `prev` to `curr`.

        Raises `InvalidSequence` when the events belong to different users or when
        `curr` is not strictly later than `prev` (identical timestamps included).
        """
        if prev.user_id != curr.user_id:
            raise InvalidSequence(
                f"events belong to different users ({prev.user_id!r} vs {curr.user_id!r})"
            )
        elapsed_minutes = (curr.timestamp - prev.timestamp).total_seconds() / 60.0
        if elapsed_minutes <= 0:
            raise InvalidSequence(
                f"event {curr.id} at {curr.timestamp.isoformat()} is not after "
                f"event {prev.id} at {prev.timestamp.isoformat()}"
            )

        dist = distance_m(prev.coordinate, curr.coordinate)
        speed = implied_speed_kmph(dist, elapsed_minutes)
        flagged, risk = classify_speed(speed, self._settings)
        return TravelSpeedResult(
            speed_kmph=speed,
            flagged=flagged,
            distance_m=dist,
            elapsed_minutes=elapsed_minutes,
            risk_level=risk,
            reason=_reason(speed, dist, elapsed_minutes, flagged, risk),
        )


def evaluate_travel_speed(
    prev: LocationEvent, curr: LocationEvent, *, settings: FraudSettings | None = None
) -> TravelSpeedResult:
    return TravelSpeedDetector(settings).evaluate(prev, curr)
