"""
GeoAttend CLI entrypoint.

This CLI is intended for operators and debugging without a web layer. It works
against a JSON entity catalog (default from settings: `catalog.path`) and delegates
all logic to the geofence and fraud modules.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from geoattend.catalog.loader import load_store
from geoattend.config.settings import get_settings
from geoattend.core import geohash
from geoattend.core.geo import Coordinate
from geoattend.core.logging import configure_logging
from geoattend.core.time import parse_datetime
from geoattend.domain.errors import GeoAttendError
from geoattend.domain.models import LocationEvent
from geoattend.fraud.travel_speed import evaluate_travel_speed
from geoattend.geofence.proximity import ProximitySearch
from geoattend.geofence.validator import validate_location


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _parse_stop(value: str, timezone: str, *, user_id: str) -> LocationEvent:
    """Parse `LAT,LON,ISO_TIME` into a location event."""
    parts = [p.strip() for p in value.split(",", 2)]
    if len(parts) != 3:
        raise ValueError(f"Invalid stop '{value}', expected LAT,LON,ISO_TIME")
    lat, lon, when = parts
    return LocationEvent(
        user_id=user_id,
        purpose="check_in",
        latitude=float(lat),
        longitude=float(lon),
        timestamp=parse_datetime(when, timezone),
    )


def _cmd_geohash(args: argparse.Namespace) -> int:
    code = geohash.encode(args.lat, args.lon, args.precision)
    if args.json:
        _print_json({"latitude": args.lat, "longitude": args.lon, "precision": args.precision, "geohash": code})
    else:
        print(code)
    return 0


def _cmd_validate(args: argparse.Namespace) -> int:
    settings = get_settings()
    store = load_store(args.catalog or settings.catalog.path, geohash_precision=settings.geofence.geohash_precision)
    result = validate_location(store, args.entity_id, args.lat, args.lon)
    if args.json:
        _print_json(result.model_dump(mode="json", exclude={"exact_distance_m"}))
    else:
        print(result.message)
    return 0 if result.is_valid else 1


def _cmd_nearby(args: argparse.Namespace) -> int:
    settings = get_settings()
    store = load_store(args.catalog or settings.catalog.path, geohash_precision=settings.geofence.geohash_precision)
    search = ProximitySearch(store, settings.geofence)
    hits = search.find_nearby(Coordinate(lat=args.lat, lon=args.lon), args.radius, strategy=args.strategy)
    if args.json:
        _print_json([h.as_row() for h in hits])
        return 0
    if not hits:
        print("No entities found.")
        return 0
    for i, hit in enumerate(hits, start=1):
        e = hit.entity
        print(f"{i:>2}. {e.name} [{e.code}]  {hit.distance_m}m  (radius {e.radius_m}m, geohash {e.geohash})")
    return 0


def _cmd_travel_speed(args: argparse.Namespace) -> int:
    settings = get_settings()
    tz = settings.app.timezone
    prev = _parse_stop(args.from_stop, tz, user_id="cli")
    curr = _parse_stop(args.to_stop, tz, user_id="cli")
    result = evaluate_travel_speed(prev, curr, settings=settings.fraud)
    if args.json:
        _print_json(result.model_dump(mode="json"))
    else:
        status = "FLAGGED" if result.flagged else "ok"
        print(
            f"{result.speed_kmph:.2f} km/h over {result.distance_m:.0f}m in {result.elapsed_minutes:.1f} min "
            f"risk={result.risk_level} {status}"
        )
        if result.reason:
            print(f"  {result.reason}")
    return 0


def _cmd_entities(args: argparse.Namespace) -> int:
    settings = get_settings()
    store = load_store(args.catalog or settings.catalog.path, geohash_precision=settings.geofence.geohash_precision)
    page = store.list(page=args.page, limit=args.limit)
    if args.json:
        _print_json(page.model_dump(mode="json"))
        return 0
    print(f"{page.total} entities (page {page.page}, {page.limit} per page)")
    for e in page.entities:
        print(f"- {e.id}  {e.name} [{e.code}]  ({e.latitude}, {e.longitude}) r={e.radius_m}m")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the GeoAttend CLI."""
    parser = argparse.ArgumentParser(prog="geoattend")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        default=None,
        help="Override app.log_level for this run",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    gh = sub.add_parser("geohash", help="Encode a coordinate as a geohash.")
    gh.add_argument("lat", type=float)
    gh.add_argument("lon", type=float)
    gh.add_argument("--precision", type=int, default=geohash.ENTITY_PRECISION)
    gh.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    gh.set_defaults(func=_cmd_geohash)

    val = sub.add_parser("validate", help="Check whether a coordinate is inside an entity's radius.")
    val.add_argument("--catalog", type=str, default=None, help="Entity catalog JSON (defaults to settings)")
    val.add_argument("--entity-id", required=True)
    val.add_argument("--lat", required=True, type=float)
    val.add_argument("--lon", required=True, type=float)
    val.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    val.set_defaults(func=_cmd_validate)

    near = sub.add_parser("nearby", help="List entities near a coordinate.")
    near.add_argument("--catalog", type=str, default=None, help="Entity catalog JSON (defaults to settings)")
    near.add_argument("--lat", required=True, type=float)
    near.add_argument("--lon", required=True, type=float)
    near.add_argument("--radius", type=float, default=None, help="Search radius in meters (10..10000)")
    near.add_argument("--strategy", choices=["geohash_prefix", "grid"], default=None)
    near.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    near.set_defaults(func=_cmd_nearby)

    ts = sub.add_parser("travel-speed", help="Evaluate the implied speed between two timestamped points.")
    ts.add_argument("--from", dest="from_stop", required=True, help="LAT,LON,ISO_TIME")
    ts.add_argument("--to", dest="to_stop", required=True, help="LAT,LON,ISO_TIME")
    ts.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    ts.set_defaults(func=_cmd_travel_speed)

    ent = sub.add_parser("entities", help="List catalog entities, newest first.")
    ent.add_argument("--catalog", type=str, default=None, help="Entity catalog JSON (defaults to settings)")
    ent.add_argument("--page", type=int, default=1)
    ent.add_argument("--limit", type=int, default=20)
    ent.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    ent.set_defaults(func=_cmd_entities)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m geoattend.cli`."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    func: Any = getattr(args, "func")
    try:
        return int(func(args))
    except (GeoAttendError, ValueError) as exc:
        # ValueError covers bad search radii, malformed stops and pydantic validation.
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
