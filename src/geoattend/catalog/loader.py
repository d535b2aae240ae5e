"""
Entity catalog loader.

The catalog is a local JSON file (default: `data/entities.json`) holding a list of
entity records. Records may omit `geohash` (it is derived from the coordinates) and
`id` (a uuid is assigned). We validate everything into typed Pydantic models so the
geofence code can assume a consistent shape.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter

from geoattend.catalog.store import EntityStore
from geoattend.core import geohash
from geoattend.core.env import resolve_project_path
from geoattend.domain.models import GeospatialEntity


_ENTITIES_ADAPTER = TypeAdapter(list[GeospatialEntity])


def _with_geohash(row: Any, precision: int) -> Any:
    if not isinstance(row, dict) or row.get("geohash"):
        return row
    lat, lon = row.get("latitude"), row.get("longitude")
    if lat is None or lon is None:
        return row
    return {**row, "geohash": geohash.encode(lat, lon, precision)}


def load_entities(path: str | Path, *, geohash_precision: int = geohash.ENTITY_PRECISION) -> list[GeospatialEntity]:
    """Load and validate an entity catalog JSON file."""
    resolved = resolve_project_path(path)
    payload = json.loads(resolved.read_text(encoding="utf-8"))
    if not isinstance(payload, list):
        raise ValueError(f"Invalid catalog {resolved}: expected a JSON list of entities.")
    rows = [_with_geohash(row, geohash_precision) for row in payload]
    return _ENTITIES_ADAPTER.validate_python(rows)


def load_store(path: str | Path, *, geohash_precision: int = geohash.ENTITY_PRECISION) -> EntityStore:
    """Load a catalog file straight into an `EntityStore` (codes must be unique)."""
    return EntityStore(load_entities(path, geohash_precision=geohash_precision), geohash_precision=geohash_precision)


def save_entities(path: str | Path, entities: list[GeospatialEntity]) -> Path:
    """Write entities as a JSON list; returns the resolved path."""
    resolved = resolve_project_path(path)
    resolved.parent.mkdir(parents=True, exist_ok=True)
    data = _ENTITIES_ADAPTER.dump_python(entities, mode="json")
    resolved.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
    return resolved
