"""
Bulk entity import.

Rows come from an operator-maintained CSV or JSON export and are matched to the
catalog by entity code. A row for an unknown code creates an entity; a row for a
known code is skipped (`keep-existing`) or applied as an update (`overwrite`). Rows
that fail validation are counted and logged, never half-applied.
"""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Literal

from pydantic import ValidationError

from geoattend.catalog.store import EntityStore
from geoattend.domain.errors import EntityNotFound
from geoattend.domain.models import EntityCreate, EntityUpdate

logger = logging.getLogger(__name__)

MergeMode = Literal["keep-existing", "overwrite"]

_TEXT_FIELDS = ("address", "description", "avatar_url", "cover_image_url")


@dataclass
class ImportStats:
    added: int = 0
    updated: int = 0
    skipped: int = 0
    bad: int = 0

    @property
    def total(self) -> int:
        return self.added + self.updated + self.skipped + self.bad


def read_rows(path: Path) -> list[dict[str, Any]]:
    """Read entity rows from a `.csv` or `.json` file."""
    if path.suffix.lower() == ".csv":
        with path.open("r", encoding="utf-8-sig", newline="") as f:
            return list(csv.DictReader(f))
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, list) or not all(isinstance(r, dict) for r in payload):
        raise ValueError(f"Unsupported JSON in {path}: expected an array of entity objects.")
    return payload


def _department_ids(value: Any) -> list[str]:
    # CSV cells hold "sales,operations"; JSON rows may carry a real list.
    items = value if isinstance(value, list) else str(value or "").split(",")
    return sorted({str(v).strip() for v in items if str(v).strip()})


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def row_to_payload(row: dict[str, Any]) -> dict[str, Any]:
    """Normalise one raw row into model input.

    Only `code` is always present. Missing or blank cells are left out so an
    overwrite keeps the stored value and a create falls back to model defaults.
    """
    payload: dict[str, Any] = {"code": str(row.get("code") or "").strip()}
    for key in ("name", "latitude", "longitude", "radius_m", *_TEXT_FIELDS):
        value = row.get(key)
        if not _blank(value):
            payload[key] = value.strip() if isinstance(value, str) else value
    departments = _department_ids(row.get("department_ids"))
    if departments:
        payload["department_ids"] = departments
    return payload


def merge_rows(store: EntityStore, rows: Iterable[dict[str, Any]], *, mode: MergeMode = "keep-existing") -> ImportStats:
    stats = ImportStats()
    for row in rows:
        payload = row_to_payload(row)
        try:
            existing = store.get_by_code(payload["code"])
        except EntityNotFound:
            existing = None

        try:
            if existing is None:
                store.create(EntityCreate.model_validate(payload))
                stats.added += 1
            elif mode == "overwrite":
                changes = {k: v for k, v in payload.items() if k != "code"}
                store.update(existing.id, EntityUpdate.model_validate(changes))
                stats.updated += 1
            else:
                stats.skipped += 1
        except ValidationError as exc:
            logger.warning("Skipping bad row %r: %d validation error(s)", payload["code"] or "?", exc.error_count())
            stats.bad += 1
    return stats
