from __future__ import annotations

import argparse

from geoattend.catalog.importer import merge_rows, read_rows
from geoattend.catalog.loader import load_store, save_entities
from geoattend.catalog.store import EntityStore
from geoattend.config.settings import get_settings
from geoattend.core.env import resolve_project_path
from geoattend.core.logging import configure_logging


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    p = argparse.ArgumentParser(description="Merge entities from a CSV or JSON export into the catalog file.")
    p.add_argument("source", help="Input .csv or .json file")
    p.add_argument("--catalog", default=settings.catalog.path, help="Catalog JSON to update")
    p.add_argument(
        "--mode",
        choices=["keep-existing", "overwrite"],
        default="keep-existing",
        help="What to do with rows whose code is already in the catalog",
    )
    p.add_argument("--dry-run", action="store_true", help="Report counts without writing the catalog")
    args = p.parse_args(argv)
    configure_logging()

    precision = settings.geofence.geohash_precision
    catalog_path = resolve_project_path(args.catalog)
    if catalog_path.exists():
        store = load_store(catalog_path, geohash_precision=precision)
    else:
        store = EntityStore(geohash_precision=precision)

    stats = merge_rows(store, read_rows(resolve_project_path(args.source)), mode=args.mode)
    print(f"rows={stats.total} added={stats.added} updated={stats.updated} skipped={stats.skipped} bad={stats.bad}")
    if args.dry_run:
        print("Dry run: catalog not written.")
    else:
        print("Wrote catalog:", save_entities(catalog_path, store.all()))
    return 1 if stats.bad else 0


if __name__ == "__main__":
    raise SystemExit(main())
