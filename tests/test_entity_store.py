import json
import sys
import threading
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from geoattend.catalog.loader import load_entities, load_store, save_entities
from geoattend.catalog.store import EntityStore
from geoattend.core import geohash
from geoattend.domain.errors import DuplicateEntity, EntityNotFound
from geoattend.domain.models import EntityCreate, EntityUpdate, GeospatialEntity

from helpers import KATHMANDU, make_entity


def _create_payload(code: str = "KTM-NEW-010", **overrides) -> EntityCreate:
    data = {"name": "New Site", "code": code, "latitude": 27.70, "longitude": 85.30, "radius_m": 120}
    data.update(overrides)
    return EntityCreate(**data)


def test_create_derives_geohash():
    store = EntityStore()
    entity = store.create(_create_payload())
    assert entity.geohash == geohash.encode(27.70, 85.30, 8)
    assert store.get(entity.id) == entity
    assert store.get_by_code("KTM-NEW-010") == entity


def test_create_rejects_duplicate_code():
    store = EntityStore()
    store.create(_create_payload())
    with pytest.raises(DuplicateEntity, match="KTM-NEW-010"):
        store.create(_create_payload(name="Other"))


@pytest.mark.parametrize("radius", [9, 1001])
def test_create_payload_bounds_radius(radius):
    with pytest.raises(ValidationError):
        _create_payload(radius_m=radius)


def test_get_unknown_raises():
    store = EntityStore()
    with pytest.raises(EntityNotFound):
        store.get("nope")
    with pytest.raises(EntityNotFound, match="code 'nope'"):
        store.get_by_code("nope")


def test_update_coordinates_rewrites_geohash(store, main_office):
    updated = store.update(main_office.id, EntityUpdate(latitude=27.6727, longitude=85.3250))
    assert updated.geohash == geohash.encode(27.6727, 85.3250, 8)
    assert updated.geohash != main_office.geohash
    assert updated.updated_at >= main_office.updated_at
    assert store.get(main_office.id) == updated


def test_update_radius_keeps_geohash(store, main_office):
    updated = store.update(main_office.id, EntityUpdate(radius_m=300))
    assert updated.radius_m == 300
    assert updated.geohash == main_office.geohash


def test_update_requires_both_coordinates():
    with pytest.raises(ValidationError, match="latitude and longitude must be updated together"):
        EntityUpdate(latitude=27.0)


def test_entity_rejects_mismatched_geohash():
    with pytest.raises(ValidationError, match="does not match coordinates"):
        GeospatialEntity(name="X", code="X", latitude=27.7172, longitude=85.3240, geohash="u4pruydq", radius_m=100)


def test_list_is_newest_first_and_paginated():
    base = datetime(2025, 1, 1, tzinfo=timezone.utc)
    entities = [make_entity(f"Site {i}", f"S-{i}", KATHMANDU, created_at=base + timedelta(days=i)) for i in range(5)]
    store = EntityStore(entities)

    first = store.list(page=1, limit=2)
    assert first.total == 5
    assert [e.code for e in first.entities] == ["S-4", "S-3"]
    assert [e.code for e in store.list(page=3, limit=2).entities] == ["S-0"]
    assert store.list(page=4, limit=2).entities == []

    with pytest.raises(ValueError):
        store.list(page=0)


def test_delete(store, main_office):
    store.delete(main_office.id)
    assert len(store) == 0
    with pytest.raises(EntityNotFound):
        store.delete(main_office.id)
    # The code is free again.
    store.create(_create_payload(code=main_office.code))


def test_with_geohash_prefix(store, main_office):
    assert store.with_geohash_prefix(main_office.geohash[:6]) == [main_office]
    assert store.with_geohash_prefix("zzzzzz") == []


def test_loader_derives_missing_geohash(tmp_path):
    path = tmp_path / "entities.json"
    path.write_text(
        json.dumps([{"id": "e1", "name": "Main", "code": "M-1", "latitude": 27.7172, "longitude": 85.324, "radius_m": 100}]),
        encoding="utf-8",
    )
    [entity] = load_entities(path)
    assert entity.geohash == geohash.encode(27.7172, 85.324, 8)


def test_loader_rejects_wrong_geohash(tmp_path):
    path = tmp_path / "entities.json"
    path.write_text(
        json.dumps([{"name": "Main", "code": "M-1", "latitude": 27.7172, "longitude": 85.324, "geohash": "s0000000", "radius_m": 100}]),
        encoding="utf-8",
    )
    with pytest.raises(ValidationError):
        load_entities(path)


def test_loader_rejects_non_list_root(tmp_path):
    path = tmp_path / "entities.json"
    path.write_text(json.dumps({"entities": []}), encoding="utf-8")
    with pytest.raises(ValueError, match="expected a JSON list"):
        load_entities(path)


def test_load_store_rejects_duplicate_codes(tmp_path):
    row = {"name": "Main", "code": "M-1", "latitude": 27.7172, "longitude": 85.324, "radius_m": 100}
    path = tmp_path / "entities.json"
    path.write_text(json.dumps([{**row, "id": "a"}, {**row, "id": "b"}]), encoding="utf-8")
    with pytest.raises(DuplicateEntity):
        load_store(path)


def test_save_then_load_keeps_entities(tmp_path, main_office):
    out = save_entities(tmp_path / "nested" / "entities.json", [main_office])
    assert out.is_file()
    assert load_entities(out) == [main_office]


def test_bundled_catalog_loads():
    store = load_store("data/entities.json")
    assert len(store) == 3
    assert store.get_by_code("KTM-MAIN-001").radius_m == 100


def test_update_with_explicit_none_keeps_stored_values(store, main_office):
    updated = store.update(main_office.id, EntityUpdate(name="HQ", radius_m=None, address=None))
    assert updated.name == "HQ"
    assert updated.radius_m == main_office.radius_m
    assert updated.geohash == main_office.geohash


def test_version_counts_mutations(store, main_office):
    start = store.version
    created = store.create(_create_payload())
    store.update(created.id, EntityUpdate(radius_m=200))
    store.delete(created.id)
    assert store.version == start + 3
    with pytest.raises(EntityNotFound):
        store.delete(created.id)
    assert store.version == start + 3


def test_code_lookup_during_concurrent_delete_raises_not_found_only():
    store = EntityStore()
    errors: list[BaseException] = []
    done = threading.Event()

    def reader():
        while not done.is_set():
            try:
                store.get_by_code("KTM-NEW-010")
            except EntityNotFound:
                pass
            except Exception as exc:  # surfaced by the assertion below
                errors.append(exc)
                return

    old_interval = sys.getswitchinterval()
    sys.setswitchinterval(1e-6)
    threads = [threading.Thread(target=reader) for _ in range(4)]
    try:
        for t in threads:
            t.start()
        for _ in range(500):
            store.delete(store.create(_create_payload()).id)
    finally:
        done.set()
        for t in threads:
            t.join()
        sys.setswitchinterval(old_interval)

    assert errors == []
    assert len(store) == 0
