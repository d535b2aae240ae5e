import pytest

from geoattend.core.geo import Coordinate, haversine_m
from geoattend.core.spatial_index import SpatialGridIndex


def _index(points, cell_size_m=1200.0):
    return SpatialGridIndex(points, get_coordinate=lambda p: p, cell_size_m=cell_size_m)


def test_query_matches_brute_force():
    center = Coordinate(lat=27.7172, lon=85.3240)
    points = [Coordinate(lat=27.70 + i * 0.002, lon=85.30 + j * 0.002) for i in range(20) for j in range(20)]
    index = _index(points)
    assert len(index) == 400

    got = {(p.lat, p.lon) for p, _ in index.query_within(center, 1500)}
    expected = {(p.lat, p.lon) for p in points if haversine_m(center, p) <= 1500}
    assert got == expected
    assert expected


def test_query_crosses_antimeridian():
    # Enough populated cells that the query visits neighbours instead of scanning everything.
    filler = [Coordinate(lat=-60 + i, lon=0.0) for i in range(100)]
    east = Coordinate(lat=0.0, lon=179.999)
    index = _index([*filler, east])

    hits = index.query_within(Coordinate(lat=0.0, lon=-179.999), 500)
    assert [p for p, _ in hits] == [east]
    assert hits[0][1] == pytest.approx(222.4, abs=0.5)


def test_query_near_pole_falls_back_to_full_scan():
    pole = Coordinate(lat=89.9999, lon=10.0)
    other_side = Coordinate(lat=89.9999, lon=-170.0)
    index = _index([pole, other_side])
    assert {p for p, _ in index.query_within(pole, 100)} == {pole, other_side}


def test_negative_radius_returns_nothing():
    index = _index([Coordinate(lat=0, lon=0)])
    assert index.query_within(Coordinate(lat=0, lon=0), -1) == []


def test_cell_size_must_be_positive():
    with pytest.raises(ValueError):
        _index([], cell_size_m=0)
