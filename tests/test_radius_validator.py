import pytest

from geoattend.domain.errors import EntityNotFound, InvalidCoordinate
from geoattend.geofence.validator import validate_location, validate_within_radius

from helpers import KATHMANDU, north_of


def test_same_point_is_valid_with_zero_distance(main_office):
    result = validate_within_radius(main_office, KATHMANDU)
    assert result.is_valid
    assert result.distance_m == 0
    assert result.allowed_radius_m == 100
    assert result.message == "Location is valid. You are 0m from Main Office Kathmandu"


def test_inside_radius(main_office):
    result = validate_within_radius(main_office, north_of(KATHMANDU, 85))
    assert result.is_valid
    assert result.is_within_radius
    assert result.distance_m == 85
    assert "You are 85m from Main Office Kathmandu" in result.message


def test_outside_radius_reports_excess(main_office):
    result = validate_within_radius(main_office, north_of(KATHMANDU, 250))
    assert not result.is_valid
    assert result.distance_m == 250
    assert result.message == "Location is 150m outside the allowed 100m radius of Main Office Kathmandu"


def test_boundary_is_inclusive(main_office):
    result = validate_within_radius(main_office, north_of(KATHMANDU, 99.9))
    assert result.is_valid
    assert result.distance_m == 100


def test_just_outside_rounds_before_subtracting(main_office):
    # 100.4m is outside a 100m radius, but the displayed distance rounds to 100.
    result = validate_within_radius(main_office, north_of(KATHMANDU, 100.4))
    assert not result.is_valid
    assert result.distance_m == 100
    assert result.message.startswith("Location is 0m outside the allowed 100m radius")


def test_rounding_to_nearest_meter(main_office):
    assert validate_within_radius(main_office, north_of(KATHMANDU, 42.7)).distance_m == 43
    assert validate_within_radius(main_office, north_of(KATHMANDU, 42.3)).distance_m == 42


def test_validate_location_looks_up_entity(store, main_office):
    result = validate_location(store, main_office.id, KATHMANDU.lat, KATHMANDU.lon)
    assert result.is_valid
    assert result.entity_name == "Main Office Kathmandu"


def test_validate_location_unknown_entity(store):
    with pytest.raises(EntityNotFound, match="Entity with ID 'missing' not found"):
        validate_location(store, "missing", KATHMANDU.lat, KATHMANDU.lon)


def test_validate_location_rejects_bad_coordinates(store, main_office):
    with pytest.raises(InvalidCoordinate):
        validate_location(store, main_office.id, 95.0, 85.0)
