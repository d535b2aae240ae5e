import pygeohash
import pytest

from geoattend.core import geohash
from geoattend.domain.errors import InvalidCoordinate


def test_encode_matches_reference_values():
    # Published reference hashes (geohash.org).
    assert geohash.encode(57.64911, 10.40744, 11) == "u4pruydqqvj"
    assert geohash.encode(42.6, -5.6, 5) == "ezs42"


def test_encode_is_deterministic_and_prefix_stable():
    first = geohash.encode(27.7172, 85.3240, 8)
    assert first == geohash.encode(27.7172, 85.3240, 8)
    assert len(first) == 8
    # A shorter precision is always a prefix of a longer one for the same point.
    assert geohash.encode(27.7172, 85.3240, 6) == first[:6]


def test_encode_defaults_to_entity_precision():
    assert len(geohash.encode(27.7172, 85.3240)) == geohash.ENTITY_PRECISION == 8


@pytest.mark.parametrize("lat,lon", [(90.5, 0), (-91, 10), (10, 180.01), (0, -181), (float("nan"), 0)])
def test_encode_rejects_out_of_range_coordinates(lat, lon):
    with pytest.raises(InvalidCoordinate):
        geohash.encode(lat, lon)


def test_encode_rejects_bad_precision():
    with pytest.raises(ValueError, match="precision"):
        geohash.encode(0, 0, 0)
    with pytest.raises(ValueError, match="precision"):
        geohash.encode(0, 0, 13)


def test_decode_returns_point_inside_cell():
    code = geohash.encode(27.7172, 85.3240, 8)
    min_lat, min_lon, max_lat, max_lon = geohash.bounds(code)
    assert min_lat <= 27.7172 <= max_lat
    assert min_lon <= 85.3240 <= max_lon

    lat, lon = geohash.decode(code)
    assert geohash.encode(lat, lon, 8) == code


def test_bounds_rejects_invalid_characters():
    with pytest.raises(ValueError, match="Invalid geohash character"):
        geohash.bounds("abc")  # 'a' is not in the base-32 alphabet


def test_wrapper_agrees_with_pygeohash():
    assert geohash.encode(27.7172, 85.3240, 9) == pygeohash.encode(27.7172, 85.3240, precision=9)
    lat, lon = geohash.decode(" TUVZ4P ")
    assert (lat, lon) == pytest.approx(pygeohash.decode_exactly("tuvz4p")[:2])
