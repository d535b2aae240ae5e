import pytest
from pydantic import ValidationError

from geoattend.config.settings import FraudSettings, GeofenceSettings, Settings, get_logging_config, get_settings


@pytest.fixture(autouse=True)
def _fresh_settings():
    # get_settings() is cached; every test here starts and ends with a clean cache.
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_packaged_defaults():
    settings = get_settings()
    assert settings.app.timezone == "Asia/Kathmandu"
    assert settings.geofence.geohash_precision == 8
    assert settings.geofence.prefix_length == 6
    assert settings.geofence.max_results == 50
    assert settings.geofence.strategy == "geohash_prefix"
    assert settings.fraud.flag_speed_kmph == 200
    assert settings.fraud.patterns.window_days == 30
    assert settings.attendance.allow_outside_geofence is False


def test_defaults_yaml_matches_model_defaults():
    assert get_settings() == Settings()


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("GEOATTEND_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("GEOATTEND_CATALOG_PATH", "/tmp/other.json")
    monkeypatch.setenv("GEOATTEND_PROXIMITY_STRATEGY", " Grid ")
    settings = get_settings()
    assert settings.app.log_level == "DEBUG"
    assert settings.catalog.path == "/tmp/other.json"
    assert settings.geofence.strategy == "grid"


def test_unknown_strategy_is_rejected(monkeypatch):
    monkeypatch.setenv("GEOATTEND_PROXIMITY_STRATEGY", "rtree")
    with pytest.raises(ValidationError):
        get_settings()


def test_external_config_file(monkeypatch, tmp_path):
    path = tmp_path / "geoattend.yaml"
    path.write_text("fraud:\n  flag_speed_kmph: 150\ngeofence:\n  max_results: 10\n", encoding="utf-8")
    monkeypatch.setenv("GEOATTEND_CONFIG_PATH", str(path))
    settings = get_settings()
    assert settings.fraud.flag_speed_kmph == 150
    assert settings.geofence.max_results == 10
    # Sections missing from the file keep their defaults.
    assert settings.app.timezone == "Asia/Kathmandu"


def test_prefix_cannot_exceed_precision():
    with pytest.raises(ValidationError, match="prefix_length"):
        GeofenceSettings(geohash_precision=5, prefix_length=6)


def test_default_radius_within_bounds():
    with pytest.raises(ValidationError):
        GeofenceSettings(default_search_radius_m=5)


def test_speed_thresholds_must_be_ordered():
    with pytest.raises(ValidationError, match="medium <= high <= flag"):
        FraudSettings(flag_speed_kmph=90, high_speed_kmph=100)


def test_logging_config_is_a_dictconfig():
    config = get_logging_config()
    assert config["version"] == 1
    assert "console" in config["handlers"]
