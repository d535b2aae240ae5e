# src/geoattend/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/geoattend/config/defaults.yaml`, then optionally overridden by:
- an external YAML file via `GEOATTEND_CONFIG_PATH`
- environment variables (e.g., `GEOATTEND_LOG_LEVEL`, `GEOATTEND_CATALOG_PATH`)

Design rule:
- Thresholds and bounds live in YAML, not hard-coded in business logic.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, model_validator

from geoattend.core.env import load_dotenv_if_present


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `geoattend.config`."""
    text = resources.files("geoattend.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "GeoAttend"
    timezone: str = "Asia/Kathmandu"
    log_level: str = "INFO"


class CatalogSettings(BaseModel):
    path: str = "data/entities.json"


class GeofenceSettings(BaseModel):
    geohash_precision: int = Field(8, ge=1, le=12)
    prefix_length: int = Field(6, ge=1, le=12)
    default_search_radius_m: float = 1000
    min_search_radius_m: float = 10
    max_search_radius_m: float = 10_000
    max_results: int = Field(50, ge=1)
    strategy: Literal["geohash_prefix", "grid"] = "geohash_prefix"
    grid_cell_size_m: float = Field(1200, gt=0)

    @model_validator(mode="after")
    def _validate_bounds(self) -> "GeofenceSettings":
        if self.prefix_length > self.geohash_precision:
            raise ValueError("geofence.prefix_length cannot exceed geofence.geohash_precision")
        if not self.min_search_radius_m <= self.default_search_radius_m <= self.max_search_radius_m:
            raise ValueError("geofence.default_search_radius_m must lie within the min/max search radius")
        return self


class PatternSettings(BaseModel):
    window_days: int = Field(30, ge=1)
    min_occurrences: int = Field(3, ge=1)
    high_risk_occurrences: int = Field(10, ge=1)
    repeated_location_threshold: int = Field(5, ge=1)


class FraudSettings(BaseModel):
    flag_speed_kmph: float = Field(200, gt=0)
    high_speed_kmph: float = Field(100, gt=0)
    medium_speed_kmph: float = Field(60, gt=0)
    patterns: PatternSettings = Field(default_factory=PatternSettings)

    @model_validator(mode="after")
    def _validate_order(self) -> "FraudSettings":
        if not self.medium_speed_kmph <= self.high_speed_kmph <= self.flag_speed_kmph:
            raise ValueError("fraud speed thresholds must satisfy medium <= high <= flag")
        return self


class AttendanceSettings(BaseModel):
    allow_outside_geofence: bool = False


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    geofence: GeofenceSettings = Field(default_factory=GeofenceSettings)
    fraud: FraudSettings = Field(default_factory=FraudSettings)
    attendance: AttendanceSettings = Field(default_factory=AttendanceSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("GEOATTEND_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    catalog_path = os.getenv("GEOATTEND_CATALOG_PATH")
    if catalog_path:
        data.setdefault("catalog", {})["path"] = catalog_path

    strategy = os.getenv("GEOATTEND_PROXIMITY_STRATEGY")
    if strategy:
        data.setdefault("geofence", {})["strategy"] = strategy.strip().lower()

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("GEOATTEND_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
