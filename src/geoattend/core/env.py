"""
Project root and `.env` handling.

Catalog paths in settings (`data/entities.json`) are relative to the project root,
not to whatever directory the CLI or pytest was started from. The root is, in order:
`GEOATTEND_PROJECT_ROOT`, the directory of `GEOATTEND_ENV_FILE`, the nearest parent
of the working directory that looks like a checkout, the nearest such parent of
this module, and finally the working directory itself.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

ROOT_ENV = "GEOATTEND_PROJECT_ROOT"
ENV_FILE_ENV = "GEOATTEND_ENV_FILE"


def _is_checkout(path: Path) -> bool:
    if (path / ".env").is_file() or (path / ".git").exists():
        return True
    return (path / "pyproject.toml").is_file() and (path / "src" / "geoattend").is_dir()


def _find_checkout(start: Path) -> Path | None:
    start = start.resolve()
    return next((p for p in (start, *start.parents) if _is_checkout(p)), None)


def _explicit_env_file() -> Path | None:
    value = os.getenv(ENV_FILE_ENV)
    return Path(value).expanduser().resolve() if value else None


@lru_cache
def get_project_root() -> Path:
    """Return the project root directory (cached)."""
    override = os.getenv(ROOT_ENV)
    if override:
        return Path(override).expanduser().resolve()

    env_file = _explicit_env_file()
    if env_file is not None:
        return env_file.parent

    return _find_checkout(Path.cwd()) or _find_checkout(Path(__file__).parent) or Path.cwd().resolve()


@lru_cache
def load_dotenv_if_present() -> Path | None:
    """Load the project's `.env` once; variables already set in the process win."""
    env_path = _explicit_env_file() or get_project_root() / ".env"
    if not env_path.is_file():
        return None
    load_dotenv(dotenv_path=env_path, override=False)
    return env_path


def resolve_project_path(path: str | Path) -> Path:
    """Absolute paths pass through; relative ones are anchored at the project root."""
    p = Path(path).expanduser()
    return p if p.is_absolute() else (get_project_root() / p).resolve()
