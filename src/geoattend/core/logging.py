"""
Logging setup for the CLI and scripts.

Handlers and formatters come from `config/logging.yaml`. The level is `app.log_level`
(env: `GEOATTEND_LOG_LEVEL`) unless the caller passes one, e.g. the CLI's
`--log-level`. Library modules only call `logging.getLogger(__name__)`.
"""

from __future__ import annotations

import copy
import logging
import logging.config

from geoattend.config.settings import get_logging_config, get_settings


def configure_logging(level: str | None = None) -> None:
    """Apply the packaged dictConfig at `level` (defaults to settings)."""
    resolved = (level or get_settings().app.log_level).upper()
    # get_logging_config() is cached; work on a copy.
    config = copy.deepcopy(get_logging_config())
    config.setdefault("root", {})["level"] = resolved
    for handler in config.get("handlers", {}).values():
        if isinstance(handler, dict):
            handler["level"] = resolved

    logging.config.dictConfig(config)
    logging.getLogger(__name__).debug("Logging configured at %s", resolved)
