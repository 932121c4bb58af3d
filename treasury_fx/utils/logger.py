"""Logging utilities for the treasury_fx package."""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVEL_ENV = "FX_LOG_LEVEL"

_configured = False


def _level_from_env() -> int:
    level = logging.getLevelName(os.environ.get(LOG_LEVEL_ENV, "INFO").strip().upper())
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str = "treasury_fx") -> logging.Logger:
    """Return a logger, configuring the root handler once.

    The level comes from ``FX_LOG_LEVEL`` (default ``INFO``); unknown names
    fall back to ``INFO``.
    """
    global _configured
    if not _configured:
        logging.basicConfig(level=_level_from_env(), format=LOG_FORMAT)
        _configured = True
    return logging.getLogger(name)
