"""Logging system setup: a single stderr handler on the package logger."""

import logging
import sys
from typing import Optional, Union

from ..config import get_settings

APP_LOGGER = "ideogram_client"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _coerce_level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    name = level.upper()
    if name == "WARN":
        name = "WARNING"
    value = logging.getLevelName(name)
    if not isinstance(value, int):
        raise ValueError(f"Invalid log level: {level}")
    return value


def setup_logging(level: Optional[Union[str, int]] = None) -> logging.Logger:
    """Initialize stderr logging for the package.

    Stdout is left alone so command output stays clean for piping.
    """
    if level is None:
        level = get_settings().logging.level

    app_logger = logging.getLogger(APP_LOGGER)
    app_logger.setLevel(_coerce_level(level))
    app_logger.propagate = False

    if app_logger.hasHandlers():
        app_logger.handlers.clear()

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    app_logger.addHandler(stderr_handler)

    return app_logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the package namespace."""
    if name == APP_LOGGER or name.startswith(APP_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{APP_LOGGER}.{name}")
