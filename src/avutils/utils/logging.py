"""Project-wide logging configuration helpers."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from logging import Handler, Logger
from pathlib import Path
from typing import Any

__all__ = ["configure_logging", "get_logger", "set_log_level"]

DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(settings: Mapping[str, Any] | None = None, *, force: bool = True) -> None:
    """Configure the root logger from the ``logging`` section of the configuration.

    .. code-block:: yaml

        logging:
          level: INFO
          file:
            enabled: true
            path: ~/.avutils/avutils.log

    A file handler is attached only when ``file.enabled`` is true and a path is given.
    """

    level = _coerce_level(settings.get("level") if settings else None)

    logging.basicConfig(level=level, format=DEFAULT_FORMAT, force=force)

    file_settings = (settings or {}).get("file")
    handler: Handler | None = None
    if isinstance(file_settings, Mapping) and file_settings.get("enabled"):
        path_value = file_settings.get("path")
        if path_value:
            log_path = Path(path_value).expanduser()
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(log_path, encoding="utf-8")
            handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))

    if handler:
        logging.getLogger().addHandler(handler)


def get_logger(name: str | None = None) -> Logger:
    """Return a module logger, defaulting to the package logger."""
    return logging.getLogger(name if name else "avutils")


def set_log_level(level: str | int) -> None:
    """Set the log level on the root logger."""
    logging.getLogger().setLevel(_coerce_level(level))


def _coerce_level(level: Any) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str) and level:
        resolved = logging.getLevelName(level.upper())
        if isinstance(resolved, int):
            return resolved
    return logging.INFO
