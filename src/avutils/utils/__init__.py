"""Utility helpers for avutils."""

from __future__ import annotations

from .io import ensure_dir, load_json, save_csv, save_json
from .logging import configure_logging, get_logger, set_log_level

__all__ = [
    "configure_logging",
    "ensure_dir",
    "get_logger",
    "load_json",
    "save_csv",
    "save_json",
    "set_log_level",
]
