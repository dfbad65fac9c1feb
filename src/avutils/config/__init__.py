"""Configuration loading helpers."""

from __future__ import annotations

from .load import ConfigError, config_search_path, load_config

__all__ = ["ConfigError", "config_search_path", "load_config"]
