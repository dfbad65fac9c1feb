"""Configuration loading helpers for avutils."""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from copy import deepcopy
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft7Validator

from ..exceptions import ConfigError
from ..utils.io import load_json
from ..utils.logging import get_logger

LOGGER = get_logger(__name__)

__all__ = ["ConfigError", "config_search_path", "load_config"]

DEFAULTS_DIR = Path(__file__).with_name("defaults")
SCHEMA_PATH = Path(__file__).with_name("schema.json")
ENV_PREFIX = "AVUTILS_"
ENV_SEPARATOR = "__"
CONFIG_SUFFIXES = (".yaml", ".yml")


def config_search_path(config_dir: str | Path | None = None) -> list[Path]:
    """Return the folders searched for ``<env>.yaml``.

    An explicit ``config_dir`` is the only place searched. Otherwise a ``configs/``
    folder in the working directory wins over the defaults shipped with the package.
    """
    if config_dir is not None:
        return [Path(config_dir)]
    return [Path.cwd() / "configs", DEFAULTS_DIR]


def load_config(
    env: str = "dev",
    *,
    config_dir: str | Path | None = None,
    overrides: Mapping[str, Any] | None = None,
    validate: bool = True,
) -> dict[str, Any]:
    """Load the configuration for ``env``.

    Layers, later ones winning:
        1. ``{env}.yaml`` from the first folder of :func:`config_search_path` that has one.
        2. The ``overrides`` mapping.
        3. ``AVUTILS_*`` environment variables, ``__`` separating nested keys
           (``AVUTILS_EVALUATION__RESOLUTION=0.1``).

    Args:
        env: Environment name, i.e. the config file stem
        config_dir: Folder to read from instead of the default search path
        overrides: Values merged over the file contents
        validate: Check the merged result against ``schema.json``

    Returns:
        The merged configuration

    Raises:
        FileNotFoundError: No folder holds a config file for ``env``
        ConfigError: The file is not a YAML mapping or fails validation
    """
    path = _find_config_file(config_search_path(config_dir), env)
    LOGGER.debug("Loading %s configuration from %s", env, path)

    config = _read_yaml(path)
    for layer in (overrides, _env_overrides(os.environ)):
        if layer:
            config = _merge(config, layer)

    if validate:
        _validate(config)
    return config


def _find_config_file(folders: Sequence[Path], env: str) -> Path:
    for folder in folders:
        for suffix in CONFIG_SUFFIXES:
            candidate = folder / f"{env}{suffix}"
            if candidate.is_file():
                return candidate
    searched = ", ".join(str(folder) for folder in folders)
    raise FileNotFoundError(f"No configuration for environment '{env}' in {searched}.")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration root must be a mapping in {path}.")
    return data


def _merge(base: Mapping[str, Any], layer: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``base`` with ``layer`` merged in; nested mappings merge key by key."""
    merged = deepcopy(dict(base))
    for key, value in layer.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = _merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Build a nested override mapping from ``AVUTILS_*`` variables."""
    overrides: dict[str, Any] = {}
    for name, raw in environ.items():
        if not name.startswith(ENV_PREFIX):
            continue
        keys = [
            token.strip().lower().replace("-", "_")
            for token in name[len(ENV_PREFIX) :].split(ENV_SEPARATOR)
            if token.strip()
        ]
        if not keys:
            continue
        node = overrides
        for key in keys[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = node[key] = {}
            node = child
        node[keys[-1]] = _parse_env_value(raw)
    return overrides


def _parse_env_value(raw: str) -> Any:
    # YAML scalars give "0.1" -> 0.1, "true" -> True, "[a, b]" -> list.
    if not raw:
        return raw
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw


def _validate(config: Mapping[str, Any]) -> None:
    validator = Draft7Validator(load_json(SCHEMA_PATH))
    errors = sorted(validator.iter_errors(config), key=lambda err: list(err.path))
    if not errors:
        return
    lines = [
        f"- {'.'.join(str(part) for part in error.path) or '<root>'}: {error.message}"
        for error in errors
    ]
    raise ConfigError("Configuration validation failed:\n" + "\n".join(lines)) from errors[0]
