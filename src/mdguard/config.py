#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/mdguard/config.py
"""Configuration file discovery and loading for mdguard.

This module finds a configuration file, loads it from TOML, YAML or JSON,
applies ``MDGUARD_*`` environment overrides and builds a validated
:class:`~mdguard.options.security.GuardOptions`.

Configuration layout (TOML shown; YAML and JSON use the same keys)::

    production = true
    max_content_size = 10485760

    [file_integrity]
    max_control_char_ratio = 0.1
    max_file_size = 52428800

    [path_security]
    allowed_extensions = [".md", ".markdown"]

    [url_security]
    max_url_length = 2048

    [rate_limit]
    max_calls = 100
    window_ms = 1000

    [sanitization]
    allowed_protocols = ["http:", "https:", "mailto:", "tel:"]

Priority, highest first: environment variables, the explicit config path,
``MDGUARD_CONFIG``, then the first file discovered walking up from the
working directory (``.mdguard.toml``, ``.mdguard.yaml``, ``.mdguard.yml``,
``.mdguard.json``, ``[tool.mdguard]`` in ``pyproject.toml``) or in the home
directory.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Mapping
from dataclasses import fields
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import-not-found,unused-ignore]

import yaml

from mdguard.constants import CONFIG_FILENAMES, ENV_PREFIX
from mdguard.exceptions import ConfigurationError
from mdguard.options.base import CloneFrozenMixin
from mdguard.options.security import (
    FileIntegrityOptions,
    GuardOptions,
    PathSecurityOptions,
    RateLimitOptions,
    SanitizationPolicy,
    UrlSecurityOptions,
)

logger = logging.getLogger(__name__)

SECTIONS: dict[str, type[CloneFrozenMixin]] = {
    "file_integrity": FileIntegrityOptions,
    "path_security": PathSecurityOptions,
    "url_security": UrlSecurityOptions,
    "rate_limit": RateLimitOptions,
    "sanitization": SanitizationPolicy,
}

TOP_LEVEL_KEYS = ("production", "max_content_size")

CONFIG_ENV_VAR = f"{ENV_PREFIX}CONFIG"

_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off")


def _load_pyproject_section(pyproject_path: Path) -> dict[str, Any]:
    """Load the ``[tool.mdguard]`` table from ``pyproject.toml``, or ``{}``."""
    try:
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {pyproject_path.name}: {e}", source=str(pyproject_path)) from e
    except OSError as e:
        raise ConfigurationError(f"Error reading {pyproject_path.name}: {e}", source=str(pyproject_path)) from e

    config = data.get("tool", {}).get("mdguard", {})
    if not isinstance(config, dict):
        raise ConfigurationError(
            f"[tool.mdguard] must be a table, got {type(config).__name__}", source=str(pyproject_path)
        )
    return config


def find_config_in_parents(start_dir: Path | None = None) -> Path | None:
    """Find a configuration file by walking up from ``start_dir``.

    In each directory the dedicated config files are checked first, then a
    ``pyproject.toml`` that has a ``[tool.mdguard]`` table.

    Parameters
    ----------
    start_dir : Path, optional
        Starting directory, defaults to the current working directory

    Returns
    -------
    Path or None
        First configuration file found

    """
    current = (start_dir or Path.cwd()).resolve()

    while True:
        for filename in CONFIG_FILENAMES:
            candidate = current / filename
            if candidate.is_file():
                return candidate

        pyproject_path = current / "pyproject.toml"
        if pyproject_path.is_file():
            try:
                if _load_pyproject_section(pyproject_path):
                    return pyproject_path
            except ConfigurationError as e:
                logger.debug(f"Skipping unreadable {pyproject_path}: {e}")

        parent = current.parent
        if parent == current:
            return None
        current = parent


def discover_config_file(start_dir: Path | None = None) -> Path | None:
    """Discover a configuration file in the parent directories, then in the home directory."""
    found = find_config_in_parents(start_dir)
    if found:
        return found

    home = Path.home()
    for filename in CONFIG_FILENAMES:
        candidate = home / filename
        if candidate.is_file():
            return candidate

    return None


def load_config_file(config_path: Path | str) -> dict[str, Any]:
    """Load a configuration mapping from a TOML, YAML, JSON or pyproject file.

    Parameters
    ----------
    config_path : Path or str
        Path to the configuration file

    Returns
    -------
    dict
        Raw configuration mapping

    Raises
    ------
    ConfigurationError
        If the file does not exist, cannot be parsed, or is not a mapping

    """
    config_path = Path(config_path)
    source = str(config_path)

    if not config_path.is_file():
        raise ConfigurationError(f"Configuration file does not exist: {config_path}", source=source)

    if config_path.name.lower() == "pyproject.toml":
        return _load_pyproject_section(config_path)

    ext = config_path.suffix.lower()
    try:
        if ext == ".toml":
            with open(config_path, "rb") as f:
                config = tomllib.load(f)
        elif ext in (".yaml", ".yml"):
            with open(config_path, encoding="utf-8") as f:
                config = yaml.safe_load(f)
        elif ext == ".json":
            with open(config_path, encoding="utf-8") as f:
                config = json.load(f)
        else:
            raise ConfigurationError(f"Unsupported config file format: {ext}. Use .toml, .yaml or .json", source=source)
    except ConfigurationError:
        raise
    except (tomllib.TOMLDecodeError, yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Invalid configuration in {config_path.name}: {e}", source=source) from e
    except OSError as e:
        raise ConfigurationError(f"Error reading config file {config_path.name}: {e}", source=source) from e

    if config is None:
        # An empty YAML document
        return {}
    if not isinstance(config, dict):
        raise ConfigurationError(
            f"Config file must contain a mapping at the top level, got {type(config).__name__}", source=source
        )
    return config


def merge_configs(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge two configuration mappings; ``override`` wins on conflicts.

    Examples
    --------
    >>> merge_configs({"rate_limit": {"max_calls": 5, "window_ms": 10}}, {"rate_limit": {"max_calls": 7}})
    {'rate_limit': {'max_calls': 7, 'window_ms': 10}}

    """
    result = dict(base)
    for key, value in override.items():
        if isinstance(result.get(key), Mapping) and isinstance(value, Mapping):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value
    return result


def _parse_env_value(raw: str, default: Any, source: str) -> Any:
    """Convert an environment string to the type of ``default``."""
    if isinstance(default, bool):
        lowered = raw.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ConfigurationError(f"Invalid boolean value for {source}: {raw!r}", source=source)

    if isinstance(default, (frozenset, tuple, list)):
        return [item.strip() for item in raw.split(",") if item.strip()]

    if isinstance(default, Mapping):
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"{source} must be a JSON object: {e}", source=source) from e

    return raw


def env_overrides(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Collect ``MDGUARD_<SECTION>_<FIELD>`` and top-level overrides from the environment.

    Values are returned as strings (or lists for collection fields) and
    converted when the options are built.

    Parameters
    ----------
    environ : mapping, optional
        Environment to read, defaults to ``os.environ``

    Returns
    -------
    dict
        Nested configuration mapping

    """
    environ = os.environ if environ is None else environ
    defaults = GuardOptions()
    overrides: dict[str, Any] = {}

    for key in TOP_LEVEL_KEYS:
        env_key = f"{ENV_PREFIX}{key.upper()}"
        if env_key in environ:
            overrides[key] = _parse_env_value(environ[env_key], getattr(defaults, key), env_key)

    for section, options_cls in SECTIONS.items():
        section_defaults = getattr(defaults, section)
        for f in fields(options_cls):
            env_key = f"{ENV_PREFIX}{section.upper()}_{f.name.upper()}"
            if env_key in environ:
                value = _parse_env_value(environ[env_key], getattr(section_defaults, f.name), env_key)
                overrides.setdefault(section, {})[f.name] = value
                logger.debug(f"Applied environment override {env_key}")

    return overrides


def _coerce(value: Any, default: Any, key: str, source: str | None) -> Any:
    """Convert a configuration value to the type of the field's default."""
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        raise ConfigurationError(f"{key} must be a boolean, got {value!r}", source=source)

    if isinstance(default, int):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            try:
                return int(value)
            except ValueError:
                pass
        raise ConfigurationError(f"{key} must be an integer, got {value!r}", source=source)

    if isinstance(default, float):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value)
            except ValueError:
                pass
        raise ConfigurationError(f"{key} must be a number, got {value!r}", source=source)

    if isinstance(default, (frozenset, tuple)):
        if isinstance(value, str) or not isinstance(value, (list, tuple, set, frozenset)):
            raise ConfigurationError(f"{key} must be a list, got {value!r}", source=source)
        if not all(isinstance(item, str) for item in value):
            raise ConfigurationError(f"{key} must be a list of strings", source=source)
        return frozenset(value) if isinstance(default, frozenset) else tuple(value)

    if isinstance(default, Mapping):
        if not isinstance(value, Mapping):
            raise ConfigurationError(f"{key} must be a table, got {value!r}", source=source)
        return {
            str(tag): frozenset(_coerce(attrs, (), f"{key}.{tag}", source)) for tag, attrs in value.items()
        }

    return value


def _build_section(section: str, values: Any, source: str | None) -> CloneFrozenMixin:
    options_cls = SECTIONS[section]
    if not isinstance(values, Mapping):
        raise ConfigurationError(f"[{section}] must be a table, got {type(values).__name__}", source=source)

    defaults = options_cls()
    known = options_cls.field_names()
    unknown = sorted(set(values) - set(known))
    if unknown:
        raise ConfigurationError(f"Unknown keys in [{section}]: {', '.join(unknown)}", source=source)

    kwargs = {
        key: _coerce(value, getattr(defaults, key), f"{section}.{key}", source) for key, value in values.items()
    }
    try:
        return options_cls(**kwargs)
    except ValueError as e:
        raise ConfigurationError(f"Invalid [{section}] configuration: {e}", source=source, original_error=e) from e


def options_from_dict(config: Mapping[str, Any], source: str | None = None) -> GuardOptions:
    """Build ``GuardOptions`` from a configuration mapping.

    Parameters
    ----------
    config : mapping
        Configuration with optional section tables and top-level keys
    source : str, optional
        Where the configuration came from, for error messages

    Returns
    -------
    GuardOptions
        Validated options; omitted values keep their defaults

    Raises
    ------
    ConfigurationError
        For unknown keys, wrongly typed values, or values out of range

    Examples
    --------
    >>> options = options_from_dict({"rate_limit": {"max_calls": 3}, "production": False})
    >>> options.rate_limit.max_calls, options.production
    (3, False)

    """
    unknown = sorted(set(config) - set(SECTIONS) - set(TOP_LEVEL_KEYS))
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}", source=source)

    defaults = GuardOptions()
    kwargs: dict[str, Any] = {}

    for key in TOP_LEVEL_KEYS:
        if key in config:
            kwargs[key] = _coerce(config[key], getattr(defaults, key), key, source)

    for section in SECTIONS:
        if section in config:
            kwargs[section] = _build_section(section, config[section], source)

    try:
        return GuardOptions(**kwargs)
    except ValueError as e:
        raise ConfigurationError(f"Invalid configuration: {e}", source=source, original_error=e) from e


def load_options(
    config_path: Path | str | None = None,
    *,
    start_dir: Path | None = None,
    environ: Mapping[str, str] | None = None,
    discover: bool = True,
) -> GuardOptions:
    """Load ``GuardOptions`` from configuration files and the environment.

    Parameters
    ----------
    config_path : Path or str, optional
        Explicit configuration file
    start_dir : Path, optional
        Where discovery starts, defaults to the working directory
    environ : mapping, optional
        Environment to read, defaults to ``os.environ``
    discover : bool, default True
        Search for a configuration file when no path is given

    Returns
    -------
    GuardOptions
        The merged, validated options

    Raises
    ------
    ConfigurationError
        If a configuration file or environment override is invalid

    """
    environ = os.environ if environ is None else environ

    if config_path is None and environ.get(CONFIG_ENV_VAR):
        config_path = environ[CONFIG_ENV_VAR]
    if config_path is None and discover:
        config_path = discover_config_file(start_dir)

    config: dict[str, Any] = {}
    source = None
    if config_path is not None:
        config = load_config_file(config_path)
        source = str(config_path)
        logger.debug(f"Loaded configuration from {Path(config_path).name}")

    overrides = env_overrides(environ)
    if overrides:
        config = merge_configs(config, overrides)
        source = f"{source} + environment" if source else "environment"

    return options_from_dict(config, source=source)


__all__ = [
    "CONFIG_ENV_VAR",
    "SECTIONS",
    "discover_config_file",
    "env_overrides",
    "find_config_in_parents",
    "load_config_file",
    "load_options",
    "merge_configs",
    "options_from_dict",
]
