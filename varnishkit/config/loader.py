"""
Varnishkit Config - Settings loader.

Reads a YAML settings file and applies VARNISHKIT_* environment overrides.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from loguru import logger
from pydantic import ValidationError

from varnishkit.config.constants import DEFAULT_SETTINGS_PATHS, ENV_PREFIX
from varnishkit.config.models import EngineSettings, Settings, VarnishSettings
from varnishkit.core.exceptions import ConfigurationError, InvalidConfigError

_SECTIONS = ("varnish", "engine", "logging")


def find_settings_file() -> Path | None:
    """Return the first existing default settings file, if any."""
    for candidate in DEFAULT_SETTINGS_PATHS:
        path = Path(candidate)
        if path.exists():
            return path
    return None


def read_settings_file(path: Path) -> dict[str, Any]:
    """
    Parse a settings file into section dictionaries.

    A file without any of the ``varnish``/``engine``/``logging`` sections is
    taken to be a flat list of varnish parameters.

    Raises:
        ConfigurationError: File missing or unreadable.
        InvalidConfigError: File is not a YAML mapping.
    """
    if not path.exists():
        raise ConfigurationError(f"Settings file not found: {path}", {"path": str(path)})

    try:
        data = yaml.safe_load(path.read_text())
    except OSError as e:
        raise ConfigurationError(f"Cannot read settings file: {e}", {"path": str(path)}) from e
    except yaml.YAMLError as e:
        raise InvalidConfigError(f"Invalid YAML in {path}: {e}", {"path": str(path)}) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidConfigError(
            f"Settings file must contain a mapping, got {type(data).__name__}",
            {"path": str(path)},
        )

    if not any(section in data for section in _SECTIONS):
        return {"varnish": data}
    return data


def env_overrides(environ: Mapping[str, str]) -> dict[str, dict[str, str]]:
    """
    Collect overrides from the environment.

    ``VARNISHKIT_LISTEN_PORT=80`` sets ``varnish.listen_port``;
    ``VARNISHKIT_ENGINE_COMMAND_TIMEOUT=60`` sets ``engine.command_timeout``.
    ``VARNISHKIT_LOG_*`` variables belong to the logging setup and are skipped.
    """
    varnish_fields = set(VarnishSettings.model_fields)
    engine_fields = set(EngineSettings.model_fields)
    overrides: dict[str, dict[str, str]] = {"varnish": {}, "engine": {}}

    for key, value in environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        name = key[len(ENV_PREFIX):].lower()
        if name.startswith("log_"):
            continue
        if name.startswith("engine_") and name[len("engine_"):] in engine_fields:
            overrides["engine"][name[len("engine_"):]] = value
        elif name in varnish_fields:
            overrides["varnish"][name] = value

    return overrides


def load_settings(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """
    Load settings.

    Priority:
    1. Environment variables (VARNISHKIT_*)
    2. Settings file (``path`` or the first of DEFAULT_SETTINGS_PATHS)
    3. Defaults

    Raises:
        ConfigurationError: Explicit settings file missing or unreadable.
        InvalidConfigError: Values fail validation.
    """
    environ = os.environ if environ is None else environ

    settings_path = Path(path) if path is not None else find_settings_file()
    data: dict[str, Any] = {}
    if settings_path is not None:
        data = read_settings_file(settings_path)
        logger.debug(f"Loaded settings from {settings_path}")

    for section, values in env_overrides(environ).items():
        if values:
            merged = dict(data.get(section) or {})
            merged.update(values)
            data[section] = merged
            logger.debug(f"Environment overrides for {section}: {sorted(values)}")

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        ]
        raise InvalidConfigError(
            f"Invalid settings: {'; '.join(errors)}",
            {"errors": errors},
        ) from e
