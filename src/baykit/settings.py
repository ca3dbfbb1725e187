"""Loader for the optional baykit.yaml project settings file."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import jsonschema
import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .logging_config import logger
from .models import SetupTarget

SETTINGS_FILENAME = "baykit.yaml"

SETTINGS_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "baykit settings",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "version": {"type": "string"},
        "target": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "package": {"type": "string", "minLength": 1},
                "symbol": {"type": "string", "minLength": 1},
                "plugin_module": {"type": "string", "minLength": 1},
                "plugin_factory": {"type": "string", "minLength": 1},
                "plugin_field": {"type": "string", "minLength": 1},
            },
        },
    },
}


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        msg = f"Failed to parse settings YAML: {e}"
        raise ConfigError(msg, details={"path": str(path)}) from e
    except OSError as e:
        msg = f"Failed to read settings file: {e}"
        raise ConfigError(msg, details={"path": str(path)}) from e

    # An empty file means defaults
    return data if data is not None else {}


def load_settings(
    project_root: Path | None = None,
    config_path: Path | None = None,
) -> SetupTarget:
    """Load the setup target for a project.

    Args:
        project_root: Directory searched for baykit.yaml
        config_path: Explicit settings file; must exist when given

    Returns:
        Validated setup target, defaults when no settings file is present

    Raises:
        ConfigError: If the settings file is missing, malformed or invalid
    """
    if config_path is None:
        if project_root is None:
            return SetupTarget()
        config_path = Path(project_root) / SETTINGS_FILENAME
        if not config_path.exists():
            return SetupTarget()
    elif not Path(config_path).exists():
        msg = f"Settings file not found: {config_path}"
        raise ConfigError(msg, details={"path": str(config_path)})

    config_path = Path(config_path)
    data = _read_yaml(config_path)

    try:
        jsonschema.validate(data, SETTINGS_SCHEMA)
    except jsonschema.ValidationError as e:
        msg = f"Schema validation failed: {e.message}"
        raise ConfigError(
            msg,
            details={"path": list(e.absolute_path), "file": str(config_path)},
        ) from e

    try:
        target = SetupTarget.model_validate(data.get("target") or {})
    except ValidationError as e:
        msg = f"Settings validation failed: {e}"
        raise ConfigError(msg, details={"file": str(config_path)}) from e

    logger.debug(f"Loaded settings from {config_path}")
    return target
