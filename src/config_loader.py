"""Load persistence configuration files.

Two shapes are accepted. The bare normalized map:

    {"/state": {"files": ["/etc/machine-id"], "directories": ["/var/log"]}}

or the map wrapped together with settings:

    {"persistence": {...}, "settings": {"missing_source": "create"}}
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from errors import ConfigError
from model import ActivationSettings, PersistenceConfig

log = logging.getLogger(__name__)


def parse_config(data: object) -> tuple[PersistenceConfig, ActivationSettings]:
    """Build config and settings from already-decoded JSON data.

    Raises:
        ConfigError: If the data has the wrong shape or invalid settings
        MalformedPathError: If a configured path is malformed
    """
    if isinstance(data, dict) and "persistence" in data:
        unknown = sorted(set(data) - {"persistence", "settings"})
        if unknown:
            raise ConfigError(f"Unknown top-level keys: {', '.join(unknown)}")
        raw_settings = data.get("settings") or {}
        if not isinstance(raw_settings, dict):
            raise ConfigError("settings must be a mapping")
        try:
            settings = ActivationSettings.from_dict(raw_settings)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid settings: {e}") from e
        return PersistenceConfig.from_mapping(data["persistence"]), settings

    return PersistenceConfig.from_mapping(data), ActivationSettings()


def load_config(path: Path) -> tuple[PersistenceConfig, ActivationSettings]:
    """Load a JSON config file.

    Raises:
        ConfigError: If the file is missing, not JSON, or has the wrong shape
        MalformedPathError: If a configured path is malformed
    """
    try:
        text = path.read_text()
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"{path}: invalid JSON: {e}") from e

    config, settings = parse_config(data)
    log.debug(f"Loaded {len(config.roots)} persistent root(s) from {path}")
    return config, settings
