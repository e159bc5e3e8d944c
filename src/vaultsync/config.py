"""
Settings persistence: YAML on disk, pydantic in memory.

    <home>/config.yaml   # SyncSettings, written by ``vaultsync config``
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from . import VAULTSYNC_HOME
from .errors import ConfigError
from .models import SyncSettings

logger = logging.getLogger("vaultsync.config")

CONFIG_FILE = "config.yaml"


def default_home() -> Path:
    """Resolve the vaultsync home directory."""
    return Path(VAULTSYNC_HOME).expanduser()


def config_path(home: Optional[Path] = None) -> Path:
    """Path of the settings file inside *home*."""
    return (home or default_home()).expanduser() / CONFIG_FILE


def load_settings(path: Path) -> SyncSettings:
    """Load settings from a YAML file.

    A missing or unreadable file yields the defaults; the problem is
    logged rather than raised so a broken file never blocks a sync.

    Args:
        path: Location of the YAML settings file.

    Returns:
        SyncSettings: Parsed settings, or defaults.
    """
    if not path.exists():
        return SyncSettings()
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        return SyncSettings(**data)
    except (yaml.YAMLError, ValidationError, TypeError) as exc:
        logger.warning("Failed to load settings from %s: %s", path, exc)
        return SyncSettings()


def save_settings(settings: SyncSettings, path: Path) -> None:
    """Write settings to *path* as YAML, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = settings.model_dump(mode="json")
    path.write_text(yaml.dump(data, default_flow_style=False), encoding="utf-8")
    logger.info("Saved settings to %s", path)


def update_setting(settings: SyncSettings, key: str, value: str) -> SyncSettings:
    """Return a copy of *settings* with one field changed.

    Dotted keys reach into nested models (``standalone.author_name``).
    Non-string fields parse the raw value as YAML so ``true`` and ``15``
    become the matching Python values before validation; string fields
    take the text verbatim, and ``null`` clears an optional field.

    Raises:
        ConfigError: Unknown key or a value that fails validation.
    """
    data: dict[str, Any] = settings.model_dump(mode="json")
    parts = key.split(".")
    target = data
    for part in parts[:-1]:
        if not isinstance(target.get(part), dict):
            raise ConfigError(f"Unknown setting: {key}")
        target = target[part]
    if parts[-1] not in target:
        raise ConfigError(f"Unknown setting: {key}")

    current = target[parts[-1]]
    if value.strip() in ("null", "~"):
        target[parts[-1]] = None
    elif current is None or isinstance(current, str):
        target[parts[-1]] = value
    else:
        try:
            target[parts[-1]] = yaml.safe_load(value)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Cannot parse value for {key}: {exc}") from exc

    try:
        return SyncSettings(**data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid value for {key}: {exc}") from exc
