"""devicesync Configuration System.

Loads and validates configuration from ~/.devicesync/config.json.
Uses Pydantic for schema validation with sensible defaults.

Supports migration from older config versions while preserving existing values.

Usage:
    from devicesync.config import get_config, save_config

    config = get_config()
    print(config.sync.interval_minutes)

    # Modify and save
    config.sync.retention_days = 30
    save_config(config)
"""

from __future__ import annotations

import json
import logging
import os
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DATA_DIR = Path.home() / ".devicesync"
CONFIG_PATH = DATA_DIR / "config.json"
DEFAULT_QUEUE_PATH = DATA_DIR / "sync_queue.json"

# Current config schema version for migration tracking
CONFIG_VERSION = 2


class SyncConfig(BaseModel):
    """Sync queue and scheduler settings.

    Attributes:
        interval_minutes: Minutes between fixed-interval sync passes.
        daily_sync_enabled: Fire an extra pass at every local midnight.
        retention_days: Days to keep completed/failed tasks. 0 keeps them forever.
        queue_path: Location of the persisted task list.
    """

    interval_minutes: int = Field(default=10, ge=1, le=1440)
    daily_sync_enabled: bool = True
    retention_days: int = Field(default=7, ge=0, le=3650)
    queue_path: str = str(DEFAULT_QUEUE_PATH)


class DeviceConfig(BaseModel):
    """HTTP device link settings.

    Attributes:
        base_url: Root URL of the device API.
        sync_path: Path that receives sync payloads.
        timeout_seconds: Per-request timeout.
        verify_tls: Verify TLS certificates.
    """

    base_url: str = "https://jsonplaceholder.typicode.com"
    sync_path: str = Field(default="/sync", pattern=r"^/")
    timeout_seconds: float = Field(default=10.0, ge=0.5, le=300.0)
    verify_tls: bool = True


class EventsConfig(BaseModel):
    """Log line channel settings."""

    history_size: int = Field(default=500, ge=10, le=10000)


class LoggingConfig(BaseModel):
    """Logging output settings."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    structured: bool = False


class DeviceSyncConfig(BaseModel):
    """devicesync configuration schema.

    Attributes:
        config_version: Schema version for migration tracking.
        sync: Queue and scheduler settings.
        device: HTTP device link settings.
        events: Log line channel settings.
        logging: Logging output settings.
    """

    config_version: int = CONFIG_VERSION
    sync: SyncConfig = Field(default_factory=SyncConfig)
    device: DeviceConfig = Field(default_factory=DeviceConfig)
    events: EventsConfig = Field(default_factory=EventsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


_config: DeviceSyncConfig | None = None
_config_lock = threading.Lock()


def _migrate_v1_to_v2(data: dict[str, Any]) -> dict[str, Any]:
    """Migrate from v1 to v2: flat sync keys moved under "sync"."""
    sync = data.setdefault("sync", {})
    for key in ("interval_minutes", "retention_days", "queue_path"):
        if key in data:
            sync.setdefault(key, data.pop(key))
    if "auto_sync_interval" in data:
        # v1 stored the interval in milliseconds
        sync.setdefault("interval_minutes", max(1, int(data.pop("auto_sync_interval")) // 60000))
    return data


_MIGRATIONS: dict[int, Callable[[dict[str, Any]], dict[str, Any]]] = {
    2: _migrate_v1_to_v2,
}


def _migrate_config(data: dict[str, Any]) -> dict[str, Any]:
    """Migrate config data from older versions to current schema.

    Args:
        data: Raw config data loaded from file.

    Returns:
        Migrated config data compatible with current schema.
    """
    version = data.get("config_version", 1)

    for target_version in sorted(_MIGRATIONS.keys()):
        if version < target_version:
            logger.info(f"Migrating config from version {version} to {target_version}")
            data = _MIGRATIONS[target_version](data)
            version = target_version

    data["config_version"] = CONFIG_VERSION
    return data


def load_config(config_path: Path | None = None) -> DeviceSyncConfig:
    """Load configuration from file, return defaults if missing/invalid.

    Older config versions are migrated and saved back to disk.

    Args:
        config_path: Optional path to config file. Defaults to ~/.devicesync/config.json.

    Returns:
        DeviceSyncConfig instance with loaded or default values.
    """
    path = config_path or CONFIG_PATH

    if not path.exists():
        logger.debug(f"Config file not found at {path}, using defaults")
        return DeviceSyncConfig()

    try:
        with path.open() as f:
            data: dict[str, Any] = json.load(f)
    except json.JSONDecodeError as e:
        logger.warning(f"Invalid JSON in config file {path}: {e}, using defaults")
        return DeviceSyncConfig()
    except OSError as e:
        logger.warning(f"Cannot read config file {path}: {e}, using defaults")
        return DeviceSyncConfig()

    if not isinstance(data, dict):
        logger.warning(f"Config file {path} is not a JSON object, using defaults")
        return DeviceSyncConfig()

    original_version = data.get("config_version", 1)
    data = _migrate_config(data)

    try:
        config = DeviceSyncConfig.model_validate(data)

        if original_version < CONFIG_VERSION:
            logger.info(f"Persisting migrated config (v{original_version} -> v{CONFIG_VERSION})")
            save_config(config, path)

        return config
    except ValidationError as e:
        logger.warning(f"Config validation failed: {e}, using defaults")
        return DeviceSyncConfig()


def save_config(config: DeviceSyncConfig, config_path: Path | None = None) -> bool:
    """Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Optional path to config file. Defaults to ~/.devicesync/config.json.

    Returns:
        True if saved successfully, False otherwise.
    """
    path = config_path or CONFIG_PATH

    try:
        path.parent.mkdir(parents=True, exist_ok=True)

        with path.open("w") as f:
            json.dump(config.model_dump(), f, indent=2)

        os.chmod(path, 0o600)

        logger.debug(f"Configuration saved to {path}")
        return True

    except OSError as e:
        logger.error(f"Failed to save config to {path}: {e}")
        return False


def get_config() -> DeviceSyncConfig:
    """Get singleton configuration instance.

    Returns:
        Shared DeviceSyncConfig instance.
    """
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:
                _config = load_config()
    return _config


def reset_config() -> None:
    """Reset singleton configuration for testing."""
    global _config
    with _config_lock:
        _config = None
