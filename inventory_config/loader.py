"""
Configuration Loader (``inventory_config.loader``).

Responsibility
--------------
Loads a YAML file, applies environment overrides and parses the result
into the frozen dataclasses of ``inventory_config.schema``.  Runtime code
obtains configuration through ``inventory_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``database.url``  -> ``KeyError`` propagates.
* Out-of-range values or unknown log level  -> ``ValueError``.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from inventory_config.schema import (
    DatabaseSettings,
    InventoryConfig,
    LoggingSettings,
    TransferSettings,
)

ENV_DATABASE_URL = "INVENTORY_DATABASE_URL"
ENV_LOG_LEVEL = "INVENTORY_LOG_LEVEL"

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_database(data: dict[str, Any]) -> DatabaseSettings:
    settings = DatabaseSettings(
        url=data["url"],
        echo=bool(data.get("echo", False)),
        pool_size=int(data.get("pool_size", 20)),
        max_overflow=int(data.get("max_overflow", 10)),
        busy_timeout_seconds=float(data.get("busy_timeout_seconds", 15.0)),
    )
    if not settings.url:
        raise ValueError("database.url must not be empty")
    if settings.pool_size < 1:
        raise ValueError(f"database.pool_size must be >= 1, got {settings.pool_size}")
    if settings.max_overflow < 0:
        raise ValueError(f"database.max_overflow must be >= 0, got {settings.max_overflow}")
    if settings.busy_timeout_seconds <= 0:
        raise ValueError("database.busy_timeout_seconds must be > 0")
    return settings


def parse_transfer(data: dict[str, Any]) -> TransferSettings:
    settings = TransferSettings(
        max_attempts=int(data.get("max_attempts", 3)),
        backoff_seconds=float(data.get("backoff_seconds", 0.25)),
        transaction_timeout_seconds=float(data.get("transaction_timeout_seconds", 15.0)),
    )
    if settings.max_attempts < 1:
        raise ValueError(f"transfer.max_attempts must be >= 1, got {settings.max_attempts}")
    if settings.backoff_seconds < 0:
        raise ValueError(f"transfer.backoff_seconds must be >= 0, got {settings.backoff_seconds}")
    if settings.transaction_timeout_seconds <= 0:
        raise ValueError("transfer.transaction_timeout_seconds must be > 0")
    return settings


def parse_logging(data: dict[str, Any]) -> LoggingSettings:
    level = str(data.get("level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"logging.level must be one of {sorted(_LOG_LEVELS)}, got {level!r}")
    return LoggingSettings(level=level)


def apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """Return a copy of ``data`` with environment overrides applied."""
    merged = {key: dict(value or {}) for key, value in data.items()}
    if environ.get(ENV_DATABASE_URL):
        merged.setdefault("database", {})["url"] = environ[ENV_DATABASE_URL]
    if environ.get(ENV_LOG_LEVEL):
        merged.setdefault("logging", {})["level"] = environ[ENV_LOG_LEVEL]
    return merged


def parse_config(data: dict[str, Any]) -> InventoryConfig:
    """
    Parse a complete InventoryConfig from a dict.

    Raises:
        KeyError: if ``database.url`` is missing.
        ValueError: on invalid values.
    """
    return InventoryConfig(
        database=parse_database(data.get("database") or {}),
        transfer=parse_transfer(data.get("transfer") or {}),
        logging=parse_logging(data.get("logging") or {}),
    )
