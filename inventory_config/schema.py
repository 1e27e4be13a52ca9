"""
InventoryConfig schema.

Frozen dataclasses produced by the loader from YAML.  The kernel never
sees these types; ``inventory_config.bridges`` converts them into kernel
inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection and pool settings for the ledger store."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    # SQLite only: how long a writer waits for the database lock
    busy_timeout_seconds: float = 15.0


@dataclass(frozen=True)
class TransferSettings:
    """Retry and timeout behavior of transfer approval."""

    max_attempts: int = 3
    backoff_seconds: float = 0.25
    transaction_timeout_seconds: float = 15.0


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class InventoryConfig:
    """Complete runtime configuration."""

    database: DatabaseSettings
    transfer: TransferSettings = field(default_factory=TransferSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
