"""
Config → Kernel Bridges.

Functions that convert InventoryConfig into kernel-compatible inputs.
These live in inventory_config (the producer) because the kernel must
NEVER import inventory_config.

Usage:
    from inventory_config import get_active_config
    from inventory_config.bridges import bootstrap, build_retry_policy

    config = get_active_config()
    bootstrap(config)
    engine = TransferEngine(session, retry_policy=build_retry_policy(config))
"""

from __future__ import annotations

from sqlalchemy import Engine

from inventory_config.schema import InventoryConfig
from inventory_kernel.db.engine import init_engine_from_url
from inventory_kernel.domain.policy import RetryPolicy
from inventory_kernel.logging_config import configure_logging


def build_retry_policy(config: InventoryConfig) -> RetryPolicy:
    """Build the transfer RetryPolicy from the ``transfer`` section."""
    transfer = config.transfer
    return RetryPolicy(
        max_attempts=transfer.max_attempts,
        backoff_seconds=transfer.backoff_seconds,
        transaction_timeout_seconds=transfer.transaction_timeout_seconds,
    )


def configure_logging_from_config(config: InventoryConfig) -> None:
    """Configure the kernel logger hierarchy at the configured level."""
    configure_logging(level=config.logging.level)


def init_engine_from_config(config: InventoryConfig) -> Engine:
    database = config.database
    return init_engine_from_url(
        database.url,
        echo=database.echo,
        pool_size=database.pool_size,
        max_overflow=database.max_overflow,
        busy_timeout_seconds=database.busy_timeout_seconds,
    )


def bootstrap(config: InventoryConfig) -> Engine:
    """Configure logging, then initialize the engine.

    Logging goes first because engine initialization configures logging
    with defaults when nothing has done so yet.
    """
    configure_logging_from_config(config)
    return init_engine_from_config(config)
