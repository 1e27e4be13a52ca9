"""
inventory_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``InventoryConfig``.

Architecture position:
    This package sits beside ``inventory_kernel`` and above it.  The
    kernel MUST NEVER import from ``inventory_config``; the functions in
    ``inventory_config.bridges`` translate configuration into kernel
    inputs (retry policy, engine, logging).

Resolution order:
    1. ``path`` argument, when given.
    2. ``INVENTORY_CONFIG`` environment variable.
    3. The packaged ``defaults.yaml``.
    Environment overrides (``INVENTORY_DATABASE_URL``,
    ``INVENTORY_LOG_LEVEL``) are applied on top of the loaded file.

Failure modes:
    - ``FileNotFoundError`` -- the selected YAML file does not exist.
    - ``KeyError`` -- ``database.url`` missing.
    - ``ValueError`` -- out-of-range or unknown values.

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``INVENTORY_CONFIG_TRACE`` log entry naming the source file, the
    database dialect and the transfer retry settings in force.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from inventory_config.loader import apply_env_overrides, load_yaml_file, parse_config
from inventory_config.schema import (
    DatabaseSettings,
    InventoryConfig,
    LoggingSettings,
    TransferSettings,
)

_logger = logging.getLogger("inventory_kernel.config")

ENV_CONFIG_PATH = "INVENTORY_CONFIG"

_DEFAULT_CONFIG_FILE = Path(__file__).parent / "defaults.yaml"


def get_active_config(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> InventoryConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: YAML file to load.  Defaults to ``$INVENTORY_CONFIG`` and
            then to the packaged defaults.
        environ: Environment mapping used for overrides.  Defaults to
            ``os.environ``.

    Raises:
        FileNotFoundError: If the selected file does not exist.
        KeyError: If ``database.url`` is missing.
        ValueError: If a value fails validation.
    """
    env = os.environ if environ is None else environ
    source = Path(path or env.get(ENV_CONFIG_PATH) or _DEFAULT_CONFIG_FILE)

    data = apply_env_overrides(load_yaml_file(source), env)
    config = parse_config(data)

    _logger.info(
        "INVENTORY_CONFIG_TRACE",
        extra={
            "trace_type": "INVENTORY_CONFIG_TRACE",
            "source": str(source),
            "dialect": config.database.url.split(":", 1)[0],
            "max_attempts": config.transfer.max_attempts,
            "backoff_seconds": config.transfer.backoff_seconds,
            "transaction_timeout_seconds": config.transfer.transaction_timeout_seconds,
            "log_level": config.logging.level,
        },
    )
    return config


__all__ = [
    "DatabaseSettings",
    "InventoryConfig",
    "LoggingSettings",
    "TransferSettings",
    "get_active_config",
]
