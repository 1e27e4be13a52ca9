"""Database layer - engine, base classes, types, and immutability listeners."""

from inventory_kernel.db.base import Base, TimestampedBase, UUIDString
from inventory_kernel.db.engine import (
    apply_transaction_timeout,
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    insert_ignore,
    is_postgres,
    is_sqlite,
    reset_engine,
    session_scope,
)
from inventory_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from inventory_kernel.db.types import round_price

__all__ = [
    "Base",
    "TimestampedBase",
    "UUIDString",
    "round_price",
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "drop_tables",
    "reset_engine",
    "is_postgres",
    "is_sqlite",
    "apply_transaction_timeout",
    "insert_ignore",
    "register_immutability_listeners",
    "unregister_immutability_listeners",
]
