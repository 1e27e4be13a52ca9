"""
ORM-level immutability enforcement for append-only inventory records.

SQLAlchemy fires mapper events before UPDATE/DELETE statements produced by a
flush reach the database.  The listeners registered here intercept those
events and raise ImmutabilityViolationError, aborting the flush:

    session.flush()
         |
         v
    [before_update] --> _check_*_immutability() --> ImmutabilityViolationError
         |
    [before_delete] --> _check_*_delete() --------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

Protected entities:

Entity            | When Immutable              | Why
------------------|-----------------------------|--------------------------------
MovementRecord    | ALWAYS (from creation)      | Audit trail of stock changes
TransferItem      | ALWAYS (from creation)      | Items are an ordered fixed list
TransferRequest   | After status = completed    | Completed moves are history
LedgerEntry       | Never deletable             | Zero is a state, not a tombstone

Ledger balances themselves change through guarded Core UPDATE statements,
which do not pass through these listeners; the CHECK constraint on
``quantity`` covers them at the database level.

Inline model imports avoid the models -> db -> models import cycle.

Usage:

    from inventory_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

# Bookkeeping columns that may change on any row
_AUDIT_FIELDS = frozenset({"updated_at"})


def _block(entity_type: str, entity_id, operation: str, reason: str, field: str | None = None):
    extra = {
        "entity_type": entity_type,
        "entity_id": str(entity_id),
        "operation": operation,
        "reason": reason,
    }
    if field is not None:
        extra["field"] = field
    logger.error("immutability_violation_blocked", extra=extra)
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _check_movement_update(mapper, connection, target):
    """Movement records are append-only."""
    _block("MovementRecord", target.id, "UPDATE", "Movement records cannot be modified")


def _check_movement_delete(mapper, connection, target):
    _block("MovementRecord", target.id, "DELETE", "Movement records cannot be deleted")


def _check_transfer_item_update(mapper, connection, target):
    """Transfer items are fixed once the request is persisted."""
    _block("TransferItem", target.id, "UPDATE", "Transfer items cannot be modified")


def _check_transfer_item_delete(mapper, connection, target):
    _block("TransferItem", target.id, "DELETE", "Transfer items cannot be deleted")


def _check_ledger_entry_delete(mapper, connection, target):
    _block("LedgerEntry", target.id, "DELETE", "Ledger entries cannot be deleted")


def _was_completed(target) -> bool:
    """
    True when the transfer was already completed before this flush.

    A change of status *to* completed is the completion itself and is
    allowed; a change *from* completed, or any change while it stays
    completed, is not.
    """
    from inventory_kernel.models.transfer import TransferStatus

    status_history = get_history(target, "status")
    if status_history.deleted:
        return status_history.deleted[0] == TransferStatus.COMPLETED.value
    if not status_history.added:
        return target.status == TransferStatus.COMPLETED.value
    return False


def _check_transfer_request_update(mapper, connection, target):
    """Prevent modification of a completed transfer."""
    if not _was_completed(target):
        return

    for attr in inspect(target).attrs:
        if attr.key in _AUDIT_FIELDS:
            continue
        if attr.history.has_changes():
            _block(
                "TransferRequest",
                target.id,
                "UPDATE",
                f"Cannot modify field '{attr.key}' on completed transfer",
                field=attr.key,
            )


def _check_transfer_request_delete(mapper, connection, target):
    if _was_completed(target):
        _block("TransferRequest", target.id, "DELETE", "Completed transfers cannot be deleted")


def _listeners():
    from inventory_kernel.models.ledger import LedgerEntry, MovementRecord
    from inventory_kernel.models.transfer import TransferItem, TransferRequest

    return [
        (MovementRecord, "before_update", _check_movement_update),
        (MovementRecord, "before_delete", _check_movement_delete),
        (TransferItem, "before_update", _check_transfer_item_update),
        (TransferItem, "before_delete", _check_transfer_item_delete),
        (TransferRequest, "before_update", _check_transfer_request_update),
        (TransferRequest, "before_delete", _check_transfer_request_delete),
        (LedgerEntry, "before_delete", _check_ledger_entry_delete),
    ]


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Safe to call more than once; already registered listeners are skipped.
    """
    for target, event_name, fn in _listeners():
        if not event.contains(target, event_name, fn):
            event.listen(target, event_name, fn)
    logger.debug("immutability_listeners_registered")


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if it was never registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    for target, event_name, fn in _listeners():
        _safe_remove_listener(target, event_name, fn)
