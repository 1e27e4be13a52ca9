"""SQLAlchemy ORM models for the inventory kernel."""

from inventory_kernel.models.catalog import Drink, InventoryItem
from inventory_kernel.models.ledger import (
    LedgerEntry,
    MovementReason,
    MovementRecord,
    MovementType,
)
from inventory_kernel.models.location import Department, DepartmentSection
from inventory_kernel.models.transfer import (
    TransferItem,
    TransferRequest,
    TransferStatus,
)

__all__ = [
    "Department",
    "DepartmentSection",
    "Drink",
    "InventoryItem",
    "LedgerEntry",
    "MovementRecord",
    "MovementType",
    "MovementReason",
    "TransferRequest",
    "TransferItem",
    "TransferStatus",
]
