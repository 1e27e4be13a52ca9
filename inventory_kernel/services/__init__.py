"""Services - stateful operations over the ledger."""

from inventory_kernel.services.adjustment_service import LedgerAdjustmentService
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.ledger_resolver import LedgerResolver
from inventory_kernel.services.legacy_migration import LegacyMigrator
from inventory_kernel.services.location_service import LocationService
from inventory_kernel.services.transfer_engine import (
    TransferEngine,
    TransferOutcome,
    TransferResult,
)

__all__ = [
    "BaseService",
    "LedgerAdjustmentService",
    "LedgerResolver",
    "LegacyMigrator",
    "LocationService",
    "TransferEngine",
    "TransferOutcome",
    "TransferResult",
]
