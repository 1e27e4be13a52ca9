"""Selectors - read-only query layer returning DTOs."""

from inventory_kernel.selectors.base import BaseSelector
from inventory_kernel.selectors.catalog_selector import CatalogSelector
from inventory_kernel.selectors.ledger_selector import LedgerSelector
from inventory_kernel.selectors.transfer_selector import TransferSelector

__all__ = [
    "BaseSelector",
    "CatalogSelector",
    "LedgerSelector",
    "TransferSelector",
]
