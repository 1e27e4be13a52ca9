"""
DTOs -- immutable data structures that cross the service boundary.

Responsibility:
    Defines what callers hand to the ledger (TransferItemSpec) and what they
    get back (AvailabilityCheck, LedgerEntryView, MovementView,
    TransferRecord, LocationSummary).  Services and selectors never return
    ORM entities.

Architecture position:
    Kernel > Domain -- zero I/O.  from_model() class methods are boundary
    converters invoked only from services and selectors.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from inventory_kernel.domain.locations import Location, location_for
from inventory_kernel.domain.products import ProductType

if TYPE_CHECKING:
    from inventory_kernel.models.ledger import LedgerEntry, MovementRecord
    from inventory_kernel.models.transfer import TransferItem, TransferRequest


def shortfall_message(available: int, required: int) -> str:
    """Canonical user-facing shortfall text."""
    return f"Insufficient stock: have {available}, need {required}"


@dataclass(frozen=True)
class AvailabilityCheck:
    """
    Outcome of comparing a balance with a required quantity.

    Guarantees:
        - has_stock is exactly ``available >= required``.
        - message is None when stock suffices, else the canonical
          shortfall text carrying both numbers.
    """

    product_id: UUID
    available: int
    required: int

    @property
    def has_stock(self) -> bool:
        return self.available >= self.required

    @property
    def message(self) -> str | None:
        if self.has_stock:
            return None
        return shortfall_message(self.available, self.required)


@dataclass(frozen=True)
class TransferItemSpec:
    """One requested line of a transfer, as supplied by the caller."""

    product_type: ProductType | str
    product_id: UUID
    quantity: int


@dataclass(frozen=True)
class LegacyStockRecord:
    """Pre-ledger stock count and informational price of one product."""

    product_type: ProductType
    product_id: UUID
    quantity: int
    unit_price: Decimal | None


@dataclass(frozen=True)
class LedgerEntryView:
    """Read-only snapshot of one ledger row."""

    id: UUID
    department_id: UUID
    section_id: UUID | None
    product_type: str
    product_id: UUID
    quantity: int
    unit_price: Decimal | None
    updated_at: datetime | None = None

    @property
    def location(self) -> Location:
        return location_for(self.department_id, self.section_id)

    @classmethod
    def from_model(cls, entry: LedgerEntry) -> LedgerEntryView:
        return cls(
            id=entry.id,
            department_id=entry.department_id,
            section_id=entry.section_id,
            product_type=entry.product_type,
            product_id=entry.product_id,
            quantity=entry.quantity,
            unit_price=entry.unit_price,
            updated_at=entry.updated_at,
        )


@dataclass(frozen=True)
class MovementView:
    """Read-only snapshot of one movement audit row."""

    id: UUID
    movement_type: str
    quantity: int
    reason: str
    reference: str | None
    product_type: str
    product_id: UUID
    department_id: UUID
    section_id: UUID | None
    created_by: str | None
    created_at: datetime

    @classmethod
    def from_model(cls, movement: MovementRecord) -> MovementView:
        return cls(
            id=movement.id,
            movement_type=movement.movement_type,
            quantity=movement.quantity,
            reason=movement.reason,
            reference=movement.reference,
            product_type=movement.product_type,
            product_id=movement.product_id,
            department_id=movement.department_id,
            section_id=movement.section_id,
            created_by=movement.created_by,
            created_at=movement.created_at,
        )


@dataclass(frozen=True)
class TransferItemRecord:
    position: int
    product_type: str
    product_id: UUID
    quantity: int

    @classmethod
    def from_model(cls, item: TransferItem) -> TransferItemRecord:
        return cls(
            position=item.position,
            product_type=item.product_type,
            product_id=item.product_id,
            quantity=item.quantity,
        )


@dataclass(frozen=True)
class TransferRecord:
    """
    Persisted transfer request as seen by callers.

    ``destination`` is the resolved location stored at creation;
    ``destination_code`` is the code the requester supplied, kept for audit.
    """

    id: UUID
    from_department_id: UUID
    destination: Location
    destination_code: str | None
    status: str
    created_by: str | None
    items: tuple[TransferItemRecord, ...]
    created_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def source(self) -> Location:
        return location_for(self.from_department_id)

    @classmethod
    def from_model(cls, transfer: TransferRequest) -> TransferRecord:
        return cls(
            id=transfer.id,
            from_department_id=transfer.from_department_id,
            destination=location_for(transfer.to_department_id, transfer.to_section_id),
            destination_code=transfer.destination_code,
            status=transfer.status,
            created_by=transfer.created_by,
            items=tuple(TransferItemRecord.from_model(i) for i in transfer.items),
            created_at=transfer.created_at,
            completed_at=transfer.completed_at,
        )


@dataclass(frozen=True)
class LocationSummary:
    """Units and informational value held at one location."""

    location: Location
    product_count: int
    total_units: int
    total_value: Decimal


@dataclass(frozen=True)
class MigrationReport:
    """Outcome of materializing legacy stock at one location."""

    location: Location
    product_type: ProductType
    examined: int
    materialized: int
    already_present: int


@dataclass(frozen=True)
class DepartmentInfo:
    id: UUID
    code: str
    name: str
    is_active: bool

    @property
    def location(self) -> Location:
        return location_for(self.id)


@dataclass(frozen=True)
class SectionInfo:
    id: UUID
    department_id: UUID
    name: str
    slug: str
    code: str
    is_active: bool

    @property
    def location(self) -> Location:
        return location_for(self.department_id, self.id)
