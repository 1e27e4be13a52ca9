"""
Module: inventory_kernel.models.ledger
Responsibility: ORM persistence for authoritative per-location balances
    (LedgerEntry) and the append-only movement audit trail (MovementRecord).
Architecture position: Kernel > Models.  May import from db/ and domain/
    value modules only.

Invariants enforced:
    - quantity >= 0 on every ledger row (ck_ledger_entry_quantity_non_negative).
    - At most one ledger row per (department, scope, product)
      (uq_ledger_entry_location_product).  ``scope_key`` is the section id or
      the literal ``department`` so the constraint also holds for
      department-scope rows whose section_id is NULL.
    - Movement quantity > 0 (ck_movement_quantity_positive).
    - Movement rows are never updated or deleted; ledger rows are never
      deleted (ORM listeners in db/immutability.py).

Failure modes:
    - IntegrityError on a duplicate key or a CHECK violation.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base, TimestampedBase
from inventory_kernel.domain.locations import DEPARTMENT_SCOPE_KEY


class MovementType(str, Enum):
    """Direction/kind of a recorded stock change."""

    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"
    LOSS = "loss"


class MovementReason(str, Enum):
    TRANSFER_OUT = "transfer-out"
    TRANSFER_IN = "transfer-in"


class LedgerEntry(TimestampedBase):
    """
    Authoritative stock balance of one product at one location.

    Contract:
        Created lazily (legacy migration or first transfer into a location)
        and mutated only through guarded UPDATE statements.  A zero quantity
        is a valid steady state.

    Guarantees:
        - quantity never drops below zero.
        - One row per (department_id, scope_key, product_id).

    Non-goals:
        - unit_price is informational and never used for pricing.
    """

    __tablename__ = "ledger_entries"

    __table_args__ = (
        UniqueConstraint(
            "department_id",
            "scope_key",
            "product_id",
            name="uq_ledger_entry_location_product",
        ),
        CheckConstraint("quantity >= 0", name="ck_ledger_entry_quantity_non_negative"),
        Index("idx_ledger_entry_product", "product_id"),
        Index("idx_ledger_entry_section", "section_id"),
    )

    department_id: Mapped[UUID] = mapped_column(
        ForeignKey("departments.id"),
        nullable=False,
    )

    section_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("department_sections.id"),
        nullable=True,
    )

    scope_key: Mapped[str] = mapped_column(
        String(36),
        nullable=False,
        default=DEPARTMENT_SCOPE_KEY,
    )

    product_type: Mapped[str] = mapped_column(String(50), nullable=False)

    product_id: Mapped[UUID] = mapped_column(nullable=False)

    quantity: Mapped[int] = mapped_column(nullable=False, default=0)

    unit_price: Mapped[Decimal | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return (
            f"<LedgerEntry {self.product_id} @ {self.department_id}/{self.scope_key}: "
            f"{self.quantity}>"
        )


class MovementRecord(Base):
    """
    Append-only audit fact describing one stock change at one location.

    Transfers write one ``out`` row at the source and one ``in`` row at the
    destination per item, both carrying the transfer id as ``reference``.
    """

    __tablename__ = "inventory_movements"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_movement_quantity_positive"),
        Index("idx_movement_reference", "reference"),
        Index("idx_movement_product", "product_id"),
        Index("idx_movement_department", "department_id"),
    )

    movement_type: Mapped[str] = mapped_column(String(20), nullable=False)

    quantity: Mapped[int] = mapped_column(nullable=False)

    reason: Mapped[str] = mapped_column(String(255), nullable=False)

    # Correlates rows of one transfer (the transfer id) or one adjustment
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    product_type: Mapped[str] = mapped_column(String(50), nullable=False)

    product_id: Mapped[UUID] = mapped_column(nullable=False)

    department_id: Mapped[UUID] = mapped_column(nullable=False)

    section_id: Mapped[UUID | None] = mapped_column(nullable=True)

    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<MovementRecord {self.movement_type} {self.quantity} of {self.product_id}>"
