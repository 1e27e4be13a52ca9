"""
Module: inventory_kernel.models.transfer
Responsibility: ORM persistence for transfer requests and their ordered
    item lists.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Status is monotonic: pending -> completed.  There is no failed state;
      a failed approval leaves the request pending.
    - Items are an ordered, immutable list (uq_transfer_item_position,
      ORM listeners in db/immutability.py).
    - Item quantity > 0 (ck_transfer_item_quantity_positive).
    - The destination is stored as resolved ids; ``destination_code`` is the
      code the requester typed, kept for audit only.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import Base, TimestampedBase


class TransferStatus(str, Enum):
    """
    Transfer lifecycle.

    APPROVED is an in-flight marker accepted by approve() so an earlier
    attempt against the same request can be retried.
    """

    PENDING = "pending"
    APPROVED = "approved"
    COMPLETED = "completed"

    @classmethod
    def executable(cls) -> tuple[str, ...]:
        return (cls.PENDING.value, cls.APPROVED.value)


class TransferRequest(TimestampedBase):
    """
    Request to move stock from one department to a department or section.

    Guarantees:
        - from_department_id is always department scope.
        - completed_at is set iff status is completed.
    """

    __tablename__ = "department_transfers"

    __table_args__ = (
        Index("idx_transfer_from_department", "from_department_id"),
        Index("idx_transfer_to_department", "to_department_id"),
        Index("idx_transfer_status", "status"),
    )

    from_department_id: Mapped[UUID] = mapped_column(
        ForeignKey("departments.id"),
        nullable=False,
    )

    to_department_id: Mapped[UUID] = mapped_column(
        ForeignKey("departments.id"),
        nullable=False,
    )

    to_section_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("department_sections.id"),
        nullable=True,
    )

    destination_code: Mapped[str | None] = mapped_column(String(150), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=TransferStatus.PENDING.value,
    )

    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    items: Mapped[list["TransferItem"]] = relationship(
        back_populates="transfer",
        order_by="TransferItem.position",
        cascade="save-update, merge",
    )

    def __repr__(self) -> str:
        return f"<TransferRequest {self.id} [{self.status}]>"


class TransferItem(Base):
    """One ordered line of a transfer request."""

    __tablename__ = "department_transfer_items"

    __table_args__ = (
        UniqueConstraint("transfer_id", "position", name="uq_transfer_item_position"),
        CheckConstraint("quantity > 0", name="ck_transfer_item_quantity_positive"),
    )

    transfer_id: Mapped[UUID] = mapped_column(
        ForeignKey("department_transfers.id"),
        nullable=False,
    )

    position: Mapped[int] = mapped_column(nullable=False)

    product_type: Mapped[str] = mapped_column(String(50), nullable=False)

    product_id: Mapped[UUID] = mapped_column(nullable=False)

    quantity: Mapped[int] = mapped_column(nullable=False)

    transfer: Mapped[TransferRequest] = relationship(back_populates="items")

    def __repr__(self) -> str:
        return f"<TransferItem #{self.position} {self.quantity} x {self.product_id}>"
