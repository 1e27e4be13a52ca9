"""
Module: inventory_kernel.selectors.transfer_selector
Responsibility: Read-only access to transfer requests as TransferRecord DTOs.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import selectinload

from inventory_kernel.domain.dtos import TransferRecord
from inventory_kernel.models.transfer import TransferRequest, TransferStatus
from inventory_kernel.selectors.base import BaseSelector


class TransferSelector(BaseSelector):
    """Query transfer requests."""

    def get(self, transfer_id: UUID) -> TransferRecord | None:
        transfer = self.session.scalars(
            select(TransferRequest)
            .options(selectinload(TransferRequest.items))
            .execution_options(populate_existing=True)
            .where(TransferRequest.id == transfer_id)
        ).one_or_none()
        return TransferRecord.from_model(transfer) if transfer is not None else None

    def list_for_department(
        self,
        department_id: UUID,
        status: TransferStatus | str | None = None,
    ) -> list[TransferRecord]:
        """
        Transfers sent from or received by a department, newest first.

        Args:
            department_id: Department on either side of the transfer.
            status: Optional status filter.
        """
        stmt = (
            select(TransferRequest)
            .options(selectinload(TransferRequest.items))
            .execution_options(populate_existing=True)
            .where(
                or_(
                    TransferRequest.from_department_id == department_id,
                    TransferRequest.to_department_id == department_id,
                )
            )
        )
        if status is not None:
            stmt = stmt.where(TransferRequest.status == TransferStatus(status).value)
        stmt = stmt.order_by(TransferRequest.created_at.desc(), TransferRequest.id)
        return [TransferRecord.from_model(t) for t in self.session.scalars(stmt).all()]
