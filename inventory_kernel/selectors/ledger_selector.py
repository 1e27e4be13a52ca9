"""
Module: inventory_kernel.selectors.ledger_selector
Responsibility: Read-only queries over ledger balances and the movement
    audit trail: point and batched lookups by location, per-location
    summaries, cross-location totals and movement history.
Architecture position: Kernel > Selectors.  May import from models/,
    domain/ and selectors/base.py.

Failure modes:
    - Returns empty results or zero totals when nothing matches.
    - Database errors propagate; callers that must not fail (the ledger
      resolver) catch them.
"""

from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from inventory_kernel.domain.dtos import LedgerEntryView, LocationSummary, MovementView
from inventory_kernel.domain.locations import Location
from inventory_kernel.models.ledger import LedgerEntry, MovementRecord
from inventory_kernel.selectors.base import BaseSelector


def _fresh(stmt):
    # Balances change through Core UPDATEs; never serve identity-map copies
    return stmt.execution_options(populate_existing=True)


def _at(location: Location):
    return (
        LedgerEntry.department_id == location.department_id,
        LedgerEntry.scope_key == location.scope_key,
    )


class LedgerSelector(BaseSelector):
    """Read-only queries over ledger entries and movements."""

    def entry(self, product_id: UUID, location: Location) -> LedgerEntryView | None:
        """Ledger row for one product at one location, if materialized."""
        row = self.session.scalars(
            _fresh(select(LedgerEntry).where(*_at(location), LedgerEntry.product_id == product_id))
        ).one_or_none()
        return LedgerEntryView.from_model(row) if row is not None else None

    def entries_for(
        self,
        product_ids: Iterable[UUID],
        location: Location,
    ) -> dict[UUID, LedgerEntryView]:
        """Ledger rows for many products at one location, in one query."""
        ids = list(dict.fromkeys(product_ids))
        if not ids:
            return {}
        rows = self.session.scalars(
            _fresh(select(LedgerEntry).where(*_at(location), LedgerEntry.product_id.in_(ids)))
        ).all()
        return {row.product_id: LedgerEntryView.from_model(row) for row in rows}

    def entries_at(self, location: Location) -> list[LedgerEntryView]:
        """Every ledger row held at a location, ordered by product id."""
        rows = self.session.scalars(
            _fresh(select(LedgerEntry).where(*_at(location)).order_by(LedgerEntry.product_id))
        ).all()
        return [LedgerEntryView.from_model(row) for row in rows]

    def location_summary(self, location: Location) -> LocationSummary:
        """Product count, total units and informational value at a location."""
        value_expr = LedgerEntry.quantity * func.coalesce(LedgerEntry.unit_price, 0)
        row = self.session.execute(
            select(
                func.count(LedgerEntry.id),
                func.coalesce(func.sum(LedgerEntry.quantity), 0),
                func.coalesce(func.sum(value_expr), 0),
            ).where(*_at(location))
        ).one()
        product_count, total_units, total_value = row
        return LocationSummary(
            location=location,
            product_count=int(product_count),
            total_units=int(total_units),
            total_value=Decimal(str(total_value)).quantize(Decimal("0.01")),
        )

    def total_quantity(self, product_id: UUID) -> int:
        """Sum of one product's ledger quantity across every location."""
        total = self.session.scalar(
            select(func.coalesce(func.sum(LedgerEntry.quantity), 0)).where(
                LedgerEntry.product_id == product_id
            )
        )
        return int(total or 0)

    def movements_for_reference(self, reference: str) -> list[MovementView]:
        """All movements sharing a reference (e.g. one transfer), out before in."""
        rows = self.session.scalars(
            select(MovementRecord)
            .where(MovementRecord.reference == reference)
            .order_by(MovementRecord.product_id, MovementRecord.movement_type.desc())
        ).all()
        return [MovementView.from_model(row) for row in rows]

    def movements_for_product(
        self,
        product_id: UUID,
        location: Location | None = None,
    ) -> list[MovementView]:
        """Movement history of one product, oldest first, optionally at one location."""
        stmt = select(MovementRecord).where(MovementRecord.product_id == product_id)
        if location is not None:
            stmt = stmt.where(MovementRecord.department_id == location.department_id)
            if location.section_id is None:
                stmt = stmt.where(MovementRecord.section_id.is_(None))
            else:
                stmt = stmt.where(MovementRecord.section_id == location.section_id)
        rows = self.session.scalars(
            stmt.order_by(MovementRecord.created_at, MovementRecord.id)
        ).all()
        return [MovementView.from_model(row) for row in rows]
