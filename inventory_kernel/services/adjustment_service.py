"""
LedgerAdjustmentService -- single-location stock corrections.

Responsibility:
    Applies a signed quantity change at one location (stock counts,
    receiving, write-offs) and records the matching movement row.

Architecture position:
    Kernel > Services.  Flush-only (caller commits).

Invariants enforced:
    - Decrements are conditional (``quantity >= n``), so a balance never
      goes negative regardless of concurrent writers.
    - Every applied change has exactly one movement row.

Failure modes:
    - InsufficientStockError when a decrement exceeds the balance.
    - ValueError for a zero delta or non-positive loss quantity.
"""

from uuid import UUID, uuid4

from sqlalchemy import select, update

from inventory_kernel.db.engine import insert_ignore
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.locations import Location
from inventory_kernel.domain.products import ProductType
from inventory_kernel.exceptions import InsufficientStockError
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.ledger import LedgerEntry, MovementRecord, MovementType
from inventory_kernel.selectors.catalog_selector import CatalogSelector
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.ledger_resolver import LedgerResolver
from inventory_kernel.services.legacy_migration import LEDGER_KEY, ledger_row

logger = get_logger("services.adjustment")


def _at(location: Location, product_id: UUID):
    return (
        LedgerEntry.department_id == location.department_id,
        LedgerEntry.scope_key == location.scope_key,
        LedgerEntry.product_id == product_id,
    )


class LedgerAdjustmentService(BaseService):
    """Adjust balances at one location outside of a transfer."""

    def __init__(self, session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._resolver = LedgerResolver(session)

    def adjust(
        self,
        product_type: ProductType | str,
        product_id: UUID,
        location: Location,
        delta: int,
        reason: str,
        actor: str | None = None,
        reference: str | None = None,
        movement_type: MovementType = MovementType.ADJUSTMENT,
    ) -> int:
        """
        Add (delta > 0) or remove (delta < 0) units at a location.

        Legacy stock is adopted first so the change applies on top of it.

        Returns:
            The balance after the change.
        """
        product_type = ProductType.parse(product_type)
        if delta == 0:
            raise ValueError("delta must be non-zero")

        with LogContext.bind_location(location), LogContext.bind(actor_id=actor):
            return self._apply(
                product_type, product_id, location, delta, reason, actor, reference,
                MovementType(movement_type),
            )

    def _apply(
        self,
        product_type: ProductType,
        product_id: UUID,
        location: Location,
        delta: int,
        reason: str,
        actor: str | None,
        reference: str | None,
        movement_type: MovementType,
    ) -> int:
        self._resolver.get_balance(
            product_type, product_id, location.department_id, location.section_id
        )
        now = self._clock.now()

        if delta > 0:
            self._ensure_row(product_type, product_id, location)
            self.session.execute(
                update(LedgerEntry)
                .where(*_at(location, product_id))
                .values(quantity=LedgerEntry.quantity + delta, updated_at=now)
                .execution_options(synchronize_session=False)
            )
        else:
            self._decrement(product_id, location, -delta, now)

        self.session.add(
            MovementRecord(
                id=uuid4(),
                movement_type=movement_type.value,
                quantity=abs(delta),
                reason=reason,
                reference=reference,
                product_type=product_type.value,
                product_id=product_id,
                department_id=location.department_id,
                section_id=location.section_id,
                created_by=actor,
                created_at=now,
            )
        )
        self.session.flush()

        balance = self._current(product_id, location)
        logger.info(
            "ledger_adjusted",
            extra={
                "product_id": str(product_id),
                "department_id": str(location.department_id),
                "delta": delta,
                "movement_type": movement_type.value,
                "balance": balance,
            },
        )
        return balance

    def record_loss(
        self,
        product_type: ProductType | str,
        product_id: UUID,
        location: Location,
        quantity: int,
        reason: str = "loss",
        actor: str | None = None,
    ) -> int:
        """Remove spoiled, broken or missing units with a ``loss`` movement."""
        if quantity <= 0:
            raise ValueError("loss quantity must be positive")
        return self.adjust(
            product_type,
            product_id,
            location,
            -quantity,
            reason,
            actor=actor,
            movement_type=MovementType.LOSS,
        )

    def _ensure_row(self, product_type: ProductType, product_id: UUID, location: Location) -> None:
        legacy = CatalogSelector(self.session).legacy_record(product_type, product_id)
        unit_price = legacy.unit_price if legacy is not None else None
        insert_ignore(
            self.session,
            LedgerEntry,
            [ledger_row(location, product_type, product_id, 0, unit_price)],
            LEDGER_KEY,
        )

    def _decrement(self, product_id: UUID, location: Location, quantity: int, now) -> None:
        result = self.session.execute(
            update(LedgerEntry)
            .where(*_at(location, product_id), LedgerEntry.quantity >= quantity)
            .values(quantity=LedgerEntry.quantity - quantity, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise InsufficientStockError(
                product_id=product_id,
                department_id=location.department_id,
                section_id=location.section_id,
                available=self._current(product_id, location),
                required=quantity,
            )

    def _current(self, product_id: UUID, location: Location) -> int:
        value = self.session.scalar(select(LedgerEntry.quantity).where(*_at(location, product_id)))
        return int(value or 0)
