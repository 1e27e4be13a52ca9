"""
LegacyMigrator -- one-time, idempotent adoption of legacy stock counts.

Responsibility:
    Materializes a ledger entry from a product's legacy, location-unaware
    quantity the first time a location needs it, either lazily (one product,
    from the ledger resolver) or in bulk (every product at one location,
    from the migration script).

Architecture position:
    Kernel > Services.  Flush-only; writes join the caller's transaction.

Invariants enforced:
    - At most one ledger row per (department, scope, product): the write is
      an INSERT that skips on the unique key, never a read-then-create.
    - A concurrently materialized (or already mutated) row is never
      overwritten; the caller gets the value actually stored.

Failure modes:
    - SQLAlchemyError from the insert propagates after the savepoint is
      rolled back, leaving the caller's transaction usable.  The ledger
      resolver catches it.
"""

from uuid import UUID, uuid4

from sqlalchemy import select

from inventory_kernel.db.engine import insert_ignore
from inventory_kernel.domain.dtos import LegacyStockRecord, MigrationReport
from inventory_kernel.domain.locations import Location
from inventory_kernel.domain.products import ProductType
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.ledger import LedgerEntry
from inventory_kernel.selectors.catalog_selector import CatalogSelector
from inventory_kernel.selectors.ledger_selector import LedgerSelector
from inventory_kernel.services.base import BaseService

logger = get_logger("services.legacy_migration")

LEDGER_KEY = ("department_id", "scope_key", "product_id")


def ledger_row(
    location: Location,
    product_type: ProductType | str,
    product_id: UUID,
    quantity: int,
    unit_price,
) -> dict:
    """Column dict for a new ledger entry, with an explicit primary key."""
    return {
        "id": uuid4(),
        "department_id": location.department_id,
        "section_id": location.section_id,
        "scope_key": location.scope_key,
        "product_type": ProductType.parse(product_type).value,
        "product_id": product_id,
        "quantity": quantity,
        "unit_price": unit_price,
    }


class LegacyMigrator(BaseService):
    """
    Idempotent materialization of legacy quantities into the ledger.

    Contract:
        materialize() may be called any number of times, from any number
        of sessions, for the same key; exactly one row results and its
        quantity is the first writer's value.
    """

    def materialize(self, record: LegacyStockRecord, location: Location) -> int:
        """
        Adopt one legacy quantity at a location.

        Returns:
            The ledger quantity stored for the key after the attempt, which
            is the legacy value unless another writer got there first.
        """
        with self.session.begin_nested():
            inserted = insert_ignore(
                self.session,
                LedgerEntry,
                [
                    ledger_row(
                        location,
                        record.product_type,
                        record.product_id,
                        record.quantity,
                        record.unit_price,
                    )
                ],
                LEDGER_KEY,
            )

        stored = self.session.scalar(
            select(LedgerEntry.quantity).where(
                LedgerEntry.department_id == location.department_id,
                LedgerEntry.scope_key == location.scope_key,
                LedgerEntry.product_id == record.product_id,
            )
        )

        if inserted:
            logger.info(
                "legacy_balance_materialized",
                extra={
                    "product_type": record.product_type.value,
                    "product_id": str(record.product_id),
                    "department_id": str(location.department_id),
                    "section_id": str(location.section_id) if location.section_id else None,
                    "quantity": record.quantity,
                },
            )

        if stored is None:
            return record.quantity
        return int(stored)

    def migrate_location(
        self,
        product_type: ProductType | str,
        location: Location,
    ) -> MigrationReport:
        """
        Materialize every legacy product of a type with positive stock at
        one location.  Products that already have a ledger row there are
        left untouched.
        """
        product_type = ProductType.parse(product_type)
        with LogContext.bind_location(location):
            return self._migrate(product_type, location)

    def _migrate(self, product_type: ProductType, location: Location) -> MigrationReport:
        records = CatalogSelector(self.session).records_with_stock(product_type)
        existing = LedgerSelector(self.session).entries_for(
            [r.product_id for r in records], location
        )
        missing = [r for r in records if r.product_id not in existing]

        inserted = 0
        if missing:
            with self.session.begin_nested():
                inserted = insert_ignore(
                    self.session,
                    LedgerEntry,
                    [
                        ledger_row(location, product_type, r.product_id, r.quantity, r.unit_price)
                        for r in missing
                    ],
                    LEDGER_KEY,
                )

        report = MigrationReport(
            location=location,
            product_type=product_type,
            examined=len(records),
            materialized=inserted,
            already_present=len(records) - inserted,
        )
        logger.info(
            "legacy_location_migrated",
            extra={
                "product_type": product_type.value,
                "department_id": str(location.department_id),
                "section_id": str(location.section_id) if location.section_id else None,
                "examined": report.examined,
                "materialized": report.materialized,
            },
        )
        return report
