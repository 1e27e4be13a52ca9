"""
LedgerResolver -- the authoritative read path for per-location stock.

Responsibility:
    Answers "how many units of product P are at location L" with one
    number: the ledger entry when it exists, otherwise the product's legacy
    quantity, which is adopted into the ledger on the way out so the next
    read is served from the ledger.

Architecture position:
    Kernel > Services.  Reads through selectors; materialization goes
    through LegacyMigrator and joins the caller's transaction (flush-only).

Invariants enforced:
    - get_balances() returns an entry for every requested id (default 0).
    - Materialization never creates a duplicate row and never clobbers a
      concurrent one (LegacyMigrator).

Failure modes:
    - By default none visible to callers.  Any lookup failure is logged and treated as
      "no entry"; the read falls through to legacy and ultimately to 0.
      Materialization failures are logged and ignored.  Each store access
      runs inside a SAVEPOINT so a failure leaves the caller's transaction
      usable.
    - With raise_on_error=True the SQLAlchemyError is logged and re-raised
      instead, so a caller such as transfer preflight can tell a store
      outage apart from a real shortfall.
"""

from collections.abc import Callable, Iterable
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from inventory_kernel.domain.dtos import AvailabilityCheck, LegacyStockRecord
from inventory_kernel.domain.locations import Location, location_for
from inventory_kernel.domain.products import ProductType
from inventory_kernel.exceptions import UnsupportedProductTypeError
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.selectors.catalog_selector import CatalogSelector
from inventory_kernel.selectors.ledger_selector import LedgerSelector
from inventory_kernel.services.legacy_migration import LegacyMigrator

logger = get_logger("services.ledger_resolver")

T = TypeVar("T")


def _as_uuid(value: Any) -> UUID | None:
    if not value:
        return None
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


class LedgerResolver:
    """
    Read balances and availability; lazily migrate legacy stock.

    Contract:
        No public method raises for store or lookup failures unless
        ``raise_on_error`` is set.  An invalid product type or id reads as 0.

    Non-goals:
        - Does not decide whether a shortfall is an error; callers do.
    """

    def __init__(
        self,
        session: Session,
        migrator: LegacyMigrator | None = None,
        raise_on_error: bool = False,
    ):
        self.session = session
        self._raise_on_error = raise_on_error
        self._ledger = LedgerSelector(session)
        self._catalog = CatalogSelector(session)
        self._migrator = migrator or LegacyMigrator(session)

    # -- balances ---------------------------------------------------------

    def get_balance(
        self,
        product_type: ProductType | str,
        product_id: UUID | str,
        department_id: UUID | str,
        section_id: UUID | str | None = None,
    ) -> int:
        """Units of one product at a department (or one of its sections)."""
        return self.get_balances(product_type, [product_id], department_id, section_id).get(
            product_id, 0
        )

    def get_balances(
        self,
        product_type: ProductType | str,
        product_ids: Iterable[UUID | str],
        department_id: UUID | str,
        section_id: UUID | str | None = None,
    ) -> dict[Any, int]:
        """
        Batched balances: one ledger query, then one legacy query for the
        ids the ledger does not cover.

        Returns:
            Mapping keyed by the ids exactly as passed in; every requested
            id is present, defaulting to 0.
        """
        requested = list(dict.fromkeys(product_ids))
        result: dict[Any, int] = {pid: 0 for pid in requested}

        location = self._location(department_id, section_id)
        ptype = self._product_type(product_type)
        if location is None or ptype is None:
            return result

        by_uuid: dict[UUID, list[Any]] = {}
        for pid in requested:
            pid_uuid = _as_uuid(pid)
            if pid_uuid is not None:
                by_uuid.setdefault(pid_uuid, []).append(pid)
        if not by_uuid:
            return result

        with LogContext.bind_location(location):
            balances = self._resolve(ptype, list(by_uuid), location)
        for pid_uuid, keys in by_uuid.items():
            for key in keys:
                result[key] = balances.get(pid_uuid, 0)
        return result

    # -- availability -----------------------------------------------------

    def check_availability(
        self,
        product_type: ProductType | str,
        product_id: UUID | str,
        department_id: UUID | str,
        required_quantity: int,
        section_id: UUID | str | None = None,
    ) -> AvailabilityCheck:
        available = self.get_balance(product_type, product_id, department_id, section_id)
        return AvailabilityCheck(
            product_id=product_id,
            available=available,
            required=required_quantity,
        )

    def check_availability_batch(
        self,
        product_type: ProductType | str,
        items: Iterable[tuple[UUID | str, int]],
        department_id: UUID | str,
        section_id: UUID | str | None = None,
    ) -> list[AvailabilityCheck]:
        """
        Availability for many ``(product_id, required_quantity)`` pairs.

        Results come back in input order, one per pair.
        """
        items = list(items)
        balances = self.get_balances(
            product_type, [pid for pid, _ in items], department_id, section_id
        )
        return [
            AvailabilityCheck(product_id=pid, available=balances.get(pid, 0), required=required)
            for pid, required in items
        ]

    # -- internals --------------------------------------------------------

    def _resolve(
        self,
        product_type: ProductType,
        product_ids: list[UUID],
        location: Location,
    ) -> dict[UUID, int]:
        entries = self._guarded(
            "ledger_lookup_failed",
            lambda: self._ledger.entries_for(product_ids, location),
            {},
        )
        balances = {pid: entry.quantity for pid, entry in entries.items()}

        missing = [pid for pid in product_ids if pid not in balances]
        if not missing:
            return balances

        legacy = self._guarded(
            "legacy_lookup_failed",
            lambda: self._catalog.legacy_records(product_type, missing),
            {},
        )
        for pid in missing:
            record = legacy.get(pid)
            if record is None:
                continue
            balances[pid] = record.quantity
            if record.quantity > 0:
                balances[pid] = self._materialize(record, location)
        return balances

    def _materialize(self, record: LegacyStockRecord, location: Location) -> int:
        try:
            return self._migrator.materialize(record, location)
        except SQLAlchemyError as exc:
            logger.warning(
                "legacy_materialization_failed",
                extra={
                    "product_id": str(record.product_id),
                    "department_id": str(location.department_id),
                    "error": str(exc),
                },
            )
            if self._raise_on_error:
                raise
            return record.quantity

    def _guarded(self, event: str, fn: Callable[[], T], default: T) -> T:
        try:
            with self.session.begin_nested():
                return fn()
        except SQLAlchemyError as exc:
            logger.warning(event, extra={"error": str(exc)})
            if self._raise_on_error:
                raise
            return default

    def _location(self, department_id, section_id) -> Location | None:
        department_uuid = _as_uuid(department_id)
        if department_uuid is None:
            return None
        if section_id is None:
            return location_for(department_uuid)
        section_uuid = _as_uuid(section_id)
        if section_uuid is None:
            return None
        return location_for(department_uuid, section_uuid)

    def _product_type(self, product_type) -> ProductType | None:
        try:
            return ProductType.parse(product_type)
        except UnsupportedProductTypeError:
            logger.warning("unsupported_product_type", extra={"product_type": str(product_type)})
            return None
