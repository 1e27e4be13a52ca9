"""
TransferEngine -- atomic, retryable multi-item stock transfers.

Responsibility:
    Creates transfer requests and executes them: every item moves from one
    source department to one destination (department or section) in a
    single transaction, with a paired out/in movement audit trail.

Architecture position:
    Kernel > Services.  Unlike flush-only services, approve() owns its
    transactions: it commits the preflight read, then commits or rolls back
    each execution attempt, because retrying requires a clean rollback.

Execution flow (approve):

    load + status guard + re-verify stored locations
         |
         v
    +--> preflight: aggregated availability at source (adopts legacy stock),
    |    destination rows, legacy prices        -> InsufficientStockError
    |    (store errors during preflight propagate and are retried)
    |    plan: decrements, dest creates, increments, movement pairs
    |    execute (one transaction, bounded by the transaction timeout):
    |      conditional decrement per item       -> StockRaceError
    |      insert dest rows at 0 (skip dups), increment every dest leg
    |      bulk insert movements
    |      guarded status -> completed          -> TransferAlreadyProcessedError
    |    commit
    |         |
    +-- SQLAlchemyError / TransientLedgerError: rollback, sleep(backoff * n)

Invariants enforced:
    - Conservation: a completed transfer removes exactly what it adds.
    - Non-negativity: source decrements are ``quantity >= n`` guarded
      UPDATEs executed by the database, never read-then-write.
    - One out and one in movement per item, both referencing the transfer id.
    - Status is monotonic; failures leave the request pending.

Failure modes (returned as TransferResult, never raised by approve):
    - NOT_FOUND: transfer, department or section missing/inactive.
    - ALREADY_PROCESSED: status not executable (incl. a concurrent approval).
    - INSUFFICIENT_STOCK: preflight shortfall or commit-time stock race.
      Never retried.
    - EXECUTION_FAILED: transient errors exhausted the attempt budget.
"""

import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from inventory_kernel.db.engine import apply_transaction_timeout, insert_ignore
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import (
    AvailabilityCheck,
    TransferItemSpec,
    TransferRecord,
)
from inventory_kernel.domain.locations import Location, location_for
from inventory_kernel.domain.policy import RetryPolicy
from inventory_kernel.domain.products import ProductType
from inventory_kernel.exceptions import (
    InsufficientStockError,
    InvalidTransferError,
    LocationError,
    StockRaceError,
    TransferAlreadyProcessedError,
    TransferNotFoundError,
    TransientLedgerError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.ledger import (
    LedgerEntry,
    MovementReason,
    MovementRecord,
    MovementType,
)
from inventory_kernel.models.transfer import TransferItem, TransferRequest, TransferStatus
from inventory_kernel.selectors.catalog_selector import CatalogSelector
from inventory_kernel.selectors.ledger_selector import LedgerSelector
from inventory_kernel.services.ledger_resolver import LedgerResolver
from inventory_kernel.services.legacy_migration import LEDGER_KEY, ledger_row
from inventory_kernel.services.location_service import LocationService

logger = get_logger("services.transfer_engine")


class TransferOutcome(str, Enum):
    """
    Structured result kind of an approval.

    Outcomes cover ledger products only; department extras are not
    transferable and have no outcome here.
    """

    COMPLETED = "completed"
    NOT_FOUND = "not_found"
    ALREADY_PROCESSED = "already_processed"
    INSUFFICIENT_STOCK = "insufficient_stock"
    EXECUTION_FAILED = "execution_failed"


@dataclass(frozen=True)
class TransferResult:
    """Result of an approval."""

    status: TransferOutcome
    transfer_id: UUID
    message: str
    attempts: int = 0
    error_code: str | None = None
    shortfalls: tuple[AvailabilityCheck, ...] = ()

    @property
    def is_success(self) -> bool:
        return self.status == TransferOutcome.COMPLETED


@dataclass(frozen=True)
class _Leg:
    position: int
    product_type: str
    product_id: UUID
    quantity: int


@dataclass(frozen=True)
class _Plan:
    transfer_id: UUID
    source: Location
    destination: Location
    legs: tuple[_Leg, ...]
    destination_creates: tuple[dict, ...] = field(default=())


def _ledger_key(location: Location, product_id: UUID):
    return (
        LedgerEntry.department_id == location.department_id,
        LedgerEntry.scope_key == location.scope_key,
        LedgerEntry.product_id == product_id,
    )


class TransferEngine:
    """
    Create and execute stock transfers.

    Contract:
        create() validates the request shape, resolves the destination once
        and persists the request as pending.  approve() executes it
        atomically or not at all and reports a TransferResult.

    Guarantees:
        - No partial transfers: all items move or none do.
        - A stock race (zero-row conditional decrement) is terminal; it is
          never retried, so contention cannot livelock an approval.
        - Only SQLAlchemy errors and TransientLedgerError are retried.

    Non-goals:
        - Pricing; unit prices copied to new rows are informational.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
        timer: Callable[[], float] = time.monotonic,
        auto_commit: bool = True,
    ):
        """
        Args:
            session: SQLAlchemy session.  approve() commits and rolls back
                on it; do not pass a session with unrelated pending work.
            clock: Clock for movement and completion timestamps.
            retry_policy: Attempt budget, backoff and transaction timeout.
            sleep: Called with the backoff delay between attempts.
            timer: Monotonic seconds, used to enforce the transaction timeout.
            auto_commit: If True (default), create() commits.  If False the
                caller owns create()'s transaction.
        """
        self.session = session
        self._clock = clock or SystemClock()
        self._policy = retry_policy or RetryPolicy()
        self._sleep = sleep
        self._timer = timer
        self._auto_commit = auto_commit
        self._locations = LocationService(session)
        self._resolver = LedgerResolver(session, raise_on_error=True)

    # ------------------------------------------------------------------
    # create
    # ------------------------------------------------------------------

    def create(
        self,
        from_department_id: UUID,
        items: Sequence[TransferItemSpec],
        created_by: str | None = None,
        to_location_id: UUID | str | None = None,
        destination_code: str | None = None,
    ) -> TransferRecord:
        """
        Persist a pending transfer request.

        Stock is not checked here; availability is decided at approval.
        The destination is resolved now, from ``destination_code``
        (``DEPT`` or ``DEPT:slugOrId``) when given, else from
        ``to_location_id`` (a department or section id), and stored as ids.

        Raises:
            InvalidTransferError: no items, bad quantity or id, no
                destination, or destination equals the source.
            UnsupportedProductTypeError: unknown product type.
            DepartmentNotFoundError / SectionNotFoundError /
            InvalidDestinationCodeError: unresolvable locations.
        """
        legs = self._validate_items(items)

        source = self._locations.require_active(location_for(_require_uuid(from_department_id)))

        if destination_code:
            destination = self._locations.resolve_destination_code(destination_code)
        elif to_location_id:
            destination = self._locations.resolve_location_id(to_location_id)
        else:
            raise InvalidTransferError("a destination location or code is required")

        if destination == source:
            raise InvalidTransferError("source and destination are the same location")

        now = self._clock.now()
        transfer = TransferRequest(
            id=uuid4(),
            from_department_id=source.department_id,
            to_department_id=destination.department_id,
            to_section_id=destination.section_id,
            destination_code=destination_code,
            status=TransferStatus.PENDING.value,
            created_by=created_by,
            created_at=now,
            updated_at=now,
            completed_at=None,
        )
        transfer.items = [
            TransferItem(
                id=uuid4(),
                position=leg.position,
                product_type=leg.product_type,
                product_id=leg.product_id,
                quantity=leg.quantity,
            )
            for leg in legs
        ]
        self.session.add(transfer)

        try:
            self.session.flush()
            if self._auto_commit:
                self.session.commit()
        except Exception:
            if self._auto_commit:
                self.session.rollback()
            raise

        logger.info(
            "transfer_created",
            extra={
                "transfer_id": str(transfer.id),
                "from_department_id": str(source.department_id),
                "to_department_id": str(destination.department_id),
                "to_section_id": str(destination.section_id) if destination.section_id else None,
                "item_count": len(legs),
            },
        )
        return TransferRecord.from_model(transfer)

    def _validate_items(self, items: Sequence[TransferItemSpec]) -> list[_Leg]:
        if not items:
            raise InvalidTransferError("at least one item is required")

        legs = []
        for position, item in enumerate(items):
            product_type = ProductType.parse(item.product_type)
            quantity = item.quantity
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
                raise InvalidTransferError(
                    f"item {position}: quantity must be a positive integer, got {quantity!r}"
                )
            product_id = _as_uuid(item.product_id)
            if product_id is None:
                raise InvalidTransferError(f"item {position}: invalid product id {item.product_id!r}")
            legs.append(
                _Leg(
                    position=position,
                    product_type=product_type.value,
                    product_id=product_id,
                    quantity=quantity,
                )
            )
        return legs

    # ------------------------------------------------------------------
    # approve
    # ------------------------------------------------------------------

    def approve(self, transfer_id: UUID | str, actor: str | None = None) -> TransferResult:
        """
        Execute a pending transfer atomically, retrying transient failures.

        Returns:
            TransferResult; its ``status`` is the structured outcome and
            ``message`` the human-readable reason.
        """
        transfer_uuid = _as_uuid(transfer_id)
        with LogContext.bind(transfer_id=str(transfer_id), actor_id=actor):
            logger.info("transfer_approval_started")
            if transfer_uuid is None:
                return self._fail(
                    TransferOutcome.NOT_FOUND, transfer_id, TransferNotFoundError(str(transfer_id))
                )

            try:
                source, destination, legs = self._load_executable(transfer_uuid)
            except TransferNotFoundError as exc:
                return self._fail(TransferOutcome.NOT_FOUND, transfer_uuid, exc)
            except LocationError as exc:
                return self._fail(TransferOutcome.NOT_FOUND, transfer_uuid, exc)
            except TransferAlreadyProcessedError as exc:
                return self._fail(TransferOutcome.ALREADY_PROCESSED, transfer_uuid, exc)

            max_attempts = self._policy.max_attempts
            for attempt in range(1, max_attempts + 1):
                try:
                    plan = self._preflight(transfer_uuid, source, destination, legs)
                    # End the read snapshot; keeps adopted legacy rows
                    self.session.commit()
                    self._execute(plan, actor)
                except InsufficientStockError as exc:
                    self.session.rollback()
                    return self._fail(
                        TransferOutcome.INSUFFICIENT_STOCK,
                        transfer_uuid,
                        exc,
                        attempts=attempt,
                        shortfalls=exc.shortfalls,
                    )
                except TransferAlreadyProcessedError as exc:
                    self.session.rollback()
                    return self._fail(
                        TransferOutcome.ALREADY_PROCESSED, transfer_uuid, exc, attempts=attempt
                    )
                except (SQLAlchemyError, TransientLedgerError) as exc:
                    self.session.rollback()
                    logger.warning(
                        "transfer_attempt_failed",
                        extra={
                            "attempt": attempt,
                            "max_attempts": max_attempts,
                            "error_type": type(exc).__name__,
                            "error": str(exc),
                        },
                    )
                    if attempt < max_attempts:
                        self._sleep(self._policy.delay_after(attempt))
                        continue
                    logger.error("transfer_retries_exhausted", extra={"attempts": attempt})
                    return TransferResult(
                        status=TransferOutcome.EXECUTION_FAILED,
                        transfer_id=transfer_uuid,
                        message=f"Transfer failed after {attempt} attempts: {exc}",
                        attempts=attempt,
                        error_code=getattr(exc, "code", TransientLedgerError.code),
                    )

                logger.info(
                    "transfer_completed",
                    extra={"attempts": attempt, "item_count": len(plan.legs)},
                )
                return TransferResult(
                    status=TransferOutcome.COMPLETED,
                    transfer_id=transfer_uuid,
                    message="Transfer completed",
                    attempts=attempt,
                )

        raise AssertionError("unreachable: retry loop always returns")

    def _fail(
        self,
        outcome: TransferOutcome,
        transfer_id,
        exc: Exception,
        attempts: int = 0,
        shortfalls: Iterable[AvailabilityCheck] = (),
    ) -> TransferResult:
        if self.session.in_transaction():
            self.session.rollback()
        message = getattr(exc, "message", None) or str(exc)
        logger.warning(
            "transfer_rejected",
            extra={
                "outcome": outcome.value,
                "error_code": getattr(exc, "code", None),
                "reason": message,
            },
        )
        return TransferResult(
            status=outcome,
            transfer_id=transfer_id,
            message=message,
            attempts=attempts,
            error_code=getattr(exc, "code", None),
            shortfalls=tuple(shortfalls),
        )

    def _load_executable(
        self, transfer_id: UUID
    ) -> tuple[Location, Location, tuple[_Leg, ...]]:
        transfer = self.session.scalars(
            select(TransferRequest)
            .options(selectinload(TransferRequest.items))
            .execution_options(populate_existing=True)
            .where(TransferRequest.id == transfer_id)
        ).one_or_none()
        if transfer is None:
            raise TransferNotFoundError(str(transfer_id))
        if transfer.status not in TransferStatus.executable():
            raise TransferAlreadyProcessedError(str(transfer_id), transfer.status)

        source = self._locations.require_active(location_for(transfer.from_department_id))
        destination = self._locations.require_active(
            location_for(transfer.to_department_id, transfer.to_section_id)
        )
        legs = tuple(
            _Leg(
                position=item.position,
                product_type=item.product_type,
                product_id=item.product_id,
                quantity=item.quantity,
            )
            for item in transfer.items
        )
        return source, destination, legs

    def _preflight(
        self,
        transfer_id: UUID,
        source: Location,
        destination: Location,
        legs: tuple[_Leg, ...],
    ) -> _Plan:
        """
        Fail fast on obvious shortfalls and build the write plan.

        Snapshot reads only; the conditional decrement at execution is the
        real guarantee.
        The resolver raises on store errors here, so an outage is retried as
        transient rather than being read as zero stock.
        """
        # Same product listed twice is checked against the combined amount
        required: dict[tuple[str, UUID], int] = {}
        for leg in legs:
            key = (leg.product_type, leg.product_id)
            required[key] = required.get(key, 0) + leg.quantity

        by_type: dict[str, list[tuple[UUID, int]]] = {}
        for (product_type, product_id), quantity in required.items():
            by_type.setdefault(product_type, []).append((product_id, quantity))

        shortfalls: list[AvailabilityCheck] = []
        for product_type, wanted in by_type.items():
            checks = self._resolver.check_availability_batch(
                product_type, wanted, source.department_id
            )
            shortfalls.extend(c for c in checks if not c.has_stock)

        if shortfalls:
            first = shortfalls[0]
            raise InsufficientStockError(
                product_id=first.product_id,
                department_id=source.department_id,
                available=first.available,
                required=first.required,
                message="; ".join(c.message for c in shortfalls),
                shortfalls=tuple(shortfalls),
            )

        existing = LedgerSelector(self.session).entries_for(
            [leg.product_id for leg in legs], destination
        )
        creates: dict[UUID, dict] = {}
        catalog = CatalogSelector(self.session)
        for product_type, wanted in by_type.items():
            missing = [pid for pid, _ in wanted if pid not in existing]
            if not missing:
                continue
            legacy = catalog.legacy_records(product_type, missing)
            for pid in missing:
                record = legacy.get(pid)
                unit_price: Decimal | None = record.unit_price if record is not None else None
                creates[pid] = ledger_row(destination, product_type, pid, 0, unit_price)

        return _Plan(
            transfer_id=transfer_id,
            source=source,
            destination=destination,
            legs=legs,
            destination_creates=tuple(creates.values()),
        )

    def _execute(self, plan: _Plan, actor: str | None) -> None:
        """Apply the plan in one transaction and commit it."""
        started = self._timer()
        timeout = self._policy.transaction_timeout_seconds
        apply_transaction_timeout(self.session, timeout)
        now = self._clock.now()

        for leg in plan.legs:
            result = self.session.execute(
                update(LedgerEntry)
                .where(
                    *_ledger_key(plan.source, leg.product_id),
                    LedgerEntry.quantity >= leg.quantity,
                )
                .values(quantity=LedgerEntry.quantity - leg.quantity, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                observed = self.session.scalar(
                    select(LedgerEntry.quantity).where(*_ledger_key(plan.source, leg.product_id))
                )
                logger.warning(
                    "transfer_stock_race_detected",
                    extra={
                        "product_id": str(leg.product_id),
                        "required": leg.quantity,
                        "observed_available": observed,
                    },
                )
                raise StockRaceError(
                    product_id=leg.product_id,
                    department_id=plan.source.department_id,
                    required=leg.quantity,
                    observed_available=int(observed or 0),
                )

        # Rows created by a concurrent writer since preflight are skipped,
        # then every destination leg is an increment
        insert_ignore(self.session, LedgerEntry, plan.destination_creates, LEDGER_KEY)
        for leg in plan.legs:
            result = self.session.execute(
                update(LedgerEntry)
                .where(*_ledger_key(plan.destination, leg.product_id))
                .values(quantity=LedgerEntry.quantity + leg.quantity, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise TransientLedgerError(
                    f"destination ledger row for {leg.product_id} is missing"
                )

        reference = str(plan.transfer_id)
        movements = []
        for leg in plan.legs:
            movements.append(
                _movement(MovementType.OUT, MovementReason.TRANSFER_OUT, leg, plan.source,
                          reference, actor, now)
            )
            movements.append(
                _movement(MovementType.IN, MovementReason.TRANSFER_IN, leg, plan.destination,
                          reference, actor, now)
            )
        self.session.execute(insert(MovementRecord), movements)

        result = self.session.execute(
            update(TransferRequest)
            .where(
                TransferRequest.id == plan.transfer_id,
                TransferRequest.status.in_(TransferStatus.executable()),
            )
            .values(status=TransferStatus.COMPLETED.value, completed_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise TransferAlreadyProcessedError(str(plan.transfer_id), TransferStatus.COMPLETED.value)

        if self._timer() - started > timeout:
            raise TransientLedgerError(f"transaction exceeded {timeout}s timeout")

        self.session.commit()


def _movement(
    movement_type: MovementType,
    reason: MovementReason,
    leg: _Leg,
    location: Location,
    reference: str,
    actor: str | None,
    now,
) -> dict:
    return {
        "id": uuid4(),
        "movement_type": movement_type.value,
        "quantity": leg.quantity,
        "reason": reason.value,
        "reference": reference,
        "product_type": leg.product_type,
        "product_id": leg.product_id,
        "department_id": location.department_id,
        "section_id": location.section_id,
        "created_by": actor,
        "created_at": now,
    }


def _as_uuid(value) -> UUID | None:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


def _require_uuid(value) -> UUID:
    result = _as_uuid(value)
    if result is None:
        raise InvalidTransferError(f"invalid department id {value!r}")
    return result
