"""
True concurrency tests for transfer approval.

Each worker runs in its own thread with its own session, released together
by a barrier.  Whatever interleaving the database allows, the ledger must
never go negative, must conserve units, and a transfer must complete at
most once.

Expected Behavior:
- Two approvals competing for the same stock: exactly one completes, the
  other reports insufficient stock (preflight or stock race).
- Two approvals of the same transfer: exactly one completes, the other
  reports already processed.
"""

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from inventory_kernel.domain.dtos import TransferItemSpec
from inventory_kernel.domain.policy import RetryPolicy
from inventory_kernel.selectors.ledger_selector import LedgerSelector
from inventory_kernel.services.ledger_resolver import LedgerResolver
from inventory_kernel.services.transfer_engine import TransferEngine, TransferOutcome

pytestmark = [pytest.mark.concurrency]


def _approve_all(session_factory, transfer_ids, actor="worker"):
    """Approve each transfer from its own thread and session."""
    barrier = Barrier(len(transfer_ids))

    def worker(transfer_id):
        session = session_factory()
        try:
            engine = TransferEngine(
                session,
                retry_policy=RetryPolicy(max_attempts=5, backoff_seconds=0.01),
            )
            barrier.wait(timeout=10)
            return engine.approve(transfer_id, actor=actor)
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=len(transfer_ids)) as pool:
        return list(pool.map(worker, transfer_ids))


def _balance(session, product_id, location):
    return LedgerResolver(session).get_balance(
        "drink", product_id, location.department_id, location.section_id
    )


class TestCompetingApprovals:

    def test_two_transfers_for_the_same_units(
        self, session, session_factory, transfer_engine, make_department, make_drink
    ):
        store = make_department("STORE")
        bar = make_department("BAR")
        terrace = make_department("TERRACE")
        drink_id = make_drink(quantity=5)
        first = transfer_engine.create(
            store.id, [TransferItemSpec("drink", drink_id, 3)], to_location_id=bar.id
        )
        second = transfer_engine.create(
            store.id, [TransferItemSpec("drink", drink_id, 3)], to_location_id=terrace.id
        )

        results = _approve_all(session_factory, [first.id, second.id])

        outcomes = sorted(r.status.value for r in results)
        assert outcomes == ["completed", "insufficient_stock"]
        assert _balance(session, drink_id, store.location) == 2
        # Only the winning destination has a ledger row
        received = [
            entry.quantity
            for entry in (
                LedgerSelector(session).entry(drink_id, bar.location),
                LedgerSelector(session).entry(drink_id, terrace.location),
            )
            if entry is not None
        ]
        assert received == [3]

    def test_many_single_unit_transfers(
        self, session, session_factory, transfer_engine, make_department, make_drink
    ):
        store = make_department("STORE")
        bar = make_department("BAR")
        drink_id = make_drink(quantity=3)
        transfer_ids = [
            transfer_engine.create(
                store.id, [TransferItemSpec("drink", drink_id, 1)], to_location_id=bar.id
            ).id
            for _ in range(5)
        ]

        results = _approve_all(session_factory, transfer_ids)

        completed = [r for r in results if r.status == TransferOutcome.COMPLETED]
        rejected = [r for r in results if r.status == TransferOutcome.INSUFFICIENT_STOCK]
        assert len(completed) == 3
        assert len(rejected) == 2
        assert _balance(session, drink_id, store.location) == 0
        assert _balance(session, drink_id, bar.location) == 3
        assert LedgerSelector(session).total_quantity(drink_id) == 3


class TestDuplicateApproval:

    def test_same_transfer_approved_twice(
        self, session, session_factory, transfer_engine, make_department, make_drink
    ):
        store = make_department("STORE")
        bar = make_department("BAR")
        drink_id = make_drink(quantity=20)
        record = transfer_engine.create(
            store.id, [TransferItemSpec("drink", drink_id, 6)], to_location_id=bar.id
        )

        results = _approve_all(session_factory, [record.id, record.id])

        outcomes = sorted(r.status.value for r in results)
        assert outcomes == ["already_processed", "completed"]
        assert _balance(session, drink_id, store.location) == 14
        assert _balance(session, drink_id, bar.location) == 6
        movements = LedgerSelector(session).movements_for_reference(str(record.id))
        assert len(movements) == 2
