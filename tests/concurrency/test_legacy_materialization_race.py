"""
Concurrent first reads of legacy stock.

Several sessions read the same product at the same location before any
ledger row exists.  Each read adopts the legacy quantity into the ledger;
the unique key plus insert-skip must leave exactly one row, and every
reader must see the same balance.
"""

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest
from sqlalchemy import func, select

from inventory_kernel.models.ledger import LedgerEntry
from inventory_kernel.services.ledger_resolver import LedgerResolver

pytestmark = [pytest.mark.concurrency]

READERS = 8


def _read_concurrently(session_factory, product_type, product_id, department_id, section_id=None):
    barrier = Barrier(READERS)

    def reader(_):
        session = session_factory()
        try:
            barrier.wait(timeout=10)
            balance = LedgerResolver(session).get_balance(
                product_type, product_id, department_id, section_id
            )
            session.commit()
            return balance
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=READERS) as pool:
        return list(pool.map(reader, range(READERS)))


def _rows(session, product_id) -> int:
    return session.scalar(
        select(func.count(LedgerEntry.id)).where(LedgerEntry.product_id == product_id)
    )


class TestConcurrentFirstReads:

    def test_department_scope(self, session, session_factory, make_department, make_drink):
        dept = make_department("BAR")
        drink_id = make_drink(quantity=20)

        balances = _read_concurrently(session_factory, "drink", drink_id, dept.id)

        assert balances == [20] * READERS
        assert _rows(session, drink_id) == 1

    def test_section_scope(
        self, session, session_factory, make_department, make_section, make_inventory_item
    ):
        dept = make_department("STORE")
        shelf = make_section(dept.id, "Cold Room")
        item_id = make_inventory_item(quantity=7)

        balances = _read_concurrently(
            session_factory, "inventoryItem", item_id, dept.id, shelf.id
        )

        assert balances == [7] * READERS
        assert _rows(session, item_id) == 1
