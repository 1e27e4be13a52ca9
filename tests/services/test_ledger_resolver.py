"""
Tests for LedgerResolver.

Covers:
- Ledger-first reads and legacy fallback
- Lazy, idempotent materialization of legacy stock
- Batched balances keyed by the ids as passed
- Availability checks, single and batched
- Lookup failures degrade to zero instead of raising
"""

from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from inventory_kernel.models.ledger import LedgerEntry
from inventory_kernel.selectors.ledger_selector import LedgerSelector
from inventory_kernel.services.ledger_resolver import LedgerResolver


def _ledger_rows(session, product_id) -> int:
    return session.scalar(
        select(func.count(LedgerEntry.id)).where(LedgerEntry.product_id == product_id)
    )


class TestGetBalance:

    def test_ledger_entry_wins_over_legacy(
        self, session, make_department, make_drink, seed_ledger
    ):
        dept = make_department("BAR")
        drink_id = make_drink(quantity=20)
        seed_ledger("drink", drink_id, dept.location, 6)

        assert LedgerResolver(session).get_balance("drink", drink_id, dept.id) == 6

    def test_legacy_fallback_materializes_once(
        self, session, make_department, make_drink, captured_logs
    ):
        dept = make_department("BAR")
        drink_id = make_drink(quantity=20, price=Decimal("4.50"))
        resolver = LedgerResolver(session)

        assert resolver.get_balance("drink", drink_id, dept.id) == 20
        assert resolver.get_balance("drink", drink_id, dept.id) == 20

        entry = LedgerSelector(session).entry(drink_id, dept.location)
        assert entry.quantity == 20
        assert entry.unit_price == Decimal("4.50")
        assert _ledger_rows(session, drink_id) == 1
        materialized = [
            r for r in captured_logs() if r["message"] == "legacy_balance_materialized"
        ]
        assert len(materialized) == 1
        assert materialized[0]["location_id"] == str(dept.id)

    def test_bar_stock_is_the_legacy_count(self, session, make_department, make_drink):
        dept = make_department("BAR")
        drink_id = make_drink(quantity=4, bar_stock=11)
        assert LedgerResolver(session).get_balance("drink", drink_id, dept.id) == 11

    def test_zero_legacy_stock_is_not_materialized(
        self, session, make_department, make_inventory_item
    ):
        dept = make_department("STORE")
        item_id = make_inventory_item(quantity=0)

        assert LedgerResolver(session).get_balance("inventoryItem", item_id, dept.id) == 0
        assert _ledger_rows(session, item_id) == 0

    def test_section_has_its_own_balance(
        self, session, make_department, make_section, make_drink, seed_ledger
    ):
        dept = make_department("BAR")
        shelf = make_section(dept.id, "Back Shelf")
        drink_id = make_drink(quantity=20)
        seed_ledger("drink", drink_id, dept.location, 3)
        seed_ledger("drink", drink_id, shelf.location, 8)
        resolver = LedgerResolver(session)

        assert resolver.get_balance("drink", drink_id, dept.id) == 3
        assert resolver.get_balance("drink", drink_id, dept.id, shelf.id) == 8

    def test_unknown_product_is_zero(self, session, make_department):
        dept = make_department("BAR")
        assert LedgerResolver(session).get_balance("drink", uuid4(), dept.id) == 0

    def test_unsupported_type_is_zero(self, session, make_department, make_drink, captured_logs):
        dept = make_department("BAR")
        drink_id = make_drink(quantity=5)

        assert LedgerResolver(session).get_balance("food", drink_id, dept.id) == 0
        assert any(r["message"] == "unsupported_product_type" for r in captured_logs())

    def test_malformed_ids_are_zero(self, session, make_department):
        dept = make_department("BAR")
        resolver = LedgerResolver(session)
        assert resolver.get_balance("drink", "not-a-uuid", dept.id) == 0
        assert resolver.get_balance("drink", uuid4(), "not-a-uuid") == 0


class TestGetBalances:

    def test_mixed_sources_in_one_call(
        self, session, make_department, make_drink, seed_ledger
    ):
        dept = make_department("BAR")
        in_ledger = make_drink(quantity=50)
        legacy_only = make_drink(quantity=7)
        unknown = uuid4()
        seed_ledger("drink", in_ledger, dept.location, 2)

        balances = LedgerResolver(session).get_balances(
            "drink", [in_ledger, legacy_only, unknown], dept.id
        )

        assert balances == {in_ledger: 2, legacy_only: 7, unknown: 0}

    def test_keys_are_ids_as_passed(self, session, make_department, make_drink):
        dept = make_department("BAR")
        drink_id = make_drink(quantity=3)

        balances = LedgerResolver(session).get_balances("drink", [str(drink_id)], dept.id)

        assert balances == {str(drink_id): 3}

    def test_unsupported_type_returns_zero_for_every_id(self, session, make_department):
        dept = make_department("BAR")
        ids = [uuid4(), uuid4()]
        assert LedgerResolver(session).get_balances("food", ids, dept.id) == {
            ids[0]: 0,
            ids[1]: 0,
        }

    def test_empty_request(self, session, make_department):
        dept = make_department("BAR")
        assert LedgerResolver(session).get_balances("drink", [], dept.id) == {}


class TestAvailability:

    def test_sufficient(self, session, make_department, make_drink):
        dept = make_department("BAR")
        drink_id = make_drink(quantity=5)

        check = LedgerResolver(session).check_availability("drink", drink_id, dept.id, 5)

        assert check.has_stock
        assert check.available == 5
        assert check.message is None

    def test_shortfall_message(self, session, make_department, make_drink, seed_ledger):
        dept = make_department("BAR")
        drink_id = make_drink(quantity=99)
        seed_ledger("drink", drink_id, dept.location, 3)

        check = LedgerResolver(session).check_availability("drink", drink_id, dept.id, 4)

        assert not check.has_stock
        assert "3" in check.message and "4" in check.message

    def test_batch_preserves_input_order(self, session, make_department, make_drink):
        dept = make_department("BAR")
        a = make_drink(quantity=1)
        b = make_drink(quantity=10)

        checks = LedgerResolver(session).check_availability_batch(
            "drink", [(b, 5), (a, 2), (b, 11)], dept.id
        )

        assert [(c.product_id, c.available, c.required, c.has_stock) for c in checks] == [
            (b, 10, 5, True),
            (a, 1, 2, False),
            (b, 10, 11, False),
        ]


class TestDegradedReads:

    def test_ledger_lookup_failure_falls_back_to_legacy(
        self, session, make_department, make_drink, captured_logs
    ):
        dept = make_department("BAR")
        drink_id = make_drink(quantity=9)

        with patch.object(
            LedgerSelector,
            "entries_for",
            side_effect=OperationalError("SELECT", {}, Exception("database is locked")),
        ):
            balance = LedgerResolver(session).get_balance("drink", drink_id, dept.id)

        assert balance == 9
        assert any(r["message"] == "ledger_lookup_failed" for r in captured_logs())

    def test_materialization_failure_still_returns_legacy(
        self, session, make_department, make_drink, captured_logs
    ):
        dept = make_department("BAR")
        drink_id = make_drink(quantity=9)
        resolver = LedgerResolver(session)

        with patch.object(
            resolver._migrator,
            "materialize",
            side_effect=OperationalError("INSERT", {}, Exception("disk I/O error")),
        ):
            assert resolver.get_balance("drink", drink_id, dept.id) == 9

        assert _ledger_rows(session, drink_id) == 0
        assert any(r["message"] == "legacy_materialization_failed" for r in captured_logs())

    def test_raise_on_error_propagates_store_failures(
        self, session, make_department, make_drink, captured_logs
    ):
        dept = make_department("BAR")
        drink_id = make_drink(quantity=9)

        with patch.object(
            LedgerSelector,
            "entries_for",
            side_effect=OperationalError("SELECT", {}, Exception("database is locked")),
        ):
            with pytest.raises(OperationalError):
                LedgerResolver(session, raise_on_error=True).get_balance(
                    "drink", drink_id, dept.id
                )

        assert any(r["message"] == "ledger_lookup_failed" for r in captured_logs())
        # The savepoint rollback leaves the session usable
        assert LedgerResolver(session).get_balance("drink", drink_id, dept.id) == 9
