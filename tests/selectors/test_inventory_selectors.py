"""
Tests for read-only selectors: ledger rows, movements, catalog records and
transfer listings.
"""

from decimal import Decimal
from uuid import uuid4

from inventory_kernel.domain.dtos import TransferItemSpec
from inventory_kernel.domain.products import ProductType
from inventory_kernel.selectors.catalog_selector import CatalogSelector
from inventory_kernel.selectors.ledger_selector import LedgerSelector
from inventory_kernel.selectors.transfer_selector import TransferSelector


class TestLedgerSelector:

    def test_entry_missing(self, session, make_department):
        dept = make_department("BAR")
        assert LedgerSelector(session).entry(uuid4(), dept.location) is None

    def test_entries_for_is_scoped_to_location(
        self, session, make_department, make_section, seed_ledger
    ):
        dept = make_department("BAR")
        shelf = make_section(dept.id, "Back Shelf")
        a, b = uuid4(), uuid4()
        seed_ledger("drink", a, dept.location, 5)
        seed_ledger("drink", b, shelf.location, 7)

        selector = LedgerSelector(session)
        at_dept = selector.entries_for([a, b], dept.location)
        at_shelf = selector.entries_for([a, b], shelf.location)

        assert set(at_dept) == {a}
        assert at_dept[a].quantity == 5
        assert set(at_shelf) == {b}
        assert at_shelf[b].section_id == shelf.id
        assert at_shelf[b].location == shelf.location

    def test_location_summary(self, session, make_department, seed_ledger):
        dept = make_department("STORE")
        seed_ledger("drink", uuid4(), dept.location, 3, Decimal("2.00"))
        seed_ledger("inventoryItem", uuid4(), dept.location, 4, Decimal("1.25"))
        seed_ledger("inventoryItem", uuid4(), dept.location, 2, None)

        summary = LedgerSelector(session).location_summary(dept.location)

        assert summary.product_count == 3
        assert summary.total_units == 9
        assert summary.total_value == Decimal("11.00")

    def test_empty_location_summary(self, session, make_department):
        dept = make_department("EMPTY")
        summary = LedgerSelector(session).location_summary(dept.location)
        assert (summary.product_count, summary.total_units) == (0, 0)
        assert summary.total_value == Decimal("0.00")

    def test_total_quantity_across_locations(
        self, session, make_department, make_section, seed_ledger
    ):
        dept = make_department("BAR")
        other = make_department("KITCHEN")
        shelf = make_section(dept.id, "Back Shelf")
        product_id = uuid4()
        seed_ledger("drink", product_id, dept.location, 2)
        seed_ledger("drink", product_id, shelf.location, 3)
        seed_ledger("drink", product_id, other.location, 4)

        assert LedgerSelector(session).total_quantity(product_id) == 9
        assert LedgerSelector(session).total_quantity(uuid4()) == 0


class TestCatalogSelector:

    def test_drink_records_prefer_bar_stock(self, session, make_drink):
        with_bar = make_drink(quantity=4, bar_stock=9, price=Decimal("3.456"))
        without_bar = make_drink(quantity=4)
        missing = uuid4()

        records = CatalogSelector(session).legacy_records(
            ProductType.DRINK, [with_bar, without_bar, missing]
        )

        assert set(records) == {with_bar, without_bar}
        assert records[with_bar].quantity == 9
        assert records[with_bar].unit_price == Decimal("3.46")
        assert records[without_bar].quantity == 4

    def test_types_do_not_mix(self, session, make_drink):
        drink_id = make_drink(quantity=4)
        assert CatalogSelector(session).legacy_record("inventoryItem", drink_id) is None

    def test_records_with_stock(self, session, make_inventory_item):
        stocked = make_inventory_item(quantity=10)
        make_inventory_item(quantity=0, name="Empty")

        records = CatalogSelector(session).records_with_stock("inventoryItem")

        assert [r.product_id for r in records] == [stocked]
        assert records[0].unit_price == Decimal("2.00")


class TestTransferSelector:

    def test_get_and_list(
        self, session, make_department, make_drink, transfer_engine, deterministic_clock
    ):
        store = make_department("STORE")
        bar = make_department("BAR")
        kitchen = make_department("KITCHEN")
        drink_id = make_drink(quantity=10)

        first = transfer_engine.create(
            store.id, [TransferItemSpec("drink", drink_id, 1)], to_location_id=bar.id
        )
        deterministic_clock.advance(60)
        second = transfer_engine.create(
            store.id, [TransferItemSpec("drink", drink_id, 2)], destination_code="KITCHEN"
        )

        selector = TransferSelector(session)
        loaded = selector.get(first.id)
        assert loaded.destination == bar.location
        assert loaded.items[0].quantity == 1

        from_store = selector.list_for_department(store.id)
        assert [t.id for t in from_store] == [second.id, first.id]
        assert [t.id for t in selector.list_for_department(kitchen.id)] == [second.id]
        assert selector.list_for_department(store.id, status="completed") == []
        assert selector.get(uuid4()) is None
