"""
Tests for availability results, product types and the retry policy.

Pure value-object tests; no database.
"""

from uuid import uuid4

import pytest

from inventory_kernel.domain.dtos import AvailabilityCheck, shortfall_message
from inventory_kernel.domain.policy import RetryPolicy
from inventory_kernel.domain.products import ProductType
from inventory_kernel.exceptions import (
    InsufficientStockError,
    StockRaceError,
    UnsupportedProductTypeError,
)


class TestAvailabilityCheck:

    def test_enough_stock_has_no_message(self):
        check = AvailabilityCheck(product_id=uuid4(), available=5, required=5)
        assert check.has_stock is True
        assert check.message is None

    def test_shortfall_message_carries_both_numbers(self):
        check = AvailabilityCheck(product_id=uuid4(), available=3, required=4)
        assert check.has_stock is False
        assert check.message == "Insufficient stock: have 3, need 4"

    def test_zero_required_always_available(self):
        assert AvailabilityCheck(product_id=uuid4(), available=0, required=0).has_stock

    def test_shortfall_message_helper(self):
        assert shortfall_message(0, 2) == "Insufficient stock: have 0, need 2"


class TestProductType:

    def test_parse_wire_values(self):
        assert ProductType.parse("drink") is ProductType.DRINK
        assert ProductType.parse("inventoryItem") is ProductType.INVENTORY_ITEM

    def test_parse_passes_enum_through(self):
        assert ProductType.parse(ProductType.DRINK) is ProductType.DRINK

    @pytest.mark.parametrize("value", ["food", "Drink", "", "inventory_item", "extra"])
    def test_unknown_type_rejected(self, value):
        with pytest.raises(UnsupportedProductTypeError) as exc_info:
            ProductType.parse(value)
        assert exc_info.value.code == "UNSUPPORTED_PRODUCT_TYPE"


class TestRetryPolicy:

    def test_defaults(self):
        policy = RetryPolicy()
        assert policy.max_attempts == 3
        assert policy.backoff_seconds == 0.25
        assert policy.transaction_timeout_seconds == 15.0

    def test_linear_backoff(self):
        policy = RetryPolicy(backoff_seconds=0.25)
        assert [policy.delay_after(n) for n in (1, 2, 3)] == [0.25, 0.5, 0.75]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_attempts": 0},
            {"backoff_seconds": -1},
            {"transaction_timeout_seconds": 0},
        ],
    )
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            RetryPolicy(**kwargs)


class TestStockErrors:

    def test_insufficient_stock_default_message(self):
        exc = InsufficientStockError(
            product_id=uuid4(), department_id=uuid4(), available=3, required=4
        )
        assert exc.message == "Insufficient stock: have 3, need 4"
        assert str(exc) == exc.message
        assert exc.shortfalls == ()

    def test_stock_race_is_an_insufficient_stock_error(self):
        exc = StockRaceError(
            product_id=uuid4(), department_id=uuid4(), required=3, observed_available=2
        )
        assert isinstance(exc, InsufficientStockError)
        assert exc.code == "STOCK_RACE"
