"""Unit tests for the Product aggregate and stock classification."""

import pytest

from stockkeeper.domain.exceptions import ValidationError
from stockkeeper.domain.model.product import (
    Product,
    StockStatus,
    classify_stock,
    validate_thresholds,
)
from stockkeeper.domain.model.value_objects import Money


def _product(quantity: int = 10, **kwargs) -> Product:
    return Product(id="1", name="Rice", price=Money.of("2.00"), available_quantity=quantity, **kwargs)


class TestCreate:

    def test_strips_name_and_sets_restock_time(self):
        p = Product.create("1", "  Rice ", Money.of("2.00"), initial_quantity=4)
        assert p.name == "Rice"
        assert p.available_quantity == 4
        assert p.last_restocked is not None

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError, match="name is required"):
            Product.create("1", "   ", Money.of("1.00"))

    def test_long_name_rejected(self):
        with pytest.raises(ValidationError, match="cannot exceed 100"):
            Product.create("1", "x" * 101, Money.of("1.00"))

    def test_negative_stock_rejected(self):
        with pytest.raises(ValidationError, match="non-negative"):
            Product.create("1", "Rice", Money.of("1.00"), initial_quantity=-1)

    def test_bad_thresholds_rejected(self):
        with pytest.raises(ValidationError, match="greater than maximum"):
            Product.create("1", "Rice", Money.of("1.00"), min_threshold=50, max_threshold=10)


class TestStockStatus:

    @pytest.mark.parametrize(
        "quantity, expected",
        [
            (0, StockStatus.OUT_OF_STOCK),
            (5, StockStatus.LOW_STOCK),
            (6, StockStatus.IN_STOCK),
            (1000, StockStatus.OVERSTOCK),
        ],
    )
    def test_classification_boundaries(self, quantity, expected):
        assert classify_stock(quantity, 5, 1000) == expected

    def test_product_uses_its_own_thresholds(self):
        assert _product(8, min_threshold=10).stock_status == StockStatus.LOW_STOCK
        assert _product(8, max_threshold=8).stock_status == StockStatus.OVERSTOCK


class TestActiveFlag:

    def test_unset_flag_counts_as_active(self):
        p = _product(is_active=None)
        assert p.active
        assert p.is_available

    def test_inactive_product_is_not_available_or_low(self):
        p = _product(0, is_active=False)
        assert not p.is_available
        assert not p.is_low_stock

    def test_stock_value(self):
        assert _product(3).stock_value == Money.of("6.00")


class TestValidateThresholds:

    def test_negative_minimum_rejected(self):
        with pytest.raises(ValidationError, match="cannot be negative"):
            validate_thresholds(-1, 10)

    def test_zero_maximum_rejected(self):
        with pytest.raises(ValidationError, match="at least 1"):
            validate_thresholds(0, 0)

    def test_equal_thresholds_allowed(self):
        validate_thresholds(10, 10)
