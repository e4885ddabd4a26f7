"""Unit tests for Money and Quantity value objects."""

from decimal import Decimal

import pytest

from stockkeeper.domain.exceptions import ValidationError
from stockkeeper.domain.model.value_objects import Money, Quantity


class TestMoney:

    def test_create_valid(self):
        m = Money(Decimal("10.50"))
        assert m.amount == Decimal("10.50")
        assert m.currency == "USD"

    def test_negative_rejected(self):
        with pytest.raises(ValidationError, match="cannot be negative"):
            Money(Decimal("-1"))

    def test_float_rejected(self):
        with pytest.raises(ValidationError, match="must be a Decimal"):
            Money(10.5)  # type: ignore[arg-type]

    def test_of_coerces_strings(self):
        assert Money.of("19.99").amount == Decimal("19.99")

    def test_of_rejects_garbage(self):
        with pytest.raises(ValidationError, match="Invalid money amount"):
            Money.of("twelve")

    def test_add_and_multiply(self):
        assert Money.of("2.50") + Money.of("1.25") == Money.of("3.75")
        assert Money.of("2.50") * 4 == Money.of("10.00")

    def test_mixed_currencies_rejected(self):
        with pytest.raises(ValidationError, match="Cannot combine"):
            Money.of("1", "USD") + Money.of("1", "EUR")

    def test_str_formats_two_decimals(self):
        assert str(Money.of("7")) == "$7.00"


class TestQuantity:

    def test_positive_accepted(self):
        assert Quantity(3).value == 3

    @pytest.mark.parametrize("value", [0, -2])
    def test_non_positive_rejected(self, value):
        with pytest.raises(ValidationError, match="must be positive"):
            Quantity(value)

    def test_bool_rejected(self):
        with pytest.raises(ValidationError, match="must be an integer"):
            Quantity(True)

    def test_float_rejected(self):
        with pytest.raises(ValidationError, match="must be an integer"):
            Quantity(1.5)  # type: ignore[arg-type]
