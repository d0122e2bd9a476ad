"""Tests for money helpers and spec parsing."""

from decimal import Decimal

import pytest

from schoolcart.errors import InvalidLineSpecError
from schoolcart.utils import (
    format_money,
    money_to_json,
    normalise_code,
    number_to_json,
    parse_justification_spec,
    parse_line_spec,
    round2,
    to_decimal,
)


class TestRound2:
    def test_half_up(self):
        assert round2(Decimal("1.005")) == Decimal("1.01")
        assert round2(1.005) == Decimal("1.01")
        assert round2(Decimal("2.675")) == Decimal("2.68")

    def test_half_away_from_zero_for_negatives(self):
        assert round2(Decimal("-1.005")) == Decimal("-1.01")

    def test_ints_and_strings(self):
        assert round2(3) == Decimal("3.00")
        assert round2("4.444") == Decimal("4.44")

    @pytest.mark.parametrize("garbage", [None, "abc", float("nan"), float("inf"), True, [1]])
    def test_garbage_gives_zero(self, garbage):
        assert round2(garbage) == Decimal("0.00")

    def test_large_amounts_keep_every_digit(self):
        huge = Decimal("12345678901234567890123456789.125")
        assert round2(huge) == Decimal("12345678901234567890123456789.13")


class TestToDecimal:
    def test_float_uses_short_repr(self):
        assert to_decimal(9.99) == Decimal("9.99")

    def test_decimal_passthrough(self):
        value = Decimal("1.23")
        assert to_decimal(value) is value


class TestMoneyFormatting:
    def test_money_to_json_keeps_integers(self):
        assert money_to_json(Decimal("12.00")) == 12
        assert isinstance(money_to_json(Decimal("12.00")), int)

    def test_money_to_json_fractional(self):
        assert money_to_json(Decimal("9.5")) == 9.5

    def test_number_to_json_does_not_round(self):
        assert number_to_json(Decimal("33.333")) == 33.333
        assert number_to_json(Decimal("50")) == 50
        assert isinstance(number_to_json(Decimal("50.0")), int)

    def test_format_money(self):
        assert format_money(Decimal("12.3")) == "S$12.30"
        assert format_money(Decimal("1234.5")) == "S$1,234.50"
        assert format_money(Decimal("-1.05")) == "-S$1.05"


def test_normalise_code():
    assert normalise_code("  Save10 ") == "save10"


class TestParseLineSpec:
    def test_explicit_quantity(self):
        assert parse_line_spec("PEN=3") == ("PEN", 3)

    def test_default_quantity(self):
        assert parse_line_spec("BOOK-A") == ("BOOK-A", 1)

    def test_negative_quantity_allowed(self):
        assert parse_line_spec("PEN=-2") == ("PEN", -2)

    @pytest.mark.parametrize("spec", ["", "=3", "PEN=x", "PEN=1=2", "two words"])
    def test_invalid(self, spec):
        with pytest.raises(InvalidLineSpecError):
            parse_line_spec(spec)


class TestParseJustificationSpec:
    def test_splits_on_first_equals(self):
        assert parse_justification_spec("PEN= need it = now ") == ("PEN", "need it = now")

    @pytest.mark.parametrize("spec", ["PEN", "=reason", "PEN=  "])
    def test_invalid(self, spec):
        with pytest.raises(InvalidLineSpecError):
            parse_justification_spec(spec)
