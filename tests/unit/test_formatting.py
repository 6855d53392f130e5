"""Unit tests for accounting and quantity formatting."""

import math

import pytest

from src.pt_common.formatting import format_accounting, format_quantity


class TestFormatAccounting:
    def test_zero(self) -> None:
        assert format_accounting(0) == "$0.00"

    def test_half_cent_negative_rounds_away_from_zero(self) -> None:
        assert format_accounting(-0.005) == "($0.01)"

    def test_negative_rounding_to_zero_has_no_parentheses(self) -> None:
        assert format_accounting(-0.004) == "$0.00"

    def test_half_cent_positive_rounds_up(self) -> None:
        assert format_accounting(0.005) == "$0.01"

    def test_grouping(self) -> None:
        assert format_accounting(1234567.891) == "$1,234,567.89"

    def test_negative_in_parentheses(self) -> None:
        assert format_accounting(-1234.5) == "($1,234.50)"

    def test_without_currency_symbol(self) -> None:
        assert format_accounting(-12.3, is_currency=False) == "(12.30)"

    def test_numeric_string(self) -> None:
        assert format_accounting("42.1") == "$42.10"

    @pytest.mark.parametrize("value", [None, math.nan, "abc", "", math.inf])
    def test_invalid_input_is_empty(self, value: object) -> None:
        assert format_accounting(value) == ""


class TestFormatQuantity:
    def test_integer_has_no_decimals(self) -> None:
        assert format_quantity(100) == "100"

    def test_integer_valued_float(self) -> None:
        assert format_quantity(1500.0) == "1,500"

    def test_fraction_trailing_zeros_dropped(self) -> None:
        assert format_quantity(1234.5) == "1,234.5"

    def test_rounds_to_five_places(self) -> None:
        assert format_quantity(0.123456) == "0.12346"

    def test_invalid_is_empty(self) -> None:
        assert format_quantity(None) == ""
