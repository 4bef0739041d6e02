"""Tests for amount parsing."""

from decimal import Decimal

import pytest

from contave.utils.amount_parser import parse_amount


@pytest.mark.parametrize(
    "value, expected",
    [
        ("123.45", Decimal("123.45")),
        ("1,234.56", Decimal("1234.56")),
        ("1.234,56", Decimal("1234.56")),
        ("125.500,00", Decimal("125500.00")),
        ("Bs. 123,45", Decimal("123.45")),
        ("VES 10", Decimal("10")),
        ("$123.45", Decimal("123.45")),
        ("(50.00)", Decimal("-50.00")),
        ("", Decimal("0")),
        (None, Decimal("0")),
        (7, Decimal("7")),
        (0.1, Decimal("0.1")),
        (Decimal("3.48"), Decimal("3.48")),
    ],
)
def test_parse_amount(value, expected):
    assert parse_amount(value) == expected


@pytest.mark.parametrize("value", ["abc", "nan", "12..3", True])
def test_parse_amount_invalid(value):
    with pytest.raises(ValueError):
        parse_amount(value)
