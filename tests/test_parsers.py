"""Tests for amount and date parsing."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from shelby.domain.errors import InvalidAmount, ValidationError
from shelby.utils.amount_parser import parse_amount, to_amount
from shelby.utils.date_parser import get_date_range, parse_date


@pytest.mark.parametrize(
    "text, expected",
    [
        ("123.45", Decimal("123.45")),
        ("-123.45", Decimal("-123.45")),
        ("€123.45", Decimal("123.45")),
        ("1,234.56", Decimal("1234.56")),
        ("12,50", Decimal("12.50")),
        ("(99.00)", Decimal("-99.00")),
    ],
)
def test_parse_amount(text, expected):
    assert parse_amount(text) == expected


@pytest.mark.parametrize("text", ["", "   ", "abc", "1.2.3"])
def test_parse_amount_invalid(text):
    with pytest.raises(InvalidAmount):
        parse_amount(text)


def test_to_amount_normalizes_to_cents():
    assert str(to_amount(Decimal("5"))) == "5.00"
    assert str(to_amount(7)) == "7.00"
    assert str(to_amount("-0.5")) == "-0.50"


@pytest.mark.parametrize(
    "value",
    [
        0,
        "0.00",
        Decimal("0.001"),
        Decimal("-Infinity"),
        2.5,
        True,
        None,
        "1e30",
        "100000000000000000",
        "92233720368547758.08",
        Decimal("-1000000000000000"),
    ],
)
def test_to_amount_rejects(value):
    with pytest.raises(InvalidAmount):
        to_amount(value)


def test_to_amount_accepts_largest_amount():
    assert to_amount("-999999999999999.99") == Decimal("-999999999999999.99")


def test_parse_date_formats():
    assert parse_date("2026-03-01") == date(2026, 3, 1)
    assert parse_date("01.03.2026") == date(2026, 3, 1)
    assert parse_date("today") == date.today()
    assert parse_date("yesterday") == date.today() - timedelta(days=1)


def test_parse_date_invalid():
    with pytest.raises(ValidationError):
        parse_date("xyzzy")


def test_get_date_range_this_year():
    start, end = get_date_range("this-year")
    assert start == date(date.today().year, 1, 1)
    assert end == date.today()


def test_get_date_range_unknown():
    with pytest.raises(ValidationError):
        get_date_range("fortnight")
