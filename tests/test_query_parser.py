"""Tests for the conversion query expression parser."""

from __future__ import annotations

from decimal import Decimal

import pytest

from src.query.parser import parse_query


def test_parse_full_query() -> None:
    query = parse_query("100 usd to eur")
    assert query is not None
    assert query.amount == Decimal(100)
    assert query.source == "usd"
    assert query.target == "eur"


def test_parse_amount_glued_to_source() -> None:
    query = parse_query("100usd")
    assert query is not None
    assert query.amount == Decimal(100)
    assert query.source == "usd"
    assert query.target is None


def test_parse_rate_lookup_without_amount() -> None:
    query = parse_query("usd to eur")
    assert query is not None
    assert query.amount is None
    assert query.source == "usd"
    assert query.target == "eur"
    assert query.effective_amount == Decimal(1)


def test_trailing_to_means_default_target() -> None:
    query = parse_query("usd to")
    assert query is not None
    assert query.amount is None
    assert query.source == "usd"
    assert query.target is None


def test_thousands_separator_and_decimal_point() -> None:
    query = parse_query("1,234.5 usd")
    assert query is not None
    assert query.amount == Decimal("1234.5")
    assert query.source == "usd"
    assert query.target is None


def test_bare_second_token_is_target() -> None:
    query = parse_query("  5 gbp jpy  ")
    assert query is not None
    assert query.amount == Decimal(5)
    assert (query.source, query.target) == ("gbp", "jpy")


def test_to_keyword_is_case_insensitive() -> None:
    query = parse_query("10 USD TO EUR")
    assert query is not None
    assert (query.source, query.target) == ("USD", "EUR")


def test_code_starting_with_to_is_not_the_keyword() -> None:
    query = parse_query("100 usd top")
    assert query is not None
    assert query.target == "top"


def test_decimal_without_leading_digit() -> None:
    query = parse_query(".5 btc")
    assert query is not None
    assert query.amount == Decimal("0.5")


@pytest.mark.parametrize(
    "text",
    [
        "",
        "   ",
        "100",
        "usd to eur now",
        "100 usd-eur",
        "1.2.3 usd",
        "$100",
        "100 usd to eur!",
    ],
)
def test_unparseable_inputs(text: str) -> None:
    assert parse_query(text) is None


@pytest.mark.parametrize(
    ("text", "amount", "source", "target"),
    [
        ("  100 usd to eur", Decimal(100), "usd", "eur"),
        (" 5 gbp jpy", Decimal(5), "gbp", "jpy"),
        (" 100usd", Decimal(100), "usd", None),
        ("\t1,000 eur ", Decimal(1000), "eur", None),
    ],
)
def test_leading_whitespace_before_amount(
        text: str, amount: Decimal, source: str, target: str | None
) -> None:
    query = parse_query(text)
    assert query is not None
    assert query.amount == amount
    assert query.source == source
    assert query.target == target
