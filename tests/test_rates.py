"""Tests for the rates client decoding, conversion and formatting."""

from __future__ import annotations

from decimal import Decimal

import pytest

from src.rates import client as rates_client
from src.rates.client import Converter, RatesClientError, parse_currency_data, select_rates
from src.rates.schema import CurrencyRate, humanize
from src.search.scope import CancellationScope, SearchCancelled, SearchRequest

_BODY = b'{"date": "2025-01-31", "usd": {"eur": 0.96, "jpy": 155, "btc": 0.0000101}}'


def test_parse_currency_data_reads_date_and_rates() -> None:
    date, rates = parse_currency_data(_BODY)
    assert date == "2025-01-31"
    assert rates == {
        "eur": Decimal("0.96"),
        "jpy": Decimal("155"),
        "btc": Decimal("0.0000101"),
    }


@pytest.mark.parametrize("body", [b"not json", b"[1, 2]", b'{"date": "x", "usd": 5}'])
def test_parse_currency_data_rejects_malformed(body: bytes) -> None:
    with pytest.raises(RatesClientError):
        parse_currency_data(body)


def test_select_rates_keeps_request_order_case_insensitively() -> None:
    _, rates = parse_currency_data(_BODY)
    selected = select_rates(Decimal(2), "2025-01-31", rates, ["JPY", "xxx", "EUR", "jpy"])
    assert [r.code for r in selected] == ["jpy", "eur"]
    assert selected[0].amount == Decimal(310)
    assert selected[1].label == "1.92 EUR"


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("100", "100"),
        ("100.000", "100"),
        ("1.5", "1.5"),
        ("0.333333", "0.33"),
        ("2.999", "3"),
        ("1.125", "1.13"),
        ("-1.255", "-1.26"),
        ("0.00123", "0.00123"),
    ],
)
def test_humanize(value: str, expected: str) -> None:
    assert humanize(Decimal(value)) == expected


def test_currency_rate_label_upper_cases_code() -> None:
    rate = CurrencyRate(amount=Decimal("96.00"), code="eur", date="2025-01-31")
    assert rate.label == "96 EUR"


@pytest.mark.asyncio
async def test_exchange_fetches_source_document(monkeypatch: pytest.MonkeyPatch) -> None:
    urls: list[str] = []

    def _fake_fetch(url: str, _timeout_s: float) -> bytes:
        urls.append(url)
        return _BODY

    monkeypatch.setattr(rates_client, "_fetch", _fake_fetch)
    converter = Converter("https://rates.example/v1/")

    result = await converter.exchange(Decimal(100), "USD", ["EUR"])

    assert urls == ["https://rates.example/v1/currencies/usd.min.json"]
    assert result.date == "2025-01-31"
    assert [r.label for r in result.rates] == ["96 EUR"]


@pytest.mark.asyncio
async def test_exchange_propagates_fetch_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    def _failing_fetch(_url: str, _timeout_s: float) -> bytes:
        raise RatesClientError("rates HTTP error: 404")

    monkeypatch.setattr(rates_client, "_fetch", _failing_fetch)

    with pytest.raises(RatesClientError):
        await Converter().exchange(Decimal(1), "xyz", ["usd"])


@pytest.mark.asyncio
async def test_exchange_does_not_fetch_for_cancelled_scope(monkeypatch: pytest.MonkeyPatch) -> None:
    def _unexpected_fetch(_url: str, _timeout_s: float) -> bytes:
        raise AssertionError("fetch must not run for a cancelled scope")

    monkeypatch.setattr(rates_client, "_fetch", _unexpected_fetch)
    scope = CancellationScope(SearchRequest(generation=1, text="1 usd"))
    scope.cancel()

    with pytest.raises(SearchCancelled):
        await Converter().exchange(Decimal(1), "usd", ["eur"], scope)


@pytest.mark.asyncio
async def test_exchange_discards_response_after_cancellation(
        monkeypatch: pytest.MonkeyPatch,
) -> None:
    scope = CancellationScope(SearchRequest(generation=1, text="1 usd"))

    def _fetch_then_supersede(_url: str, _timeout_s: float) -> bytes:
        scope.cancel()
        return _BODY

    monkeypatch.setattr(rates_client, "_fetch", _fetch_then_supersede)

    with pytest.raises(SearchCancelled):
        await Converter().exchange(Decimal(1), "usd", ["eur"], scope)


def test_humanize_amount_wider_than_default_precision() -> None:
    assert humanize(Decimal("1234567890123456789012345678.25")) == "1234567890123456789012345678.25"

    converted = Decimal("123456789012345678901234567.5") * Decimal("0.96")
    assert humanize(converted) == "118518517451851851745185184.8"
