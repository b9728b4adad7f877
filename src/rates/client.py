"""Exchange-rate client.

Rates come from the free fawazahmed0 currency API, one JSON document per source currency:

    {"date": "2025-01-31", "usd": {"eur": 0.96, "jpy": 154.9, ...}}

The HTTP call is a blocking `urllib` request run in a worker thread. The search scope is checked
before the request and after the response, so a superseded search never returns a result.
"""

from __future__ import annotations

import asyncio
import json
import logging
from decimal import Decimal
from typing import Sequence
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from src.rates.schema import ConversionResult, CurrencyRate
from src.search.scope import CancellationScope

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://cdn.jsdelivr.net/npm/@fawazahmed0/currency-api@latest/v1"


class RatesClientError(RuntimeError):
    """Raised when exchange rates cannot be fetched or decoded."""


def parse_currency_data(body: bytes | str) -> tuple[str, dict[str, Decimal]]:
    """Decode a rates document into `(date, {code_lower: rate})`.

    The first non-`date` object in the document holds the rates; its key is the source code.
    """

    try:
        decoded = json.loads(body, parse_float=Decimal, parse_int=Decimal)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise RatesClientError("rates response is not valid JSON") from exc

    if not isinstance(decoded, dict):
        raise RatesClientError("rates response must be a JSON object")

    date = decoded.get("date")
    date = date if isinstance(date, str) else ""

    rates: dict[str, Decimal] = {}
    for key, value in decoded.items():
        if key == "date":
            continue
        if not isinstance(value, dict):
            raise RatesClientError(f"unexpected rates payload under {key!r}")
        for code, rate in value.items():
            if isinstance(rate, Decimal):
                rates[str(code).lower()] = rate
        break

    return date, rates


def select_rates(
        amount: Decimal,
        date: str,
        rates: dict[str, Decimal],
        targets: Sequence[str],
) -> tuple[CurrencyRate, ...]:
    """Convert `amount` into each known target, keeping the order of `targets`."""

    selected: list[CurrencyRate] = []
    seen: set[str] = set()
    for target in targets:
        code = target.lower()
        if code in seen or code not in rates:
            continue
        seen.add(code)
        selected.append(CurrencyRate(amount=amount * rates[code], code=code, date=date))
    return tuple(selected)


def _fetch(url: str, timeout_s: float) -> bytes:
    req = Request(url, method="GET", headers={"Accept": "application/json"})
    try:
        with urlopen(req, timeout=timeout_s) as resp:  # noqa: S310 (fixed https API base)
            return resp.read()
    except HTTPError as exc:
        raise RatesClientError(f"rates HTTP error: {exc.code}") from exc
    except (URLError, TimeoutError) as exc:
        raise RatesClientError("rates connection error") from exc


class Converter:
    """Convert amounts between currencies using the rates API."""

    def __init__(self, api_base: str = DEFAULT_API_BASE, *, timeout_s: float = 10.0) -> None:
        self.api_base = api_base.rstrip("/")
        self.timeout_s = timeout_s

    def rates_url(self, source: str) -> str:
        return f"{self.api_base}/currencies/{quote(source.lower())}.min.json"

    async def fetch_rates(self, source: str) -> tuple[str, dict[str, Decimal]]:
        """Fetch and decode the rates document for `source`."""

        url = self.rates_url(source)
        body = await asyncio.to_thread(_fetch, url, self.timeout_s)
        return parse_currency_data(body)

    async def exchange(
            self,
            amount: Decimal,
            source: str,
            targets: Sequence[str],
            scope: CancellationScope | None = None,
    ) -> ConversionResult:
        """Convert `amount` of `source` into every target the API knows about.

        Raises:
            RatesClientError: On HTTP, network or decoding failures.
            SearchCancelled: If `scope` is cancelled before or during the request.
        """

        if scope is not None:
            scope.raise_if_cancelled()

        try:
            date, rates = await self.fetch_rates(source)
        except RatesClientError:
            logger.info("rates fetch failed source=%s", source)
            raise

        if scope is not None:
            scope.raise_if_cancelled()

        return ConversionResult(date=date, rates=select_rates(amount, date, rates, targets))
