"""Multi-result list page.

Every query is converted into the requested (or default) target plus a fixed set of popular fiat
currencies and crypto tokens, so the user sees a short list while typing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from src.query.schema import ParsedQuery
from src.rates.client import Converter
from src.search.pipeline import DEFAULT_DEBOUNCE_S, DebouncedSearch, SearchSnapshot
from src.search.scope import CancellationScope

logger = logging.getLogger(__name__)

APP_NAME = "Currency Converter"

# Most traded currencies.
POPULAR_CURRENCIES: tuple[str, ...] = ("USD", "EUR", "JPY", "GBP", "CNY")

# Largest tokens by market cap.
POPULAR_CRYPTO: tuple[str, ...] = ("BTC", "ETH", "USDT", "XRP", "BNB")


@dataclass(frozen=True)
class ListingItem:
    """One row of the list: `title` is shown, `copy_text` is what the row copies."""

    title: str
    copy_text: str
    code: str


@dataclass(frozen=True)
class ConverterListing:
    title: str = APP_NAME
    items: tuple[ListingItem, ...] = ()


EMPTY_LISTING = ConverterListing()


def build_targets(query: ParsedQuery, default_target: str | None) -> list[str]:
    """Return target codes in display order, without the source and without duplicates."""

    first = query.target or default_target
    candidates = ([first] if first else []) + list(POPULAR_CURRENCIES) + list(POPULAR_CRYPTO)

    targets: list[str] = []
    seen = {query.source.upper()}
    for code in candidates:
        key = code.upper()
        if key in seen:
            continue
        seen.add(key)
        targets.append(code)
    return targets


class ConverterPage:
    """Live list of conversions for the text typed into a search box."""

    def __init__(
            self,
            converter: Converter,
            *,
            default_target: str | None = "USD",
            on_changed: Callable[[SearchSnapshot[ConverterListing]], None] | None = None,
            on_loading: Callable[[bool], None] | None = None,
            debounce_s: float = DEFAULT_DEBOUNCE_S,
    ) -> None:
        self._converter = converter
        self._default_target = default_target
        self._search: DebouncedSearch[ConverterListing] = DebouncedSearch(
            self._convert,
            EMPTY_LISTING,
            on_results=on_changed,
            on_loading=on_loading,
            debounce_s=debounce_s,
        )

    def update_search_text(self, text: str) -> None:
        self._search.submit(text)

    @property
    def listing(self) -> ConverterListing:
        return self._search.current_result()

    @property
    def is_loading(self) -> bool:
        return self._search.is_loading

    def snapshot(self) -> SearchSnapshot[ConverterListing]:
        return self._search.snapshot()

    def close(self) -> None:
        self._search.close()

    async def join(self) -> None:
        await self._search.join()

    async def _convert(self, query: ParsedQuery, scope: CancellationScope) -> ConverterListing:
        targets = build_targets(query, self._default_target)
        result = await self._converter.exchange(
            query.effective_amount, query.source, targets, scope
        )
        if not result.rates:
            return EMPTY_LISTING

        items = tuple(
            ListingItem(title=rate.label, copy_text=rate.humanized, code=rate.code.upper())
            for rate in result.rates
        )
        logger.debug("listing source=%s items=%d", query.source, len(items))
        return ConverterListing(title=f"Updated {result.date}", items=items)
