"""Single-result fallback item.

The fallback item reacts to any top-level query that starts with a digit and shows one
conversion into the explicit target or the configured default target.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from src.query.schema import ParsedQuery
from src.rates.client import Converter
from src.search.pipeline import DEFAULT_DEBOUNCE_S, DebouncedSearch, SearchSnapshot
from src.search.scope import CancellationScope

APP_DESCRIPTION = "Convert currencies, e.g. 100 usd to eur"
FALLBACK_TARGET = "USD"


@dataclass(frozen=True)
class FallbackItem:
    title: str = ""
    subtitle: str | None = ""
    copy_text: str | None = None


def usage_item(text: str) -> FallbackItem:
    """Echo the raw text with the usage hint."""

    return FallbackItem(title=text, subtitle=APP_DESCRIPTION)


async def convert_single(
        converter: Converter,
        query: ParsedQuery,
        text: str,
        *,
        default_target: str | None = None,
        scope: CancellationScope | None = None,
) -> FallbackItem:
    """Convert `query` into exactly one target.

    Queries without an amount, or for which the API knows no rate, echo the raw text with the
    usage hint instead of a conversion.
    """

    if query.amount is None:
        return usage_item(text)

    target = query.target or default_target or FALLBACK_TARGET
    result = await converter.exchange(query.amount, query.source, [target], scope)
    if not result.rates:
        return usage_item(text)

    rate = result.rates[0]
    return FallbackItem(title=rate.label, subtitle=f"Updated {rate.date}", copy_text=rate.label)


class FallbackConverterItem:
    """A single-line result that follows the top-level query."""

    def __init__(
            self,
            converter: Converter,
            *,
            default_target: str | None = FALLBACK_TARGET,
            on_changed: Callable[[FallbackConverterItem], None] | None = None,
            debounce_s: float = DEFAULT_DEBOUNCE_S,
    ) -> None:
        self.title = ""
        self.subtitle: str | None = APP_DESCRIPTION
        self.copy_text: str | None = None

        self._converter = converter
        self._default_target = default_target
        self._on_changed = on_changed
        self._search: DebouncedSearch[FallbackItem] = DebouncedSearch(
            self._convert,
            FallbackItem(),
            on_results=self._apply,
            debounce_s=debounce_s,
            unparsed=usage_item,
        )

    def update_query(self, query: str) -> None:
        if query[:1].isdecimal():
            self._search.submit(query)
            self.title = query
        else:
            self._search.submit("")
            self.title = ""

    def close(self) -> None:
        self._search.close()

    async def join(self) -> None:
        await self._search.join()

    async def _convert(self, query: ParsedQuery, scope: CancellationScope) -> FallbackItem:
        return await convert_single(
            self._converter,
            query,
            scope.request.text,
            default_target=self._default_target,
            scope=scope,
        )

    def _apply(self, snapshot: SearchSnapshot[FallbackItem]) -> None:
        if snapshot.failed:
            self.title = ""
            self.subtitle = ""
            self.copy_text = None
        else:
            item = snapshot.result
            self.title = item.title
            if item.subtitle is not None:
                self.subtitle = item.subtitle
            self.copy_text = item.copy_text or None

        if self._on_changed is not None:
            self._on_changed(self)
