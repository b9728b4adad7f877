"""Conversion result models and amount formatting."""

from __future__ import annotations

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal, localcontext

from pydantic import BaseModel, ConfigDict

_CENT = Decimal("0.01")


def humanize(value: Decimal) -> str:
    """Format a converted amount for display.

    - Whole numbers are printed without a fractional part (`100`).
    - Amounts whose fractional part is below one cent are printed in full (`0.000123`).
    - Everything else is rounded half away from zero to at most two decimals (`1.5`, `0.33`).
    """

    if value == value.to_integral_value():
        return f"{value:.0f}"

    magnitude = abs(value)
    fraction = magnitude - magnitude.to_integral_value(rounding=ROUND_FLOOR)
    if Decimal(0) < fraction < _CENT:
        return f"{value.normalize():f}"

    # quantize() needs room for every integer digit plus the two decimals.
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        rounded = f"{value.quantize(_CENT, rounding=ROUND_HALF_UP):f}"
    return rounded.rstrip("0").rstrip(".")


class CurrencyRate(BaseModel):
    """A converted amount in one target currency."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    amount: Decimal
    code: str
    date: str

    @property
    def humanized(self) -> str:
        return humanize(self.amount)

    @property
    def label(self) -> str:
        return f"{self.humanized} {self.code.upper()}"


class ConversionResult(BaseModel):
    """Rates for the requested targets, in request order, as of `date`."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    date: str
    rates: tuple[CurrencyRate, ...] = ()
