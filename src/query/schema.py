"""Parsed conversion query (Pydantic model).

This model is the contract between the expression parser and the search variants. It is frozen:
a query never changes after parsing.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ParsedQuery(BaseModel):
    """A structured conversion request: optional amount, source code, optional target code."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    amount: Decimal | None = None
    source: str = Field(min_length=1)
    target: str | None = None

    @field_validator("source", "target")
    @classmethod
    def validate_code(cls, value: str | None) -> str | None:
        """Currency codes are alphanumeric tokens."""

        if value is not None and not value.isalnum():
            raise ValueError("currency code must be alphanumeric")
        return value

    @property
    def effective_amount(self) -> Decimal:
        """Amount to convert; a bare `usd to eur` query is a rate lookup for 1 unit."""

        return self.amount if self.amount is not None else Decimal(1)
