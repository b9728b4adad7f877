"""Tests for the frozen `ParsedQuery` model."""

from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from src.query.schema import ParsedQuery


def test_parsed_query_is_frozen() -> None:
    query = ParsedQuery(amount=Decimal(1), source="usd")
    with pytest.raises(ValidationError):
        query.source = "eur"  # type: ignore[misc]


def test_parsed_query_rejects_non_alnum_codes() -> None:
    with pytest.raises(ValidationError):
        ParsedQuery(source="us-d")
    with pytest.raises(ValidationError):
        ParsedQuery(source="")
