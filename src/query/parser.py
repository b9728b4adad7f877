"""Expression parser for conversion queries.

Grammar (keywords are case-insensitive):

    query  := ws? amount? ws? source (ws? "to" ws? target? | ws? target?)? ws?
    amount := digits with at most one "." and "," thousands separators
    source := alnum+
    target := alnum+

The parser is a single left-to-right scan without a lexer. It never returns a partial match:
anything it cannot consume makes the whole input unparseable.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from src.query.schema import ParsedQuery

_TO_KEYWORD = "to"


def _skip_whitespace(text: str, i: int) -> int:
    while i < len(text) and text[i].isspace():
        i += 1
    return i


def _scan_alnum(text: str, i: int) -> int:
    while i < len(text) and text[i].isalnum():
        i += 1
    return i


def _scan_amount(text: str, i: int) -> tuple[int, bool]:
    """Return the end of the amount-like prefix and whether it contains a digit."""

    has_digit = False
    has_point = False
    while i < len(text):
        ch = text[i]
        if ch.isdecimal():
            has_digit = True
        elif ch == "." and not has_point:
            has_point = True
        elif ch == "," and has_digit:
            pass
        else:
            break
        i += 1
    return i, has_digit


def _at_to_keyword(text: str, i: int) -> bool:
    end = i + len(_TO_KEYWORD)
    if text[i:end].lower() != _TO_KEYWORD:
        return False
    # "toman" or "ton" are currency codes, not the keyword.
    return end == len(text) or text[end].isspace()


def parse_query(text: str) -> ParsedQuery | None:
    """Parse `text` into a `ParsedQuery`, or return `None` if it does not match the grammar."""

    if not text or text.isspace():
        return None

    amount: Decimal | None = None
    amount_start = _skip_whitespace(text, 0)
    i, has_digit = _scan_amount(text, amount_start)
    if has_digit:
        try:
            amount = Decimal(text[amount_start:i].replace(",", ""))
        except InvalidOperation:
            return None
        if not amount.is_finite():
            return None

    i = _skip_whitespace(text, i)
    source_start = i
    i = _scan_alnum(text, i)
    if i == source_start:
        return None
    source = text[source_start:i]

    i = _skip_whitespace(text, i)
    if i < len(text) and _at_to_keyword(text, i):
        i += len(_TO_KEYWORD)
        if i == len(text):
            return ParsedQuery(amount=amount, source=source)
        i = _skip_whitespace(text, i)

    target: str | None = None
    target_start = i
    i = _scan_alnum(text, i)
    if i > target_start:
        target = text[target_start:i]

    if _skip_whitespace(text, i) < len(text):
        return None

    return ParsedQuery(amount=amount, source=source, target=target)
