"""aiogram handlers.

Inline queries feed the per-user live search page. Plain messages are converted once, without
debouncing, and answered with a single line (or a usage hint).
"""

from __future__ import annotations

import logging
from time import monotonic

from aiogram import Bot
from aiogram.types import InlineQuery, Message

from src.app import App
from src.query.parser import parse_query
from src.rates.client import RatesClientError
from src.search.fallback import convert_single

logger = logging.getLogger(__name__)

USAGE_TEXT = (
    "Send an amount and currencies, e.g. `100 usd to eur`, `100usd`, or `usd eur`.\n"
    "Type @<bot> followed by a query in any chat for live results."
)
RATES_UNAVAILABLE_TEXT = "Exchange rates are unavailable right now, try again later."


def _is_command_text(text: str) -> bool:
    return text.lstrip().startswith("/")


async def handle_inline_query(inline_query: InlineQuery, bot: Bot, app: App) -> None:
    """Push an inline query edit into the user's live search session."""

    # noinspection PyBroadException
    try:
        session = app.sessions.get(bot, inline_query.from_user.id)
        session.update(inline_query.id, inline_query.query)
    except Exception:
        logger.exception("inline handler failed")


async def handle_message(message: Message, app: App) -> None:
    """Reply to a plain-text conversion request with a single converted amount."""

    started = monotonic()
    raw_text = message.text or message.caption or ""
    if not raw_text.strip() or _is_command_text(raw_text):
        await message.answer(USAGE_TEXT)
        return

    query = parse_query(raw_text)
    if query is None:
        await message.answer(USAGE_TEXT)
        return

    reply = RATES_UNAVAILABLE_TEXT
    # noinspection PyBroadException
    try:
        item = await convert_single(
            app.converter,
            query.model_copy(update={"amount": query.effective_amount}),
            raw_text,
            default_target=app.settings.default_target_currency,
        )
        if item.copy_text:
            reply = f"{item.title}\n{item.subtitle}" if item.subtitle else item.title
        else:
            reply = USAGE_TEXT

        latency_ms = int((monotonic() - started) * 1000)
        logger.info(
            "handled source=%s target=%s found=%s latency_ms=%d",
            query.source,
            query.target,
            bool(item.copy_text),
            latency_ms,
        )
    except RatesClientError as exc:
        latency_ms = int((monotonic() - started) * 1000)
        logger.info("rates unavailable reason=%s latency_ms=%d", exc, latency_ms)
    except Exception:
        logger.exception("handler failed")

    await message.answer(reply)
