"""Per-user inline search sessions.

Telegram sends a new inline query for every edit of the inline text. Each user gets one
`ConverterPage`; every publish answers the most recent inline query whose text matches the
published round. Superseded inline queries are left unanswered and expire on Telegram's side.
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict

from aiogram import Bot
from aiogram.types import InlineQueryResultArticle, InputTextMessageContent

from src.rates.client import Converter
from src.search.page import ConverterListing, ConverterPage
from src.search.pipeline import DEFAULT_DEBOUNCE_S, SearchSnapshot

logger = logging.getLogger(__name__)

INLINE_CACHE_TIME_S = 0
DEFAULT_MAX_SESSIONS = 1024


def listing_to_articles(listing: ConverterListing) -> list[InlineQueryResultArticle]:
    """Render a listing as inline article results (one per converted currency)."""

    return [
        InlineQueryResultArticle(
            id=f"{idx}-{item.code}",
            title=item.title,
            description=listing.title,
            input_message_content=InputTextMessageContent(message_text=item.title),
        )
        for idx, item in enumerate(listing.items)
    ]


class InlineSession:
    """Live conversion list for one Telegram user."""

    def __init__(
            self,
            bot: Bot,
            converter: Converter,
            *,
            default_target: str | None,
            debounce_s: float = DEFAULT_DEBOUNCE_S,
    ) -> None:
        self._bot = bot
        self._query_id: str | None = None
        self._text: str | None = None
        self._tasks: set[asyncio.Task] = set()
        self.page = ConverterPage(
            converter,
            default_target=default_target,
            on_changed=self._on_changed,
            debounce_s=debounce_s,
        )

    def update(self, query_id: str, text: str) -> None:
        """Record the latest inline query and push its text into the page."""

        repeated = text == self._text
        self._query_id = query_id
        self._text = text

        if repeated:
            snapshot = self.page.snapshot()
            if not snapshot.is_loading and snapshot.text == text:
                self._schedule_answer(snapshot)
            return

        self.page.update_search_text(text)

    def close(self) -> None:
        self.page.close()
        for task in list(self._tasks):
            task.cancel()

    async def join(self) -> None:
        await self.page.join()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _on_changed(self, snapshot: SearchSnapshot[ConverterListing]) -> None:
        if snapshot.text != self._text:
            return
        self._schedule_answer(snapshot)

    def _schedule_answer(self, snapshot: SearchSnapshot[ConverterListing]) -> None:
        query_id, self._query_id = self._query_id, None
        if query_id is None:
            return

        task = asyncio.get_running_loop().create_task(self._answer(query_id, snapshot))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _answer(self, query_id: str, snapshot: SearchSnapshot[ConverterListing]) -> None:
        results = [] if snapshot.failed else listing_to_articles(snapshot.result)
        try:
            await self._bot.answer_inline_query(
                query_id,
                results=results,
                cache_time=INLINE_CACHE_TIME_S,
                is_personal=True,
            )
        except Exception:
            # Expired or superseded inline queries are rejected by Telegram; nothing to retry.
            logger.exception("answer_inline_query failed query_id=%s", query_id)


class InlineSessions:
    """Registry of inline sessions keyed by Telegram user id.

    At most `max_sessions` sessions are kept; the least recently used one is closed and dropped
    when a new user arrives at the cap.
    """

    def __init__(
            self,
            converter: Converter,
            *,
            default_target: str | None,
            debounce_s: float = DEFAULT_DEBOUNCE_S,
            max_sessions: int = DEFAULT_MAX_SESSIONS,
    ) -> None:
        if max_sessions < 1:
            raise ValueError("max_sessions must be >= 1")

        self._converter = converter
        self._default_target = default_target
        self._debounce_s = debounce_s
        self._max_sessions = max_sessions
        self._sessions: OrderedDict[int, InlineSession] = OrderedDict()

    def get(self, bot: Bot, user_id: int) -> InlineSession:
        session = self._sessions.get(user_id)
        if session is not None:
            self._sessions.move_to_end(user_id)
            return session

        while len(self._sessions) >= self._max_sessions:
            evicted_id, evicted = self._sessions.popitem(last=False)
            evicted.close()
            logger.debug("evicted inline session user_id=%s", evicted_id)

        session = InlineSession(
            bot,
            self._converter,
            default_target=self._default_target,
            debounce_s=self._debounce_s,
        )
        self._sessions[user_id] = session
        return session

    def __len__(self) -> int:
        return len(self._sessions)

    def close(self) -> None:
        """Close every session. Idempotent."""

        for session in self._sessions.values():
            session.close()
        self._sessions.clear()
