"""Bot router composition."""

from __future__ import annotations

from aiogram import Router

from src.bot.handlers import handle_inline_query, handle_message

router = Router(name="root")
router.inline_query.register(handle_inline_query)
router.message.register(handle_message)
