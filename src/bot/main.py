"""Bot process entrypoint."""

from __future__ import annotations

import asyncio
import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties

from src.app import create_app
from src.bot.router import router
from src.config.logging import configure_logging
from src.config.settings import load_settings

logger = logging.getLogger(__name__)


async def main() -> None:
    """Run the Telegram bot polling loop."""

    settings = load_settings()
    configure_logging()

    app = create_app(settings)

    bot = Bot(token=settings.telegram_bot_token, default=DefaultBotProperties(parse_mode=None))
    dp = Dispatcher()
    dp.include_router(router)

    try:
        await dp.start_polling(bot, app=app)
    finally:
        logger.info("shutting down")
        app.sessions.close()
        await bot.session.close()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
