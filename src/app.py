"""Application composition root.

This module wires together configuration, the rates client and the inline search sessions for
the bot runtime.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.bot.sessions import InlineSessions
from src.config.settings import Settings
from src.rates.client import Converter


@dataclass(frozen=True)
class App:
    """Shared application dependencies for handlers."""

    settings: Settings
    converter: Converter
    sessions: InlineSessions


def create_app(settings: Settings) -> App:
    """Create the application container.

    Note:
        Call `app.sessions.close()` at shutdown to cancel in-flight searches.
    """

    converter = Converter(settings.rates_api_base, timeout_s=settings.rates_timeout_s)
    sessions = InlineSessions(
        converter,
        default_target=settings.default_target_currency,
        debounce_s=settings.search_debounce_s,
        max_sessions=settings.inline_max_sessions,
    )
    return App(settings=settings, converter=converter, sessions=sessions)
