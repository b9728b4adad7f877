"""Logging configuration for the bot service.

Two knobs are read from the environment:
    - `LOG_LEVEL`: root level for the process (default INFO).
    - `SEARCH_LOG_LEVEL`: level for the live-search loggers only, so debounce and cancellation
      traces can be enabled without turning on aiogram's DEBUG output.
"""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Loggers that trace individual search rounds (debounce, supersede, eviction).
SEARCH_LOGGERS: tuple[str, ...] = ("src.search", "src.bot.sessions")

QUIET_LOGGERS: tuple[str, ...] = ("aiogram.event", "aiohttp.access")


def _level(name: str) -> int:
    """Resolve a level name like `debug` or `WARNING`, rejecting unknown names."""

    value = logging.getLevelName(name.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"unknown log level: {name!r}")
    return value


def configure_logging(level: str | None = None, *, search_level: str | None = None) -> None:
    """Configure process logging once at startup."""

    root_level = _level(level or os.getenv("LOG_LEVEL") or "INFO")
    logging.basicConfig(level=root_level, format=LOG_FORMAT)

    search_level = search_level or os.getenv("SEARCH_LOG_LEVEL")
    if search_level:
        for name in SEARCH_LOGGERS:
            logging.getLogger(name).setLevel(_level(search_level))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(root_level, logging.WARNING))
