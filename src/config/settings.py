"""Environment configuration and validation.

This module defines strongly-typed application settings loaded from environment variables
(optionally via a local `.env` file).
"""

from __future__ import annotations

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.rates.client import DEFAULT_API_BASE


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    telegram_bot_token: str = Field(alias="TELEGRAM_BOT_TOKEN")

    default_target_currency: str = Field(default="USD", alias="DEFAULT_TARGET_CURRENCY")
    search_debounce_ms: int = Field(default=300, alias="SEARCH_DEBOUNCE_MS", gt=0)
    inline_max_sessions: int = Field(default=1024, alias="INLINE_MAX_SESSIONS", ge=1)

    rates_api_base: str = Field(default=DEFAULT_API_BASE, alias="RATES_API_BASE")
    rates_timeout_s: float = Field(default=10.0, alias="RATES_TIMEOUT_S", gt=0)

    @field_validator("default_target_currency")
    @classmethod
    def validate_currency_code(cls, value: str) -> str:
        """Validate the default target is a currency code and upper-case it."""

        code = value.strip()
        if not code or not code.isalnum():
            raise ValueError("DEFAULT_TARGET_CURRENCY must be an alphanumeric currency code")
        return code.upper()

    @field_validator("rates_api_base")
    @classmethod
    def validate_api_base(cls, value: str) -> str:
        if not value.startswith(("https://", "http://")):
            raise ValueError("RATES_API_BASE must be an http(s) URL")
        return value.rstrip("/")

    @property
    def search_debounce_s(self) -> float:
        return self.search_debounce_ms / 1000


def load_settings() -> Settings:
    """Load and validate settings from environment variables.

    Raises:
        RuntimeError: If the environment configuration is missing or invalid.
    """

    try:
        return Settings()
    except ValidationError as exc:
        raise RuntimeError(f"Invalid environment configuration: {exc}") from exc
