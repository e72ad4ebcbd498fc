"""Configuration for Telegram integration using pydantic-settings."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.paths import PROJECT_ROOT

_ENV_FILE = PROJECT_ROOT / ".env"


class TelegramConfig(BaseSettings):
    """Configuration for Telegram integration.

    All settings are loaded from environment variables with the TELEGRAM_ prefix.

    :param bot_token: Telegram bot token from @BotFather.
    :param api_base_url: Bot API base URL (override for a local Bot API server).
    :param request_timeout: Timeout in seconds for a single API request.
    :param max_retries: Attempts made when the API rate limits the bot.
    """

    model_config = SettingsConfigDict(
        env_prefix="TELEGRAM_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    bot_token: str = Field(..., description="Bot token from @BotFather")
    api_base_url: str = Field(
        default="https://api.telegram.org",
        description="Bot API base URL",
    )
    request_timeout: int = Field(
        default=30,
        ge=1,
        le=120,
        description="Request timeout in seconds",
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts made when rate limited",
    )

    @field_validator("bot_token")
    @classmethod
    def validate_bot_token(cls, v: str) -> str:
        """Validate that the bot token is not blank.

        :param v: Raw token from environment.
        :returns: The stripped token.
        :raises ValueError: If the token is blank.
        """
        token = v.strip()
        if not token:
            raise ValueError("Bot token must not be empty. Set TELEGRAM_BOT_TOKEN.")
        return token

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalise the base URL.

        :param v: Raw base URL.
        :returns: The URL without a trailing slash.
        """
        return v.rstrip("/")


@lru_cache
def get_telegram_settings() -> TelegramConfig:
    """Get cached Telegram settings.

    Settings are loaded once and cached for the lifetime of the process.

    :returns: Configured TelegramConfig instance.
    """
    return TelegramConfig()  # type: ignore[call-arg]
