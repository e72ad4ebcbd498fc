"""Telegram utilities."""

from src.messaging.base import MessageFormatter
from src.messaging.telegram.utils.config import TelegramConfig, get_telegram_settings
from src.messaging.telegram.utils.formatting import (
    ParseMode,
    TelegramFormatter,
    escape_html,
    escape_markdown_v2,
    format_markdown_v2,
    format_message,
    get_formatter,
    strip_markdown_v2,
)

__all__ = [
    "MessageFormatter",
    "ParseMode",
    "TelegramConfig",
    "TelegramFormatter",
    "escape_html",
    "escape_markdown_v2",
    "format_markdown_v2",
    "format_message",
    "get_formatter",
    "get_telegram_settings",
    "strip_markdown_v2",
]
