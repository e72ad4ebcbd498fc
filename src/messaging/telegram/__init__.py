"""Telegram integration for sending message actions.

Send an action from a JSON file with: python -m src.messaging.telegram action.json
"""

from src.messaging.telegram.actions import ActionCompiler, ActionExecutor, execute_action
from src.messaging.telegram.callbacks import (
    CallbackIdGenerator,
    CallbackSaveError,
    CallbackSaver,
    DatabaseCallbackSaver,
    generate_callback_hash,
)
from src.messaging.telegram.client import (
    TelegramAPIError,
    TelegramClient,
    TelegramClientError,
    get_error_code,
)
from src.messaging.telegram.dispatcher import MethodDispatcher
from src.messaging.telegram.keyboards import (
    DEFAULT_COLUMN_NUM,
    build_inline_keyboard,
    build_reply_keyboard,
    convert_reply_markup,
    layout_buttons,
    resolve_column_num,
    resolve_reply_markup,
)
from src.messaging.telegram.models import (
    SUPPORTED_STREAM,
    Action,
    ActionParameters,
    ActionResult,
    ActionUser,
    Attachment,
    AttachmentType,
    CallbackData,
    ContactPayload,
    Content,
    ContentType,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    MethodCall,
    PollPayload,
    ReplyKeyboardMarkup,
    TelegramFile,
    TelegramResponse,
    TelegramUser,
    VenuePayload,
)
from src.messaging.telegram.utils.config import TelegramConfig, get_telegram_settings
from src.messaging.telegram.utils.formatting import (
    ParseMode,
    TelegramFormatter,
    escape_markdown_v2,
    format_markdown_v2,
    strip_markdown_v2,
)

__all__ = [
    "DEFAULT_COLUMN_NUM",
    "SUPPORTED_STREAM",
    "Action",
    "ActionCompiler",
    "ActionExecutor",
    "ActionParameters",
    "ActionResult",
    "ActionUser",
    "Attachment",
    "AttachmentType",
    "CallbackData",
    "CallbackIdGenerator",
    "CallbackSaveError",
    "CallbackSaver",
    "ContactPayload",
    "Content",
    "ContentType",
    "DatabaseCallbackSaver",
    "InlineKeyboardButton",
    "InlineKeyboardMarkup",
    "KeyboardButton",
    "MethodCall",
    "MethodDispatcher",
    "ParseMode",
    "PollPayload",
    "ReplyKeyboardMarkup",
    "TelegramAPIError",
    "TelegramClient",
    "TelegramClientError",
    "TelegramConfig",
    "TelegramFormatter",
    "TelegramFile",
    "TelegramResponse",
    "TelegramUser",
    "VenuePayload",
    "build_inline_keyboard",
    "build_reply_keyboard",
    "convert_reply_markup",
    "escape_markdown_v2",
    "execute_action",
    "format_markdown_v2",
    "generate_callback_hash",
    "get_error_code",
    "get_telegram_settings",
    "layout_buttons",
    "resolve_column_num",
    "resolve_reply_markup",
    "strip_markdown_v2",
]
