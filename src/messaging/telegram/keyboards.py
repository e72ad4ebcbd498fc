"""Keyboard layout and reply markup construction for Telegram messages."""

import logging
import math
from collections.abc import Sequence
from typing import Any, TypeVar

from src.messaging.telegram.callbacks import CallbackIdGenerator
from src.messaging.telegram.models import (
    Action,
    CallbackData,
    ContentType,
    InlineKeyboardButton,
    InlineKeyboardMarkup,
    KeyboardButton,
    ReplyKeyboardMarkup,
)

logger = logging.getLogger(__name__)

# Buttons per row when the action does not specify a usable column count
DEFAULT_COLUMN_NUM = 3

T = TypeVar("T")


def resolve_column_num(column_num: int | None) -> int:
    """Get the column count to lay buttons out with.

    :param column_num: Requested column count, if any.
    :returns: The requested count, or DEFAULT_COLUMN_NUM when absent or non-positive.
    """
    if column_num is None or column_num <= 0:
        return DEFAULT_COLUMN_NUM
    return column_num


def layout_buttons(items: Sequence[T], columns: int) -> list[list[T]]:
    """Arrange items into rows, filling each row before starting the next.

    Every row but the last holds exactly ``columns`` items; the last holds
    the remainder.

    :param items: Items in display order.
    :param columns: Number of items per row.
    :returns: The rows, empty when there are no items.
    :raises ValueError: If columns is not positive.
    """
    if columns <= 0:
        raise ValueError(f"Column count must be positive, got {columns}")

    row_count = math.ceil(len(items) / columns)
    return [list(items[row * columns : (row + 1) * columns]) for row in range(row_count)]


def _bind_callback(
    action: Action,
    generator: CallbackIdGenerator,
    index: int,
) -> CallbackData:
    actions = action.content.actions
    return CallbackData(
        project=action.project,
        user_id=action.user.id,
        query_data=generator.mint(index),
        action=actions[index] if index < len(actions) else None,
    )


def build_inline_keyboard(
    action: Action,
    generator: CallbackIdGenerator,
) -> tuple[InlineKeyboardMarkup, list[CallbackData]]:
    """Build an inline keyboard from the action's button labels.

    Every button gets a freshly minted identifier bound to the payload at the
    same position in ``content.actions``.

    :param action: Action whose ``content.buts`` are laid out.
    :param generator: Identifier generator.
    :returns: Tuple of (markup, callback bindings to persist).
    """
    content = action.content
    callbacks = [_bind_callback(action, generator, i) for i in range(len(content.buts))]
    buttons = [
        InlineKeyboardButton(text=label, callback_data=callback.query_data)
        for label, callback in zip(content.buts, callbacks, strict=True)
    ]
    rows = layout_buttons(buttons, resolve_column_num(content.column_num))
    return InlineKeyboardMarkup(inline_keyboard=rows), callbacks


def build_reply_keyboard(action: Action) -> ReplyKeyboardMarkup:
    """Build a one-time, resized reply keyboard from the action's button labels.

    :param action: Action whose ``content.buts`` are laid out.
    :returns: The reply keyboard.
    """
    content = action.content
    buttons = [KeyboardButton(text=label) for label in content.buts]
    return ReplyKeyboardMarkup(
        keyboard=layout_buttons(buttons, resolve_column_num(content.column_num)),
        resize_keyboard=True,
        one_time_keyboard=True,
    )


def _convert_inline_keyboard(
    action: Action,
    rows: list[Any],
    generator: CallbackIdGenerator,
) -> tuple[InlineKeyboardMarkup, list[CallbackData]]:
    keyboard: list[list[InlineKeyboardButton]] = []
    callbacks: list[CallbackData] = []

    for row in rows:
        if not isinstance(row, list):
            logger.warning(f"Skipping inline keyboard row of type {type(row).__name__}")
            continue

        keyboard_row: list[InlineKeyboardButton] = []
        for item in row:
            if not isinstance(item, dict):
                continue

            text = item.get("text")
            button = InlineKeyboardButton(text=text if isinstance(text, str) else "")
            url = item.get("url")
            if isinstance(url, str):
                button.url = url
            else:
                # Callback indices count interactive buttons only
                callback = _bind_callback(action, generator, len(callbacks))
                button.callback_data = callback.query_data
                callbacks.append(callback)
            keyboard_row.append(button)

        keyboard.append(keyboard_row)

    return InlineKeyboardMarkup(inline_keyboard=keyboard), callbacks


def _convert_reply_keyboard(markup: dict[str, Any], rows: list[Any]) -> ReplyKeyboardMarkup:
    keyboard: list[list[KeyboardButton]] = []
    for row in rows:
        if not isinstance(row, list):
            continue

        keyboard_row: list[KeyboardButton] = []
        for item in row:
            if isinstance(item, str):
                keyboard_row.append(KeyboardButton(text=item))
            elif isinstance(item, dict):
                text = item.get("text")
                keyboard_row.append(KeyboardButton(text=text if isinstance(text, str) else ""))
        keyboard.append(keyboard_row)

    reply_keyboard = ReplyKeyboardMarkup(keyboard=keyboard)
    if isinstance(markup.get("resize_keyboard"), bool):
        reply_keyboard.resize_keyboard = markup["resize_keyboard"]
    if isinstance(markup.get("one_time_keyboard"), bool):
        reply_keyboard.one_time_keyboard = markup["one_time_keyboard"]
    return reply_keyboard


def convert_reply_markup(
    action: Action,
    generator: CallbackIdGenerator,
) -> tuple[dict[str, Any], list[CallbackData]]:
    """Normalise a caller-supplied reply markup.

    Inline buttons without a URL get minted identifiers in row-major order,
    bound by position to ``content.actions``. A ``keyboard`` markup is rebuilt
    as a reply keyboard. Anything else, including a keyboard key whose rows
    are not a list, is passed through unchanged.

    :param action: Action carrying ``content.reply_markup``.
    :param generator: Identifier generator.
    :returns: Tuple of (markup parameter, callback bindings to persist).
    """
    markup = action.content.reply_markup or {}

    if "inline_keyboard" in markup:
        inline_rows = markup["inline_keyboard"]
        if not isinstance(inline_rows, list):
            return markup, []
        inline_keyboard, callbacks = _convert_inline_keyboard(action, inline_rows, generator)
        return inline_keyboard.model_dump(exclude_none=True), callbacks

    if "keyboard" in markup:
        keyboard_rows = markup["keyboard"]
        if not isinstance(keyboard_rows, list):
            return markup, []
        reply_keyboard = _convert_reply_keyboard(markup, keyboard_rows)
        return reply_keyboard.model_dump(exclude_none=True), []

    return markup, []


def resolve_reply_markup(
    action: Action,
    generator: CallbackIdGenerator,
) -> tuple[dict[str, Any] | None, list[CallbackData]]:
    """Work out the reply markup for an action.

    An explicit ``reply_markup`` takes precedence over button labels. Labels
    produce an inline keyboard for ``inline_keyboard`` content and a reply
    keyboard for ``virtual_keyboard`` content.

    :param action: The action being compiled.
    :param generator: Identifier generator.
    :returns: Tuple of (markup parameter or None, callback bindings to persist).
    """
    content = action.content
    if content.reply_markup is not None:
        return convert_reply_markup(action, generator)

    if not content.buts:
        return None, []

    if content.type == ContentType.INLINE_KEYBOARD:
        inline_keyboard, callbacks = build_inline_keyboard(action, generator)
        return inline_keyboard.model_dump(exclude_none=True), callbacks

    if content.type == ContentType.VIRTUAL_KEYBOARD:
        return build_reply_keyboard(action).model_dump(exclude_none=True), []

    logger.debug(f"Ignoring button labels for content type {content.type!r}")
    return None, []
