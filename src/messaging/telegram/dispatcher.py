"""Selection of the Bot API method and base parameters for an action."""

import logging
from collections.abc import Callable
from typing import Any

from src.messaging.base import MessageFormatter
from src.messaging.telegram.models import (
    Action,
    AttachmentType,
    ContentType,
    MethodCall,
)
from src.messaging.telegram.utils.formatting import ParseMode, get_formatter

logger = logging.getLogger(__name__)

# Diameter used for round video messages
VIDEO_NOTE_LENGTH = 240

# Attachment type -> (method, file parameter name)
MEDIA_METHODS: dict[str, tuple[str, str]] = {
    AttachmentType.PHOTO: ("sendPhoto", "photo"),
    AttachmentType.DOCUMENT: ("sendDocument", "document"),
    AttachmentType.VIDEO: ("sendVideo", "video"),
    AttachmentType.AUDIO: ("sendAudio", "audio"),
    AttachmentType.VOICE: ("sendVoice", "voice"),
    AttachmentType.VIDEO_NOTE: ("sendVideoNote", "video_note"),
}

SEND_MESSAGE = "sendMessage"


class MethodDispatcher:
    """Maps an action's content to an outbound method and its parameters.

    Text (and poll explanations) are run through the formatter when the
    action's extra parameters request MarkdownV2.
    """

    def __init__(self, formatter: MessageFormatter | None = None) -> None:
        """Initialise the dispatcher.

        :param formatter: Formatter for MarkdownV2 text. Defaults to the Telegram formatter.
        """
        self._formatter = formatter or get_formatter()
        self._handlers: dict[str, Callable[[Action], MethodCall | None]] = {
            ContentType.STICKER: self._sticker,
            ContentType.DICE: self._dice,
            ContentType.CONTACT: self._contact,
            ContentType.POLL: self._poll,
            ContentType.GAME: self._game,
            ContentType.VENUE: self._venue,
        }

    def dispatch(self, action: Action) -> MethodCall | None:
        """Build the method call for an action, without reply markup.

        The action's ``spices`` are merged over the base parameters.

        :param action: The action to dispatch.
        :returns: The method call, or None when the content has nothing to send.
        """
        handler = self._handlers.get(action.content.type, self._text_or_media)
        call = handler(action)
        if call is None:
            logger.warning(
                f"Nothing to send for content type {action.content.type!r}: missing attachment"
            )
            return None

        call.params.update(action.content.spices)
        return call

    def _render(self, text: str, parse_mode: str) -> str:
        if parse_mode == ParseMode.MARKDOWN_V2:
            formatted, _ = self._formatter.format(text)
            return formatted
        return text

    def _text_or_media(self, action: Action) -> MethodCall:
        content = action.content
        parse_mode = content.parse_mode
        text = self._render(content.text, parse_mode)
        attachment = content.attachment

        if attachment is None or not attachment.url or attachment.type not in MEDIA_METHODS:
            if attachment is not None and attachment.url:
                logger.info(
                    f"Unsupported attachment type {attachment.type!r}, sending as text message"
                )
            params: dict[str, Any] = {"chat_id": action.user.tg_id, "text": text}
            if parse_mode:
                params["parse_mode"] = parse_mode
            return MethodCall(method=SEND_MESSAGE, params=params)

        method, file_param = MEDIA_METHODS[attachment.type]
        params = {"chat_id": action.user.tg_id, file_param: attachment.url}
        if attachment.type == AttachmentType.VIDEO_NOTE:
            params["length"] = VIDEO_NOTE_LENGTH
            return MethodCall(method=method, params=params)

        if text:
            params["caption"] = text
        if parse_mode:
            params["parse_mode"] = parse_mode
        return MethodCall(method=method, params=params)

    def _sticker(self, action: Action) -> MethodCall | None:
        attachment = action.content.attachment
        if attachment is None or not attachment.sticker:
            return None
        return MethodCall(
            method="sendSticker",
            params={"chat_id": action.user.tg_id, "sticker": attachment.sticker},
        )

    def _dice(self, action: Action) -> MethodCall:
        params: dict[str, Any] = {"chat_id": action.user.tg_id}
        attachment = action.content.attachment
        if attachment is not None and attachment.dice:
            params["emoji"] = attachment.dice
        return MethodCall(method="sendDice", params=params)

    def _contact(self, action: Action) -> MethodCall | None:
        attachment = action.content.attachment
        if attachment is None or attachment.contact is None:
            return None
        params = {"chat_id": action.user.tg_id, **attachment.contact.model_dump(exclude_none=True)}
        return MethodCall(method="sendContact", params=params)

    def _poll(self, action: Action) -> MethodCall | None:
        attachment = action.content.attachment
        if attachment is None or attachment.poll is None:
            return None

        parse_mode = action.content.parse_mode
        poll = attachment.poll.model_dump(exclude_none=True)
        if "explanation" in poll:
            poll["explanation"] = self._render(poll["explanation"], parse_mode)
            if parse_mode:
                poll["explanation_parse_mode"] = parse_mode
        return MethodCall(method="sendPoll", params={"chat_id": action.user.tg_id, **poll})

    def _game(self, action: Action) -> MethodCall | None:
        attachment = action.content.attachment
        if attachment is None or not attachment.game_short_name:
            return None
        return MethodCall(
            method="sendGame",
            params={"chat_id": action.user.tg_id, "game_short_name": attachment.game_short_name},
        )

    def _venue(self, action: Action) -> MethodCall | None:
        attachment = action.content.attachment
        if attachment is None or attachment.venue is None:
            return None
        params = {"chat_id": action.user.tg_id, **attachment.venue.model_dump(exclude_none=True)}
        return MethodCall(method="sendVenue", params=params)
