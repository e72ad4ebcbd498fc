"""Pydantic models for Telegram message actions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from functools import lru_cache
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

logger = logging.getLogger(__name__)

# The only delivery stream handled by this module
SUPPORTED_STREAM = "tg_direct"


class ContentType(StrEnum):
    """Content types of an action."""

    TEXT = "text"
    INLINE_KEYBOARD = "inline_keyboard"
    VIRTUAL_KEYBOARD = "virtual_keyboard"
    STICKER = "sticker"
    DICE = "dice"
    CONTACT = "contact"
    POLL = "poll"
    GAME = "game"
    VENUE = "venue"


class AttachmentType(StrEnum):
    """Media types that can be sent with a caption."""

    PHOTO = "photo"
    DOCUMENT = "document"
    VIDEO = "video"
    AUDIO = "audio"
    VOICE = "voice"
    VIDEO_NOTE = "video_note"


@lru_cache
def _strict_adapter(annotation: Any) -> TypeAdapter[Any]:
    return TypeAdapter(annotation, config=ConfigDict(strict=True))


class LenientPayload(BaseModel):
    """Base for loosely-typed caller payloads.

    Fields whose value has the wrong shape are dropped (and logged) instead of
    failing validation of the whole action.
    """

    model_config = ConfigDict(strict=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def drop_malformed_fields(cls, data: Any) -> Any:
        """Remove fields that do not match their declared type.

        :param data: Raw payload.
        :returns: The payload without malformed fields.
        """
        if not isinstance(data, dict):
            return data

        cleaned: dict[str, Any] = {}
        for name, value in data.items():
            field = cls.model_fields.get(name)
            if field is None:
                continue
            try:
                _strict_adapter(field.annotation).validate_python(value)
            except ValidationError:
                logger.warning(
                    f"Dropping malformed {cls.__name__} field: {name}={value!r}"
                )
                continue
            cleaned[name] = value
        return cleaned


class ContactPayload(LenientPayload):
    """Contact card sent with sendContact."""

    phone_number: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    vcard: str | None = None


class PollPayload(LenientPayload):
    """Poll sent with sendPoll."""

    question: str | None = None
    options: list[Any] | None = None
    is_anonymous: bool | None = None
    type: str | None = None
    allows_multiple_answers: bool | None = None
    correct_option_id: int | None = None
    explanation: str | None = None

    @field_validator("options")
    @classmethod
    def keep_text_options(cls, v: list[Any] | None) -> list[str] | None:
        """Keep only string options.

        :param v: Raw option list.
        :returns: The string entries, in order.
        """
        if v is None:
            return None
        return [option for option in v if isinstance(option, str)]


class VenuePayload(LenientPayload):
    """Venue sent with sendVenue."""

    latitude: float | None = None
    longitude: float | None = None
    title: str | None = None
    address: str | None = None
    foursquare_id: str | None = None
    foursquare_type: str | None = None
    google_place_id: str | None = None
    google_place_type: str | None = None


class Attachment(BaseModel):
    """Media or structured attachment of a message.

    Exactly one logical variant is expected to be populated per action.
    """

    type: str = ""
    url: str = ""
    sticker: str = ""
    dice: str = ""
    contact: ContactPayload | None = None
    poll: PollPayload | None = None
    venue: VenuePayload | None = None
    game_short_name: str = ""

    @field_validator("contact", "poll", "venue", mode="before")
    @classmethod
    def ignore_non_mapping_payload(cls, v: Any) -> Any:
        """Treat a payload that is not a mapping as absent.

        :param v: Raw payload value.
        :returns: The value, or None when it cannot be a payload.
        """
        if v is None or isinstance(v, dict | BaseModel):
            return v
        logger.warning(f"Ignoring attachment payload of type {type(v).__name__}")
        return None


class ActionParameters(BaseModel):
    """Delivery parameters of an action."""

    save: bool | None = None
    send_reaction: str | None = None


class Content(BaseModel):
    """Message content of an action."""

    type: str = ""
    stream: str = ""
    text: str = ""
    attachment: Attachment | None = None
    buts: list[str] = Field(default_factory=list)
    actions: list[Any] = Field(default_factory=list)
    reply_markup: dict[str, Any] | None = None
    column_num: int | None = None
    spices: dict[str, Any] = Field(default_factory=dict)
    parameters: ActionParameters = Field(default_factory=ActionParameters)

    @field_validator("type", "stream", "text", mode="before")
    @classmethod
    def null_as_empty(cls, v: Any) -> Any:
        """Read an explicit null as an empty string."""
        return "" if v is None else v

    @property
    def parse_mode(self) -> str:
        """Parse mode requested through the extra parameters, or an empty string."""
        parse_mode = self.spices.get("parse_mode")
        return parse_mode if isinstance(parse_mode, str) else ""


class ActionUser(BaseModel):
    """Target of an action."""

    tg_id: int
    id: str = ""


class Action(BaseModel):
    """A single outbound message intent."""

    model_config = ConfigDict(populate_by_name=True)

    activity: str = "message"
    project: str = Field(default="", validation_alias=AliasChoices("project", "slag"))
    user: ActionUser
    content: Content = Field(default_factory=Content)
    token: str = Field(default="", exclude=True, repr=False)

    @property
    def is_supported_stream(self) -> bool:
        """Whether the action targets the supported delivery stream."""
        return self.content.stream in ("", SUPPORTED_STREAM)


class CallbackData(BaseModel):
    """Binding of a minted callback identifier to a button payload."""

    project: str
    user_id: str
    query_data: str
    action: Any = None


class InlineKeyboardButton(BaseModel):
    """One button of an inline keyboard."""

    text: str
    url: str | None = None
    callback_data: str | None = None


class InlineKeyboardMarkup(BaseModel):
    """Inline keyboard attached to a message."""

    inline_keyboard: list[list[InlineKeyboardButton]]


class KeyboardButton(BaseModel):
    """One button of a reply keyboard."""

    text: str


class ReplyKeyboardMarkup(BaseModel):
    """Custom reply keyboard replacing the on-screen keyboard."""

    keyboard: list[list[KeyboardButton]]
    resize_keyboard: bool | None = None
    one_time_keyboard: bool | None = None


class MethodCall(BaseModel):
    """Outbound Bot API method with its parameters."""

    method: str
    params: dict[str, Any] = Field(default_factory=dict)


class TelegramResponse(BaseModel):
    """Raw Bot API response envelope."""

    ok: bool
    result: Any = None
    description: str | None = None
    error_code: int | None = None
    parameters: dict[str, Any] | None = None

    @property
    def message_id(self) -> int | None:
        """Identifier of the sent message, when the result is a message."""
        if isinstance(self.result, dict):
            message_id = self.result.get("message_id")
            if isinstance(message_id, int):
                return message_id
        return None


class TelegramUser(BaseModel):
    """Bot API user, as returned by getMe."""

    id: int
    is_bot: bool
    first_name: str
    last_name: str | None = None
    username: str | None = None
    language_code: str | None = None


class TelegramFile(BaseModel):
    """File metadata returned by getFile."""

    file_id: str
    file_unique_id: str
    file_size: int | None = None
    file_path: str | None = None


@dataclass(frozen=True)
class ActionResult:
    """Outcome of executing an action."""

    success: bool
    message_id: int | None = None
    response: TelegramResponse | None = None
    error: Exception | None = None

    @property
    def is_soft_noop(self) -> bool:
        """Whether the action completed without effect and without error."""
        return not self.success and self.error is None
