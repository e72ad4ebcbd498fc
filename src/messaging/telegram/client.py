"""Telegram Bot API client for sending compiled method calls."""

from __future__ import annotations

import logging
import time
from http import HTTPStatus
from typing import TYPE_CHECKING, Any

import requests
from pydantic import ValidationError

from src.messaging.telegram.models import (
    MethodCall,
    TelegramFile,
    TelegramResponse,
    TelegramUser,
)

if TYPE_CHECKING:
    from src.messaging.telegram.utils.config import TelegramConfig

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.telegram.org"

# Default API timeout in seconds
DEFAULT_REQUEST_TIMEOUT = 30

# Attempts made by send() when the API rate limits the bot
DEFAULT_MAX_RETRIES = 3


class TelegramClientError(Exception):
    """Raised when a Telegram API request fails."""

    pass


class TelegramAPIError(TelegramClientError):
    """Raised when the Telegram API answers with ``ok: false``."""

    def __init__(self, response: TelegramResponse) -> None:
        """Initialise the error from the API response.

        :param response: The error response returned by the API.
        """
        self.response = response
        self.error_code = response.error_code or 0
        self.description = response.description or "Unknown error"
        super().__init__(
            f"Telegram API error: code={self.error_code}, description={self.description}"
        )

    @property
    def retry_after(self) -> int | None:
        """Seconds to wait before retrying, when the API says so."""
        if self.response.parameters is None:
            return None
        retry_after = self.response.parameters.get("retry_after")
        return retry_after if isinstance(retry_after, int) else None

    @property
    def is_bad_request(self) -> bool:
        return self.error_code == HTTPStatus.BAD_REQUEST

    @property
    def is_unauthorized(self) -> bool:
        return self.error_code == HTTPStatus.UNAUTHORIZED

    @property
    def is_forbidden(self) -> bool:
        return self.error_code == HTTPStatus.FORBIDDEN

    @property
    def is_blocked(self) -> bool:
        """Whether the bot was blocked by the user (reported as 403)."""
        return self.is_forbidden

    @property
    def is_not_found(self) -> bool:
        return self.error_code == HTTPStatus.NOT_FOUND

    @property
    def is_rate_limited(self) -> bool:
        return self.error_code == HTTPStatus.TOO_MANY_REQUESTS


def get_error_code(error: BaseException) -> int:
    """Get the Telegram error code of an exception.

    :param error: Any exception.
    :returns: The API error code, or -1 if the error did not come from the API.
    """
    if isinstance(error, TelegramAPIError):
        return error.error_code
    return -1


class TelegramClient:
    """Client for calling Telegram Bot API methods."""

    def __init__(
        self,
        *,
        bot_token: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: int = DEFAULT_REQUEST_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        """Initialise the Telegram client.

        :param bot_token: Telegram bot token from @BotFather.
        :param base_url: Bot API base URL, without the ``/bot<token>`` suffix.
        :param timeout: Request timeout in seconds.
        :param max_retries: Attempts made by send() when rate limited.
        :raises ValueError: If max_retries is less than 1.
        """
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")

        self._bot_token = bot_token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_retries = max_retries
        logger.debug(f"TelegramClient initialised with timeout={timeout}s, retries={max_retries}")

    @classmethod
    def from_settings(cls, settings: TelegramConfig) -> TelegramClient:
        """Create a client from Telegram settings.

        :param settings: Loaded Telegram configuration.
        :returns: A configured client.
        """
        return cls(
            bot_token=settings.bot_token,
            base_url=settings.api_base_url,
            timeout=settings.request_timeout,
            max_retries=settings.max_retries,
        )

    def call(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        *,
        bot_token: str | None = None,
    ) -> TelegramResponse:
        """Call a Bot API method once.

        :param method: Bot API method name, e.g. ``sendMessage``.
        :param params: JSON parameters of the method.
        :param bot_token: Token to use instead of the configured one.
        :returns: The successful API response.
        :raises TelegramAPIError: If the API answers with an error.
        :raises TelegramClientError: If the request fails or the response is unreadable.
        """
        url = f"{self._base_url}/bot{bot_token or self._bot_token}/{method}"
        logger.debug(f"Telegram request: method={method}, params={params}")

        try:
            response = requests.post(url, json=params or {}, timeout=self._timeout)
        except requests.exceptions.Timeout as e:
            raise TelegramClientError(
                f"Telegram API request timed out after {self._timeout}s"
            ) from e
        except requests.exceptions.RequestException as e:
            raise TelegramClientError(f"Telegram API request failed: {e}") from e

        try:
            telegram_response = TelegramResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise TelegramClientError(
                f"Unreadable Telegram API response: status={response.status_code}"
            ) from e

        logger.debug(f"Telegram response: method={method}, ok={telegram_response.ok}")
        if not telegram_response.ok:
            raise TelegramAPIError(telegram_response)

        return telegram_response

    def send(self, call: MethodCall, *, bot_token: str | None = None) -> TelegramResponse:
        """Send a compiled method call, retrying when rate limited.

        :param call: Method and parameters to send.
        :param bot_token: Token to use instead of the configured one.
        :returns: The successful API response.
        :raises TelegramAPIError: If the API answers with an error.
        :raises TelegramClientError: If the request fails.
        """
        logger.info(f"Sending {call.method} to chat_id={call.params.get('chat_id')}")
        for attempt in range(1, self._max_retries + 1):
            try:
                return self.call(call.method, call.params, bot_token=bot_token)
            except TelegramAPIError as e:
                if not e.is_rate_limited or attempt == self._max_retries:
                    raise
                delay = e.retry_after or attempt
                logger.warning(
                    f"Rate limited on {call.method}, retrying in {delay}s "
                    f"(attempt {attempt}/{self._max_retries})"
                )
                time.sleep(delay)

        raise TelegramClientError(f"No attempt made to send {call.method}")

    def send_chat_action(
        self,
        chat_id: int,
        action: str,
        *,
        bot_token: str | None = None,
    ) -> None:
        """Show a transient chat action such as ``typing``.

        :param chat_id: Target chat ID.
        :param action: Chat action name.
        :param bot_token: Token to use instead of the configured one.
        :raises TelegramClientError: If the request fails.
        """
        self.call(
            "sendChatAction",
            {"chat_id": chat_id, "action": action},
            bot_token=bot_token,
        )

    def send_location(
        self,
        chat_id: int,
        latitude: float,
        longitude: float,
        *,
        bot_token: str | None = None,
        **options: Any,
    ) -> TelegramResponse:
        """Send a map location.

        :param chat_id: Target chat ID.
        :param latitude: Latitude of the location.
        :param longitude: Longitude of the location.
        :param bot_token: Token to use instead of the configured one.
        :param options: Extra sendLocation parameters, e.g. ``reply_markup``.
        :returns: The API response carrying the sent message.
        :raises TelegramClientError: If the request fails.
        """
        params = {"chat_id": chat_id, "latitude": latitude, "longitude": longitude, **options}
        return self.send(MethodCall(method="sendLocation", params=params), bot_token=bot_token)

    def answer_callback_query(
        self,
        callback_query_id: str,
        *,
        text: str | None = None,
        show_alert: bool = False,
        bot_token: str | None = None,
    ) -> None:
        """Acknowledge a pressed inline button.

        :param callback_query_id: ID of the callback query to answer.
        :param text: Notification shown to the user, if any.
        :param show_alert: Show the text as an alert instead of a toast.
        :param bot_token: Token to use instead of the configured one.
        :raises TelegramClientError: If the request fails.
        """
        params: dict[str, Any] = {"callback_query_id": callback_query_id}
        if text:
            params["text"] = text
        if show_alert:
            params["show_alert"] = True
        self.call("answerCallbackQuery", params, bot_token=bot_token)

    def edit_message_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        *,
        bot_token: str | None = None,
        **options: Any,
    ) -> TelegramResponse:
        """Replace the text of a sent message.

        :param chat_id: Chat holding the message.
        :param message_id: ID of the message to edit.
        :param text: New message text.
        :param bot_token: Token to use instead of the configured one.
        :param options: Extra parameters, e.g. ``parse_mode`` or ``reply_markup``.
        :returns: The API response.
        :raises TelegramClientError: If the request fails.
        """
        params = {"chat_id": chat_id, "message_id": message_id, "text": text, **options}
        return self.call("editMessageText", params, bot_token=bot_token)

    def delete_message(
        self,
        chat_id: int,
        message_id: int,
        *,
        bot_token: str | None = None,
    ) -> None:
        """Delete a message.

        :param chat_id: Chat holding the message.
        :param message_id: ID of the message to delete.
        :param bot_token: Token to use instead of the configured one.
        :raises TelegramClientError: If the request fails.
        """
        self.call(
            "deleteMessage",
            {"chat_id": chat_id, "message_id": message_id},
            bot_token=bot_token,
        )

    def get_file(self, file_id: str, *, bot_token: str | None = None) -> TelegramFile:
        """Get download metadata for a file.

        :param file_id: Telegram file ID.
        :param bot_token: Token to use instead of the configured one.
        :returns: The file metadata.
        :raises TelegramClientError: If the request fails or the result is unreadable.
        """
        response = self.call("getFile", {"file_id": file_id}, bot_token=bot_token)
        try:
            return TelegramFile.model_validate(response.result)
        except ValidationError as e:
            raise TelegramClientError(f"Unreadable getFile result: {response.result!r}") from e

    def get_file_url(self, file_path: str, *, bot_token: str | None = None) -> str:
        """Build the download URL for a file path returned by get_file.

        :param file_path: The ``file_path`` of a TelegramFile.
        :param bot_token: Token to use instead of the configured one.
        :returns: The download URL.
        """
        return f"{self._base_url}/file/bot{bot_token or self._bot_token}/{file_path}"

    def set_webhook(
        self,
        url: str,
        *,
        secret_token: str | None = None,
        bot_token: str | None = None,
        **options: Any,
    ) -> None:
        """Register a webhook URL for incoming updates.

        :param url: HTTPS URL receiving updates.
        :param secret_token: Value sent back in the secret token header, if any.
        :param bot_token: Token to use instead of the configured one.
        :param options: Extra setWebhook parameters, e.g. ``allowed_updates``.
        :raises TelegramClientError: If the request fails.
        """
        params: dict[str, Any] = {"url": url, **options}
        if secret_token:
            params["secret_token"] = secret_token
        self.call("setWebhook", params, bot_token=bot_token)
        logger.info("Telegram webhook set")

    def delete_webhook(
        self,
        *,
        drop_pending_updates: bool = False,
        bot_token: str | None = None,
    ) -> None:
        """Remove the webhook.

        :param drop_pending_updates: Discard updates queued on the server.
        :param bot_token: Token to use instead of the configured one.
        :raises TelegramClientError: If the request fails.
        """
        self.call(
            "deleteWebhook",
            {"drop_pending_updates": drop_pending_updates},
            bot_token=bot_token,
        )
        logger.info("Telegram webhook deleted")

    def get_me(self, *, bot_token: str | None = None) -> TelegramUser:
        """Get the bot's own user.

        :param bot_token: Token to use instead of the configured one.
        :returns: The bot user.
        :raises TelegramClientError: If the request fails or the result is unreadable.
        """
        response = self.call("getMe", bot_token=bot_token)
        try:
            return TelegramUser.model_validate(response.result)
        except ValidationError as e:
            raise TelegramClientError(f"Unreadable getMe result: {response.result!r}") from e
