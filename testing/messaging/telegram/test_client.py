"""Tests for Telegram client module."""

import unittest
from typing import Any
from unittest.mock import MagicMock, patch

import requests

from src.messaging.telegram.client import (
    DEFAULT_REQUEST_TIMEOUT,
    TelegramAPIError,
    TelegramClient,
    TelegramClientError,
    get_error_code,
)
from src.messaging.telegram.models import MethodCall, TelegramResponse
from src.messaging.telegram.utils.config import TelegramConfig


def _response(payload: Any, status_code: int = 200) -> MagicMock:
    mock_response = MagicMock()
    mock_response.status_code = status_code
    mock_response.json.return_value = payload
    return mock_response


def _rate_limited(retry_after: int | None = None) -> MagicMock:
    payload: dict[str, Any] = {
        "ok": False,
        "error_code": 429,
        "description": "Too Many Requests",
    }
    if retry_after is not None:
        payload["parameters"] = {"retry_after": retry_after}
    return _response(payload, status_code=429)


class TestTelegramClientInitialisation(unittest.TestCase):
    """Tests for TelegramClient initialisation."""

    def test_initialisation(self) -> None:
        """Test that parameters are stored."""
        client = TelegramClient(bot_token="test-token", base_url="http://local/", timeout=5)

        self.assertEqual(client._bot_token, "test-token")
        self.assertEqual(client._base_url, "http://local")
        self.assertEqual(client._timeout, 5)

    def test_max_retries_below_one_rejected(self) -> None:
        """Test that a client must be allowed at least one attempt."""
        for max_retries in (0, -1):
            with self.subTest(max_retries=max_retries):
                with self.assertRaises(ValueError):
                    TelegramClient(bot_token="test-token", max_retries=max_retries)

    def test_from_settings(self) -> None:
        """Test creating a client from configuration."""
        settings = TelegramConfig(
            bot_token="cfg-token",
            api_base_url="http://bots.local",
            request_timeout=12,
            max_retries=2,
            _env_file=None,
        )

        client = TelegramClient.from_settings(settings)

        self.assertEqual(client._bot_token, "cfg-token")
        self.assertEqual(client._base_url, "http://bots.local")
        self.assertEqual(client._timeout, 12)
        self.assertEqual(client._max_retries, 2)


class TestTelegramClientCall(unittest.TestCase):
    """Tests for TelegramClient.call method."""

    @patch("src.messaging.telegram.client.requests.post")
    def test_call_success(self, mock_post: MagicMock) -> None:
        """Test a successful call posts JSON to the method URL."""
        mock_post.return_value = _response({"ok": True, "result": {"message_id": 5}})
        client = TelegramClient(bot_token="test-token")

        result = client.call("sendMessage", {"chat_id": 1, "text": "hi"})

        self.assertIsInstance(result, TelegramResponse)
        self.assertEqual(result.message_id, 5)
        mock_post.assert_called_once_with(
            "https://api.telegram.org/bottest-token/sendMessage",
            json={"chat_id": 1, "text": "hi"},
            timeout=DEFAULT_REQUEST_TIMEOUT,
        )

    @patch("src.messaging.telegram.client.requests.post")
    def test_call_with_token_override(self, mock_post: MagicMock) -> None:
        """Test that a per-call token replaces the configured one."""
        mock_post.return_value = _response({"ok": True, "result": True})
        client = TelegramClient(bot_token="default-token")

        client.call("getMe", bot_token="other-token")

        url = mock_post.call_args.args[0]
        self.assertEqual(url, "https://api.telegram.org/botother-token/getMe")
        self.assertEqual(mock_post.call_args.kwargs["json"], {})

    @patch("src.messaging.telegram.client.requests.post")
    def test_api_error_raises(self, mock_post: MagicMock) -> None:
        """Test that ok=false raises TelegramAPIError."""
        mock_post.return_value = _response(
            {"ok": False, "error_code": 400, "description": "Bad Request: chat not found"},
            status_code=400,
        )
        client = TelegramClient(bot_token="test-token")

        with self.assertRaises(TelegramAPIError) as context:
            client.call("sendMessage", {"chat_id": 1})

        self.assertEqual(context.exception.error_code, 400)
        self.assertTrue(context.exception.is_bad_request)
        self.assertIn("chat not found", str(context.exception))

    @patch("src.messaging.telegram.client.requests.post")
    def test_timeout_raises_client_error(self, mock_post: MagicMock) -> None:
        """Test that a timeout is wrapped."""
        mock_post.side_effect = requests.exceptions.Timeout()
        client = TelegramClient(bot_token="test-token")

        with self.assertRaises(TelegramClientError) as context:
            client.call("sendMessage")

        self.assertNotIsInstance(context.exception, TelegramAPIError)
        self.assertIn("timed out", str(context.exception))

    @patch("src.messaging.telegram.client.requests.post")
    def test_connection_error_raises_client_error(self, mock_post: MagicMock) -> None:
        """Test that request failures are wrapped."""
        mock_post.side_effect = requests.exceptions.ConnectionError("refused")
        client = TelegramClient(bot_token="test-token")

        with self.assertRaises(TelegramClientError) as context:
            client.call("sendMessage")

        self.assertIn("refused", str(context.exception))

    @patch("src.messaging.telegram.client.requests.post")
    def test_invalid_json_raises_client_error(self, mock_post: MagicMock) -> None:
        """Test that an unreadable body is wrapped."""
        mock_response = _response(None, status_code=502)
        mock_response.json.side_effect = ValueError("not json")
        mock_post.return_value = mock_response
        client = TelegramClient(bot_token="test-token")

        with self.assertRaises(TelegramClientError) as context:
            client.call("sendMessage")

        self.assertIn("502", str(context.exception))

    @patch("src.messaging.telegram.client.requests.post")
    def test_unexpected_envelope_raises_client_error(self, mock_post: MagicMock) -> None:
        """Test that a body without the ok flag is wrapped."""
        mock_post.return_value = _response({"result": 1})
        client = TelegramClient(bot_token="test-token")

        with self.assertRaises(TelegramClientError):
            client.call("sendMessage")


class TestTelegramClientSend(unittest.TestCase):
    """Tests for TelegramClient.send method."""

    def setUp(self) -> None:
        self.call = MethodCall(method="sendMessage", params={"chat_id": 1, "text": "hi"})

    @patch("src.messaging.telegram.client.time.sleep")
    @patch("src.messaging.telegram.client.requests.post")
    def test_send_success(self, mock_post: MagicMock, mock_sleep: MagicMock) -> None:
        """Test that a compiled call is sent once."""
        mock_post.return_value = _response({"ok": True, "result": {"message_id": 9}})
        client = TelegramClient(bot_token="test-token")

        response = client.send(self.call)

        self.assertEqual(response.message_id, 9)
        self.assertEqual(mock_post.call_args.kwargs["json"], self.call.params)
        mock_sleep.assert_not_called()

    @patch("src.messaging.telegram.client.time.sleep")
    @patch("src.messaging.telegram.client.requests.post")
    def test_send_retries_when_rate_limited(
        self, mock_post: MagicMock, mock_sleep: MagicMock
    ) -> None:
        """Test that a 429 is retried after the advertised delay."""
        mock_post.side_effect = [
            _rate_limited(retry_after=2),
            _response({"ok": True, "result": {"message_id": 3}}),
        ]
        client = TelegramClient(bot_token="test-token")

        response = client.send(self.call)

        self.assertEqual(response.message_id, 3)
        self.assertEqual(mock_post.call_count, 2)
        mock_sleep.assert_called_once_with(2)

    @patch("src.messaging.telegram.client.time.sleep")
    @patch("src.messaging.telegram.client.requests.post")
    def test_send_backs_off_without_retry_after(
        self, mock_post: MagicMock, mock_sleep: MagicMock
    ) -> None:
        """Test that the attempt number is used when no delay is given."""
        mock_post.side_effect = [
            _rate_limited(),
            _rate_limited(),
            _response({"ok": True, "result": {"message_id": 3}}),
        ]
        client = TelegramClient(bot_token="test-token")

        client.send(self.call)

        self.assertEqual([c.args[0] for c in mock_sleep.call_args_list], [1, 2])

    @patch("src.messaging.telegram.client.time.sleep")
    @patch("src.messaging.telegram.client.requests.post")
    def test_send_gives_up_after_max_retries(
        self, mock_post: MagicMock, mock_sleep: MagicMock
    ) -> None:
        """Test that the rate limit error is raised once attempts run out."""
        mock_post.side_effect = lambda *args, **kwargs: _rate_limited(retry_after=1)
        client = TelegramClient(bot_token="test-token", max_retries=3)

        with self.assertRaises(TelegramAPIError) as context:
            client.send(self.call)

        self.assertTrue(context.exception.is_rate_limited)
        self.assertEqual(mock_post.call_count, 3)
        self.assertEqual(mock_sleep.call_count, 2)

    @patch("src.messaging.telegram.client.time.sleep")
    @patch("src.messaging.telegram.client.requests.post")
    def test_send_does_not_retry_other_errors(
        self, mock_post: MagicMock, mock_sleep: MagicMock
    ) -> None:
        """Test that non rate limit errors are raised immediately."""
        mock_post.return_value = _response(
            {"ok": False, "error_code": 403, "description": "Forbidden: bot was blocked"},
            status_code=403,
        )
        client = TelegramClient(bot_token="test-token")

        with self.assertRaises(TelegramAPIError) as context:
            client.send(self.call)

        self.assertTrue(context.exception.is_blocked)
        mock_post.assert_called_once()
        mock_sleep.assert_not_called()


class TestTelegramClientSendChatAction(unittest.TestCase):
    """Tests for TelegramClient.send_chat_action method."""

    @patch("src.messaging.telegram.client.requests.post")
    def test_send_chat_action(self, mock_post: MagicMock) -> None:
        """Test that sendChatAction is called with the action name."""
        mock_post.return_value = _response({"ok": True, "result": True})
        client = TelegramClient(bot_token="test-token")

        client.send_chat_action(7, "typing")

        self.assertTrue(mock_post.call_args.args[0].endswith("/sendChatAction"))
        self.assertEqual(mock_post.call_args.kwargs["json"], {"chat_id": 7, "action": "typing"})


class TestTelegramClientBotMethods(unittest.TestCase):
    """Tests for the typed Bot API method wrappers."""

    def setUp(self) -> None:
        patcher = patch("src.messaging.telegram.client.requests.post")
        self.mock_post = patcher.start()
        self.addCleanup(patcher.stop)
        self.mock_post.return_value = _response({"ok": True, "result": True})
        self.client = TelegramClient(bot_token="test-token")

    def _method(self) -> str:
        return self.mock_post.call_args.args[0].rsplit("/", 1)[1]

    def _params(self) -> dict[str, Any]:
        return self.mock_post.call_args.kwargs["json"]

    def test_send_location(self) -> None:
        """Test sendLocation with extra options."""
        self.mock_post.return_value = _response({"ok": True, "result": {"message_id": 4}})

        response = self.client.send_location(1, 51.5, -0.1, disable_notification=True)

        self.assertEqual(response.message_id, 4)
        self.assertEqual(self._method(), "sendLocation")
        self.assertEqual(
            self._params(),
            {"chat_id": 1, "latitude": 51.5, "longitude": -0.1, "disable_notification": True},
        )

    def test_answer_callback_query(self) -> None:
        """Test answering a pressed button with an alert."""
        self.client.answer_callback_query("cbq-1", text="Done", show_alert=True)

        self.assertEqual(self._method(), "answerCallbackQuery")
        self.assertEqual(
            self._params(),
            {"callback_query_id": "cbq-1", "text": "Done", "show_alert": True},
        )

    def test_answer_callback_query_minimal(self) -> None:
        """Test that optional fields are omitted."""
        self.client.answer_callback_query("cbq-2")

        self.assertEqual(self._params(), {"callback_query_id": "cbq-2"})

    def test_edit_message_text(self) -> None:
        """Test editing a message's text."""
        self.client.edit_message_text(1, 10, "new", parse_mode="HTML")

        self.assertEqual(self._method(), "editMessageText")
        self.assertEqual(
            self._params(),
            {"chat_id": 1, "message_id": 10, "text": "new", "parse_mode": "HTML"},
        )

    def test_delete_message(self) -> None:
        """Test deleting a message."""
        self.client.delete_message(1, 10)

        self.assertEqual(self._method(), "deleteMessage")
        self.assertEqual(self._params(), {"chat_id": 1, "message_id": 10})

    def test_get_file(self) -> None:
        """Test that file metadata is parsed."""
        self.mock_post.return_value = _response(
            {
                "ok": True,
                "result": {
                    "file_id": "f1",
                    "file_unique_id": "u1",
                    "file_size": 12,
                    "file_path": "photos/a.jpg",
                },
            }
        )

        file = self.client.get_file("f1")

        self.assertEqual(self._method(), "getFile")
        self.assertEqual(self._params(), {"file_id": "f1"})
        self.assertEqual(file.file_path, "photos/a.jpg")
        self.assertEqual(file.file_size, 12)

    def test_get_file_unreadable_result(self) -> None:
        """Test that an unexpected getFile result is wrapped."""
        with self.assertRaises(TelegramClientError):
            self.client.get_file("f1")

    def test_get_file_url(self) -> None:
        """Test the file download URL."""
        self.assertEqual(
            self.client.get_file_url("photos/a.jpg"),
            "https://api.telegram.org/file/bottest-token/photos/a.jpg",
        )
        self.mock_post.assert_not_called()

    def test_set_webhook(self) -> None:
        """Test registering a webhook."""
        self.client.set_webhook("https://x/hook", secret_token="s3", allowed_updates=["message"])

        self.assertEqual(self._method(), "setWebhook")
        self.assertEqual(
            self._params(),
            {"url": "https://x/hook", "secret_token": "s3", "allowed_updates": ["message"]},
        )

    def test_delete_webhook(self) -> None:
        """Test removing the webhook."""
        self.client.delete_webhook(drop_pending_updates=True)

        self.assertEqual(self._method(), "deleteWebhook")
        self.assertEqual(self._params(), {"drop_pending_updates": True})

    def test_get_me(self) -> None:
        """Test that the bot user is parsed."""
        self.mock_post.return_value = _response(
            {"ok": True, "result": {"id": 9, "is_bot": True, "first_name": "Bot", "username": "b"}}
        )

        user = self.client.get_me()

        self.assertEqual(self._method(), "getMe")
        self.assertEqual(user.id, 9)
        self.assertTrue(user.is_bot)
        self.assertEqual(user.username, "b")

    def test_api_error_propagates(self) -> None:
        """Test that wrapper calls raise API errors."""
        self.mock_post.return_value = _response(
            {"ok": False, "error_code": 400, "description": "query is too old"}, status_code=400
        )

        with self.assertRaises(TelegramAPIError):
            self.client.answer_callback_query("old")


class TestTelegramAPIError(unittest.TestCase):
    """Tests for TelegramAPIError and get_error_code."""

    def test_predicates(self) -> None:
        """Test the error classification helpers."""
        cases = {
            401: "is_unauthorized",
            403: "is_forbidden",
            404: "is_not_found",
            429: "is_rate_limited",
        }
        for code, predicate in cases.items():
            with self.subTest(code=code):
                error = TelegramAPIError(TelegramResponse(ok=False, error_code=code))
                self.assertTrue(getattr(error, predicate))
                self.assertFalse(error.is_bad_request)

    def test_defaults_without_details(self) -> None:
        """Test an error response without code or description."""
        error = TelegramAPIError(TelegramResponse(ok=False))

        self.assertEqual(error.error_code, 0)
        self.assertEqual(error.description, "Unknown error")
        self.assertIsNone(error.retry_after)

    def test_get_error_code(self) -> None:
        """Test error codes for API and other errors."""
        api_error = TelegramAPIError(TelegramResponse(ok=False, error_code=400))

        self.assertEqual(get_error_code(api_error), 400)
        self.assertEqual(get_error_code(TelegramClientError("down")), -1)
        self.assertEqual(get_error_code(ValueError()), -1)


if __name__ == "__main__":
    unittest.main()
