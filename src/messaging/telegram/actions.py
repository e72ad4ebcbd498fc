"""Compilation and execution of message actions.

An action describes a message abstractly. ``ActionCompiler`` turns it into a
single Bot API method call, minting and persisting callback identifiers for
its interactive buttons. ``ActionExecutor`` sends the compiled call and
reports the outcome as an ``ActionResult``.
"""

import logging

from src.messaging.telegram.callbacks import (
    CallbackIdGenerator,
    CallbackSaveError,
    CallbackSaver,
)
from src.messaging.telegram.client import TelegramClient, TelegramClientError
from src.messaging.telegram.dispatcher import MethodDispatcher
from src.messaging.telegram.keyboards import resolve_reply_markup
from src.messaging.telegram.models import (
    Action,
    ActionResult,
    CallbackData,
    MethodCall,
)

logger = logging.getLogger(__name__)


class ActionCompiler:
    """Compiles actions into Bot API method calls."""

    def __init__(
        self,
        callback_saver: CallbackSaver | None = None,
        generator: CallbackIdGenerator | None = None,
        dispatcher: MethodDispatcher | None = None,
    ) -> None:
        """Initialise the compiler.

        :param callback_saver: Gateway persisting callback bindings. Without one,
            bindings are minted but not stored.
        :param generator: Callback identifier generator.
        :param dispatcher: Method dispatcher.
        """
        self._callback_saver = callback_saver
        self._generator = generator or CallbackIdGenerator()
        self._dispatcher = dispatcher or MethodDispatcher()

    def compile(self, action: Action) -> MethodCall | None:
        """Compile an action into a method call.

        :param action: The action to compile.
        :returns: The method call, or None when the action has nothing to send
            (unsupported stream or missing attachment).
        :raises CallbackSaveError: If callback bindings cannot be persisted.
        """
        if not action.is_supported_stream:
            logger.info(f"Skipping action with unsupported stream {action.content.stream!r}")
            return None

        call = self._dispatcher.dispatch(action)
        if call is None:
            return None

        reply_markup, callbacks = resolve_reply_markup(action, self._generator)
        if callbacks:
            self._save_callbacks(callbacks)
        if reply_markup is not None:
            call.params["reply_markup"] = reply_markup

        return call

    def _save_callbacks(self, callbacks: list[CallbackData]) -> None:
        if self._callback_saver is None:
            logger.warning(f"No callback saver configured, {len(callbacks)} bindings not stored")
            return

        self._callback_saver.save_batch(callbacks)


class ActionExecutor:
    """Sends actions through the Telegram client."""

    def __init__(self, client: TelegramClient, compiler: ActionCompiler | None = None) -> None:
        """Initialise the executor.

        :param client: Telegram client used for sending.
        :param compiler: Action compiler. Defaults to one without a callback saver.
        """
        self._client = client
        self._compiler = compiler or ActionCompiler()

    def execute(self, action: Action) -> ActionResult:
        """Compile and send an action.

        Never raises for expected failures: an unsupported stream or missing
        attachment gives ``success=False`` without an error, while persistence
        and transport failures are returned in ``error``.

        :param action: The action to execute.
        :returns: The outcome of the action.
        """
        try:
            call = self._compiler.compile(action)
        except CallbackSaveError as e:
            logger.exception(f"Aborting action for chat_id={action.user.tg_id}: {e}")
            return ActionResult(success=False, error=e)

        if call is None:
            return ActionResult(success=False)

        self._send_reaction(action)

        try:
            response = self._client.send(call, bot_token=action.token or None)
        except TelegramClientError as e:
            logger.exception(f"Failed to send {call.method} to chat_id={action.user.tg_id}")
            return ActionResult(success=False, response=getattr(e, "response", None), error=e)

        logger.info(
            f"Action sent: method={call.method}, chat_id={action.user.tg_id}, "
            f"message_id={response.message_id}"
        )
        return ActionResult(success=True, message_id=response.message_id, response=response)

    def _send_reaction(self, action: Action) -> None:
        """Fire the requested chat action, ignoring failures."""
        reaction = action.content.parameters.send_reaction
        if not reaction:
            return

        try:
            self._client.send_chat_action(
                action.user.tg_id, reaction, bot_token=action.token or None
            )
        except TelegramClientError as e:
            logger.warning(f"Failed to send chat action {reaction!r}: {e}")


def execute_action(
    client: TelegramClient,
    action: Action,
    callback_saver: CallbackSaver | None = None,
) -> ActionResult:
    """Compile and send an action with a default compiler.

    :param client: Telegram client used for sending.
    :param action: The action to execute.
    :param callback_saver: Gateway persisting callback bindings.
    :returns: The outcome of the action.
    """
    executor = ActionExecutor(client, ActionCompiler(callback_saver=callback_saver))
    return executor.execute(action)
