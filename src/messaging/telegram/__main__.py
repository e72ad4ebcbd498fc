"""Send a single message action from the command line.

Usage: python -m src.messaging.telegram [action.json]

The action is read from the given file, or from stdin when no file is given.
Exit status is 0 when the message was sent, 1 on failure and 2 when the action
was skipped.
"""

import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

from src.messaging.telegram.actions import ActionCompiler, ActionExecutor
from src.messaging.telegram.callbacks import DatabaseCallbackSaver
from src.messaging.telegram.client import TelegramClient
from src.messaging.telegram.models import Action
from src.messaging.telegram.utils.config import get_telegram_settings
from src.paths import PROJECT_ROOT
from src.utils.logging import configure_logging

logger = logging.getLogger(__name__)

EXIT_SENT = 0
EXIT_FAILED = 1
EXIT_SKIPPED = 2


def _read_action(args: list[str]) -> str:
    if args:
        return Path(args[0]).read_text(encoding="utf-8")
    return sys.stdin.read()


def main(argv: list[str] | None = None) -> int:
    """Run the command.

    The callback table is only created when the action mints button
    identifiers, so actions without inline buttons need no database.

    :param argv: Command line arguments, without the program name.
    :returns: Process exit status.
    """
    load_dotenv(PROJECT_ROOT / ".env")
    configure_logging()

    args = sys.argv[1:] if argv is None else argv
    try:
        raw = _read_action(args)
    except OSError as e:
        logger.error(f"Cannot read action: {e}")
        return EXIT_FAILED

    try:
        action = Action.model_validate_json(raw)
    except ValidationError as e:
        logger.error(f"Invalid action: {e}")
        return EXIT_FAILED

    try:
        client = TelegramClient.from_settings(get_telegram_settings())
    except ValidationError as e:
        logger.error(f"Invalid Telegram configuration: {e}")
        return EXIT_FAILED

    executor = ActionExecutor(
        client,
        ActionCompiler(callback_saver=DatabaseCallbackSaver(create_schema=True)),
    )
    result = executor.execute(action)

    if result.success:
        print(f"sent message_id={result.message_id}")
        return EXIT_SENT
    if result.is_soft_noop:
        print("skipped")
        return EXIT_SKIPPED
    print(f"failed: {result.error}")
    return EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
