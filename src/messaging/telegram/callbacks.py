"""Callback identifiers for Telegram inline keyboard buttons.

Each interactive button carries an opaque identifier as its ``callback_data``.
The identifier is bound to the caller's payload through a ``CallbackSaver``
so that a later callback query can be resolved back to the payload.
"""

import hashlib
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from contextlib import AbstractContextManager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.database.connection import create_tables, get_session
from src.database.telegram import create_callback_records
from src.messaging.telegram.models import CallbackData

logger = logging.getLogger(__name__)

# Width of the seed fed to the hash, in bytes
SEED_BYTES = 8

_SEED_MASK = (1 << (SEED_BYTES * 8)) - 1


class CallbackSaveError(Exception):
    """Raised when callback data cannot be persisted."""

    pass


class CallbackIdGenerator:
    """Mints callback identifiers from a seed source and a button index.

    The default source is the wall clock in nanoseconds. Identifiers are
    unique within one process as long as the same index is not minted twice
    within one tick of the source; they are not secrets.
    """

    def __init__(self, source: Callable[[], int] = time.time_ns) -> None:
        """Initialise the generator.

        :param source: Callable returning an integer seed for each mint.
        """
        self._source = source

    def mint(self, index: int) -> str:
        """Mint an identifier for the button at the given position.

        :param index: Position of the button among the interactive buttons.
        :returns: 40 character hexadecimal identifier.
        """
        seed = (self._source() ^ index) & _SEED_MASK
        return hashlib.sha1(seed.to_bytes(SEED_BYTES, "big")).hexdigest()


_default_generator = CallbackIdGenerator()


def generate_callback_hash(index: int) -> str:
    """Mint a callback identifier using the wall clock.

    :param index: Position of the button among the interactive buttons.
    :returns: 40 character hexadecimal identifier.
    """
    return _default_generator.mint(index)


class CallbackSaver(ABC):
    """Persistence gateway for callback data."""

    @abstractmethod
    def save_one(self, data: CallbackData) -> None:
        """Persist a single callback binding.

        :param data: The binding to persist.
        :raises CallbackSaveError: If persisting fails.
        """
        ...

    @abstractmethod
    def save_batch(self, data: list[CallbackData]) -> None:
        """Persist several callback bindings at once.

        :param data: The bindings to persist.
        :raises CallbackSaveError: If persisting fails.
        """
        ...


class DatabaseCallbackSaver(CallbackSaver):
    """CallbackSaver storing bindings in the ``telegram_callbacks`` table."""

    def __init__(
        self,
        session_factory: Callable[[], AbstractContextManager[Session]] = get_session,
        *,
        create_schema: bool = False,
    ) -> None:
        """Initialise the saver.

        :param session_factory: Context manager factory yielding a session that
            commits on success.
        :param create_schema: Create missing tables on the shared engine before
            the first write.
        """
        self._session_factory = session_factory
        self._schema_pending = create_schema

    def save_one(self, data: CallbackData) -> None:
        """Persist a single callback binding.

        :param data: The binding to persist.
        :raises CallbackSaveError: If the database write fails.
        """
        self.save_batch([data])

    def save_batch(self, data: list[CallbackData]) -> None:
        """Persist several callback bindings in one transaction.

        :param data: The bindings to persist.
        :raises CallbackSaveError: If the database is not configured or the write fails.
        """
        if not data:
            return

        try:
            if self._schema_pending:
                create_tables()
                self._schema_pending = False
            with self._session_factory() as session:
                create_callback_records(session, data)
        except KeyError as e:
            raise CallbackSaveError(f"Database not configured: missing {e}") from e
        except SQLAlchemyError as e:
            raise CallbackSaveError(f"Failed to save {len(data)} callback records: {e}") from e

        logger.debug(f"Saved {len(data)} callback records")
