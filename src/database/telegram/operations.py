"""Database operations for Telegram callback records."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from src.database.telegram.models import CallbackRecord

if TYPE_CHECKING:
    from src.messaging.telegram.models import CallbackData

logger = logging.getLogger(__name__)


def create_callback_records(
    session: Session,
    data: list[CallbackData],
) -> list[CallbackRecord]:
    """Create callback records for a batch of bindings.

    :param session: Database session.
    :param data: Callback bindings to persist.
    :returns: The created records, in input order.
    """
    records = [
        CallbackRecord(
            project=item.project,
            user_id=item.user_id,
            query_data=item.query_data,
            action=item.action,
        )
        for item in data
    ]
    session.add_all(records)
    session.flush()
    logger.info(f"Created {len(records)} callback records")
    return records


def get_callback_by_query_data(
    session: Session,
    query_data: str,
) -> CallbackRecord | None:
    """Get the callback record for a minted identifier.

    :param session: Database session.
    :param query_data: The identifier carried by the pressed button.
    :returns: The record if found, None otherwise.
    """
    return (
        session.query(CallbackRecord).filter(CallbackRecord.query_data == query_data).one_or_none()
    )
