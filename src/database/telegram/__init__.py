"""Telegram callback persistence."""

from src.database.telegram.models import CallbackRecord
from src.database.telegram.operations import (
    create_callback_records,
    get_callback_by_query_data,
)

__all__ = [
    "CallbackRecord",
    "create_callback_records",
    "get_callback_by_query_data",
]
