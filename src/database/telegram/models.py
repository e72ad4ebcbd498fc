"""SQLAlchemy ORM models for Telegram callback tracking."""

import uuid as uuid_module
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.database.core import Base

# Length of a minted callback identifier (hex SHA-1)
QUERY_DATA_LENGTH = 40


class CallbackRecord(Base):
    """ORM model binding a minted callback identifier to a button payload.

    Records are written while an action is compiled and read when the user
    presses the button. They are never updated.
    """

    __tablename__ = "telegram_callbacks"

    id: Mapped[uuid_module.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid_module.uuid4,
    )
    project: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    query_data: Mapped[str] = mapped_column(
        String(QUERY_DATA_LENGTH),
        nullable=False,
        unique=True,
    )
    action: Mapped[Any | None] = mapped_column(
        JSON,
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    __table_args__ = (Index("idx_telegram_callbacks_project_user", "project", "user_id"),)

    def __repr__(self) -> str:
        """Return string representation of the record."""
        return (
            f"CallbackRecord(project={self.project!r}, user_id={self.user_id!r}, "
            f"query_data={self.query_data!r})"
        )
