"""
SQLAlchemy model for the `api_usage` table.

Each row records the outcome of ONE proxied lookup for ONE identified
user. Rows are append-only: inserted by the usage sink, read back in
timestamp order by the account endpoints, never updated.

Design notes:
  • user_id is a foreign reference to profiles.id, not ownership;
    rows go away only when the profile itself is deleted.
  • status is constrained to 'success' | 'error' at the DB level.
  • The (user_id, timestamp) index serves the dashboard queries.
"""

import datetime
import uuid

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from postcode_api.core.database import Base

USAGE_SUCCESS = "success"
USAGE_ERROR = "error"


class UsageRecord(Base):
    """One audit-log row for a single lookup outcome."""

    __tablename__ = "api_usage"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    endpoint: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False)
    timestamp: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('success', 'error')",
            name="ck_api_usage_status_valid",
        ),
        Index("ix_api_usage_user_timestamp", "user_id", "timestamp"),
    )

    def __repr__(self) -> str:
        return (
            f"<UsageRecord user={self.user_id!s:.8} endpoint={self.endpoint} "
            f"status={self.status}>"
        )
