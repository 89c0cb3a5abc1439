"""
Profile model — one account, keyed by the identity provider's user id.

Security notes:
  • Raw API keys are NEVER stored. Only a SHA-256 hash is persisted.
  • `api_key_prefix` stores the first 12 characters (e.g., "pk_live_3f9a")
    for identification in logs/UI without exposing the full key.
  • `api_key_hash` is unique, so a key identifies at most one profile.

Quota:
  • `rate_limit` is requests per UTC day; 0 disables the quota.
  • `request_count` / `last_request_time` count the current day only;
    the rate limiter resets them when a new day starts.
"""

import datetime
import uuid

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from postcode_api.core.database import Base


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class Profile(Base):
    """Account record: API key, quota, and domain restrictions."""

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(
        String(320), nullable=False, unique=True,
    )
    full_name: Mapped[str | None] = mapped_column(
        Text, nullable=True,
    )

    # ── API key ─────────────────────────────────────────────
    api_key_hash: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        unique=True,
    )
    api_key_prefix: Mapped[str | None] = mapped_column(
        String(12),
        nullable=True,
    )
    key_generated_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Quota ───────────────────────────────────────────────
    rate_limit: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1000,
    )
    request_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0",
    )
    last_request_time: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Restrictions / roles ────────────────────────────────
    allowed_domains: Mapped[list[str]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=list,
    )
    is_admin: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="false",
    )

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return (
            f"<Profile id={self.id!s:.8} email={self.email!r} "
            f"prefix={self.api_key_prefix!r}>"
        )
