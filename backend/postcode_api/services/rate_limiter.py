"""
Per-profile daily quota for the lookup routes.

Each profile carries `rate_limit` (requests per UTC day), plus
`request_count` / `last_request_time` for the current day.

Design decisions:
  • Check BEFORE increment: rejected requests (429) don't inflate counters.
  • Atomic UPDATE … SET request_count = CASE …: the increment is computed
    by the database, so concurrent requests never lose an increment.
  • Time bucketing: day = midnight UTC. A last_request_time before today's
    bucket means the counter belongs to a previous day and restarts at 1.
  • rate_limit = 0 disables the quota for that profile.
"""

from __future__ import annotations

import datetime
import logging

from sqlalchemy import case, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from postcode_api.core.errors import RateLimited, StoreError
from postcode_api.models.profile import Profile

logger = logging.getLogger(__name__)


def _day_bucket(now: datetime.datetime) -> datetime.datetime:
    """Floor a timestamp to midnight UTC of the current day."""
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def _as_utc(value: datetime.datetime) -> datetime.datetime:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


def current_count(profile: Profile, now: datetime.datetime) -> int:
    """Requests already made by this profile in today's bucket."""
    if profile.last_request_time is None:
        return 0
    if _as_utc(profile.last_request_time) < _day_bucket(now):
        return 0
    return profile.request_count


async def check_and_increment_quota(
    session: AsyncSession,
    profile: Profile,
    now: datetime.datetime | None = None,
) -> None:
    """
    Check the profile's daily limit and count this request if allowed.

    Raises:
        RateLimited: the profile already used its quota today.
        StoreError:  the counter update failed.
    """
    now = now or datetime.datetime.now(datetime.timezone.utc)

    # ── Check (read-only, from the row the validator loaded) ─
    if profile.rate_limit > 0 and current_count(profile, now) >= profile.rate_limit:
        raise RateLimited()

    # ── Increment (only after the check passes) ─────────────
    day_start = _day_bucket(now)
    stmt = (
        update(Profile)
        .where(Profile.id == profile.id)
        .values(
            request_count=case(
                (Profile.last_request_time >= day_start, Profile.request_count + 1),
                else_=1,
            ),
            last_request_time=now,
        )
        # The loaded profile is not read again after this point.
        .execution_options(synchronize_session=False)
    )
    try:
        await session.execute(stmt)
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Failed to update request counter for profile %s", profile.id)
        raise StoreError() from exc
