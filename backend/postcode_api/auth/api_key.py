"""
API-key validator for the postcode lookup routes.

Flow:
  1. Hash the presented key (SHA-256, exact: no trimming or casing)
  2. Look up profiles by api_key_hash
  3. Accept only when exactly ONE profile matches

Security:
  • Same Unauthorized failure for unknown keys, ambiguous matches and
    store errors; callers can't tell them apart
  • Raw keys are NEVER logged
  • Read-only: no commits, no shared state
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from postcode_api.auth.hashing import hash_api_key
from postcode_api.core.errors import Unauthorized
from postcode_api.models.profile import Profile

logger = logging.getLogger(__name__)


def extract_presented_key(
    x_api_key: str | None,
    authorization: str | None,
) -> str | None:
    """
    Pick the API key out of the request headers.

    X-API-Key wins; otherwise a `Bearer <key>` Authorization header is
    accepted. The value is returned verbatim.
    """
    if x_api_key:
        return x_api_key

    if authorization:
        parts = authorization.split(" ", maxsplit=1)
        if len(parts) == 2 and parts[0].lower() == "bearer" and parts[1]:
            return parts[1]

    return None


async def validate_api_key(session: AsyncSession, presented_key: str) -> Profile:
    """
    Resolve a presented key to exactly one Profile.

    Raises Unauthorized for:
      - no matching profile
      - more than one matching profile
      - any backing-store error
    """
    stmt = select(Profile).where(Profile.api_key_hash == hash_api_key(presented_key))

    try:
        result = await session.execute(stmt)
        matches = result.scalars().all()
    except SQLAlchemyError:
        logger.exception("Profile lookup failed during API key validation")
        raise Unauthorized()

    if len(matches) != 1:
        if len(matches) > 1:
            logger.error("API key hash matches %d profiles", len(matches))
        raise Unauthorized()

    return matches[0]
