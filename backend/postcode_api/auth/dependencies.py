"""
FastAPI dependencies for session authentication (account, address book
and admin routes).

Flow:
  1. Extract Bearer session token from Authorization header
  2. Resolve it through the identity provider
  3. Load the Profile for that user id, provisioning one on first use
  4. (admin routes) require profile.is_admin

Security:
  • Generic 401 for ALL session failure modes (missing, invalid, expired)
  • Generic 403 for authenticated non-admins on admin routes
  • API keys are NOT accepted here; they only work on /api/postcodes
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from postcode_api.auth.identity import AuthenticationError, Identity, IdentityProvider
from postcode_api.core.config import Settings
from postcode_api.core.database import get_db_session
from postcode_api.models.profile import Profile

logger = logging.getLogger(__name__)

# Generic 401: same message for every session failure
_AUTH_FAILED = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or missing session.",
    headers={"WWW-Authenticate": "Bearer"},
)

_ADMIN_REQUIRED = HTTPException(
    status_code=status.HTTP_403_FORBIDDEN,
    detail="Administrator access required.",
)

_EMAIL_TAKEN = HTTPException(
    status_code=status.HTTP_409_CONFLICT,
    detail="This email is already linked to another account.",
)


def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity_provider


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_current_identity(
    authorization: str | None = Header(default=None, alias="Authorization"),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
) -> Identity:
    """Resolve the Bearer session token to an Identity, or 401."""
    if not authorization:
        raise _AUTH_FAILED

    parts = authorization.split(" ", maxsplit=1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise _AUTH_FAILED

    try:
        return await identity_provider.resolve(parts[1])
    except AuthenticationError as exc:
        logger.info("Session rejected: %s", exc)
        raise _AUTH_FAILED


async def get_current_profile(
    identity: Identity = Depends(get_current_identity),
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
) -> Profile:
    """
    Load the caller's Profile, creating it on first sign-in.

    Usage in routers:
        CurrentProfile = Annotated[Profile, Depends(get_current_profile)]
    """
    profile = await session.get(Profile, identity.user_id)
    if profile is not None:
        return profile

    profile = Profile(
        id=identity.user_id,
        email=identity.email,
        full_name=identity.full_name,
        rate_limit=settings.DEFAULT_RATE_LIMIT,
        allowed_domains=[],
    )
    session.add(profile)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        result = await session.execute(
            select(Profile).where(Profile.id == identity.user_id)
        )
        existing = result.scalar_one_or_none()
        if existing is not None:
            # A concurrent request provisioned it first
            return existing

        # The email belongs to a profile under a different user id
        logger.warning(
            "Cannot provision %s: email already on file for another profile",
            identity.user_id,
        )
        raise _EMAIL_TAKEN

    logger.info("Provisioned profile %s", profile.id)
    return profile


async def require_admin(
    profile: Profile = Depends(get_current_profile),
) -> Profile:
    """Allow the request only for administrator profiles."""
    if not profile.is_admin:
        raise _ADMIN_REQUIRED
    return profile


CurrentProfile = Annotated[Profile, Depends(get_current_profile)]
AdminProfile = Annotated[Profile, Depends(require_admin)]
