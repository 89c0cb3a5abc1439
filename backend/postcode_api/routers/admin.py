"""
User management router — administrator-only.

GET    /api/users             — every profile (key prefix only)
PUT    /api/users/{user_id}   — set a user's daily rate limit
DELETE /api/users/{user_id}   — delete a user (usage rows cascade)
"""

import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from postcode_api.auth.dependencies import AdminProfile
from postcode_api.core.database import get_db_session
from postcode_api.models.profile import Profile
from postcode_api.models.usage import UsageRecord
from postcode_api.schemas.account import RateLimitUpdate, UserOut

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Admin"])

DbSession = Annotated[AsyncSession, Depends(get_db_session)]


async def _get_user_or_404(session: AsyncSession, user_id: uuid.UUID) -> Profile:
    profile = await session.get(Profile, user_id)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} not found",
        )
    return profile


@router.get("", response_model=list[UserOut], summary="List all users")
async def list_users(_admin: AdminProfile, session: DbSession) -> list[Profile]:
    result = await session.execute(select(Profile).order_by(Profile.created_at.asc()))
    return list(result.scalars().all())


@router.put("/{user_id}", response_model=UserOut, summary="Update a user's rate limit")
async def update_rate_limit(
    user_id: uuid.UUID,
    payload: RateLimitUpdate,
    admin: AdminProfile,
    session: DbSession,
) -> Profile:
    profile = await _get_user_or_404(session, user_id)
    profile.rate_limit = payload.rate_limit
    await session.commit()

    logger.info("Admin %s set rate limit of %s to %d", admin.id, user_id, payload.rate_limit)
    return profile


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a user",
)
async def delete_user(
    user_id: uuid.UUID,
    admin: AdminProfile,
    session: DbSession,
) -> Response:
    if user_id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Administrators cannot delete their own account.",
        )

    profile = await _get_user_or_404(session, user_id)

    # Explicit delete keeps SQLite (no FK enforcement by default) in step
    # with the ON DELETE CASCADE that Postgres applies.
    await session.execute(delete(UsageRecord).where(UsageRecord.user_id == user_id))
    await session.delete(profile)
    await session.commit()

    logger.info("Admin %s deleted user %s", admin.id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
