"""
Account router — the signed-in user's own profile, key, domains and usage.

All routes require a session token (identity provider), not an API key.

Endpoints:
  GET    /api/account/profile            — profile view
  POST   /api/account/api-key            — generate / rotate the API key
  GET    /api/account/usage              — most recent usage records
  GET    /api/account/usage/daily        — success / failed counts per day
  POST   /api/account/domains            — add an allowed domain
  DELETE /api/account/domains/{domain}   — remove an allowed domain
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from postcode_api.auth.dependencies import CurrentProfile
from postcode_api.auth.hashing import generate_api_key
from postcode_api.core.database import get_db_session
from postcode_api.models.profile import Profile
from postcode_api.models.usage import USAGE_SUCCESS, UsageRecord
from postcode_api.schemas.account import (
    ApiKeyCreated,
    DailyUsageOut,
    DomainIn,
    ProfileOut,
    UsageRecordOut,
)
from postcode_api.services.domains import clean_domain, is_valid_domain

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Account"])

DbSession = Annotated[AsyncSession, Depends(get_db_session)]


# ── Profile ─────────────────────────────────────────────────
@router.get("/profile", response_model=ProfileOut, summary="Current user's profile")
async def get_profile(profile: CurrentProfile) -> Profile:
    return profile


# ── API key ─────────────────────────────────────────────────
@router.post(
    "/api-key",
    response_model=ApiKeyCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Generate a new API key",
    description=(
        "Replaces any existing key. The raw key is returned in this "
        "response only — it is stored hashed and cannot be shown again."
    ),
)
async def create_api_key(profile: CurrentProfile, session: DbSession) -> ApiKeyCreated:
    issued = generate_api_key()

    profile.api_key_hash = issued.digest
    profile.api_key_prefix = issued.prefix
    profile.key_generated_at = issued.generated_at

    try:
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to store API key for profile %s", profile.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate API key. Please try again.",
        )

    logger.info("API key rotated for profile %s (prefix %s)", profile.id, profile.api_key_prefix)
    return ApiKeyCreated(
        api_key=issued.raw,
        prefix=issued.prefix,
        generated_at=issued.generated_at,
    )


# ── Usage history ───────────────────────────────────────────
@router.get(
    "/usage",
    response_model=list[UsageRecordOut],
    summary="Most recent API usage, newest first",
)
async def list_usage(
    profile: CurrentProfile,
    session: DbSession,
    limit: int = Query(default=10, ge=1, le=500),
) -> list[UsageRecord]:
    stmt = (
        select(UsageRecord)
        .where(UsageRecord.user_id == profile.id)
        .order_by(UsageRecord.timestamp.desc())
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


@router.get(
    "/usage/daily",
    response_model=list[DailyUsageOut],
    summary="Successful vs failed requests per day",
)
async def daily_usage(profile: CurrentProfile, session: DbSession) -> list[DailyUsageOut]:
    """
    SQL: SELECT date(timestamp), SUM(status = 'success'), SUM(status <> 'success')
         FROM api_usage WHERE user_id = :id GROUP BY 1 ORDER BY 1

    date() rather than CAST(… AS DATE) so the query also runs on SQLite.
    """
    day = func.date(UsageRecord.timestamp).label("date")
    stmt = (
        select(
            day,
            func.sum(case((UsageRecord.status == USAGE_SUCCESS, 1), else_=0)).label("success"),
            func.sum(case((UsageRecord.status != USAGE_SUCCESS, 1), else_=0)).label("failed"),
        )
        .where(UsageRecord.user_id == profile.id)
        .group_by(day)
        .order_by(day.asc())
    )
    result = await session.execute(stmt)
    return [
        DailyUsageOut(date=row.date, success=int(row.success), failed=int(row.failed))
        for row in result.all()
    ]


# ── Allowed domains ─────────────────────────────────────────
@router.post(
    "/domains",
    response_model=ProfileOut,
    status_code=status.HTTP_201_CREATED,
    summary="Allow an additional domain for the API key",
)
async def add_domain(payload: DomainIn, profile: CurrentProfile, session: DbSession) -> Profile:
    domain = clean_domain(payload.domain)
    if not is_valid_domain(domain):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Please enter a valid domain name",
        )

    current = list(profile.allowed_domains or [])
    if domain in current:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Domain already exists",
        )

    # Reassign rather than append so the JSON column is marked dirty
    profile.allowed_domains = [*current, domain]
    await session.commit()
    return profile


@router.delete(
    "/domains/{domain}",
    response_model=ProfileOut,
    summary="Remove an allowed domain",
)
async def remove_domain(domain: str, profile: CurrentProfile, session: DbSession) -> Profile:
    target = clean_domain(domain)
    current = list(profile.allowed_domains or [])
    if target not in current:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Domain {target} is not in the allow-list",
        )

    profile.allowed_domains = [d for d in current if d != target]
    await session.commit()
    return profile
