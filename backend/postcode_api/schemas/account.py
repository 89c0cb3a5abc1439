"""
Pydantic v2 schemas for the account, address-book and admin routes.

The raw API key appears in exactly one schema — ApiKeyCreated — and only
in the response to the request that generated it.
"""

from __future__ import annotations

import datetime
import uuid

from pydantic import BaseModel, ConfigDict, Field


# ── Account ─────────────────────────────────────────────────
class ProfileOut(BaseModel):
    """The caller's own profile."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    full_name: str | None
    api_key_prefix: str | None
    key_generated_at: datetime.datetime | None
    rate_limit: int
    request_count: int
    last_request_time: datetime.datetime | None
    allowed_domains: list[str]
    is_admin: bool


class ApiKeyCreated(BaseModel):
    """Returned ONCE when a key is generated — it is never shown again."""

    api_key: str = Field(..., description="Raw API key. Store it now.")
    prefix: str
    generated_at: datetime.datetime


class UsageRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    endpoint: str
    status: str
    timestamp: datetime.datetime


class DailyUsageOut(BaseModel):
    """Per-day outcome counts for the usage graph."""

    date: datetime.date
    success: int
    failed: int


class DomainIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    domain: str = Field(
        ...,
        min_length=1,
        max_length=253,
        examples=["example.com", "localhost:5173"],
    )


# ── Address book ────────────────────────────────────────────
class AddressIn(BaseModel):
    """Create / edit payload. full_address is composed server-side."""

    model_config = ConfigDict(extra="forbid")

    postcode: str = Field(..., min_length=1, max_length=10, examples=["SW1A 1AA"])
    building_number: str = Field(..., min_length=1, max_length=50, examples=["10"])
    street_address: str = Field(..., min_length=1, examples=["Downing Street"])
    town: str = Field(..., min_length=1, examples=["London"])


class AddressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    postcode: str
    building_number: str
    street_address: str
    town: str
    full_address: str
    created_at: datetime.datetime


# ── Admin ───────────────────────────────────────────────────
class UserOut(BaseModel):
    """Admin view of a profile. The key itself is never listed."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    full_name: str | None
    api_key_prefix: str | None
    rate_limit: int
    request_count: int
    last_request_time: datetime.datetime | None
    is_admin: bool


class RateLimitUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    rate_limit: int = Field(..., ge=0, alias="rateLimit")
