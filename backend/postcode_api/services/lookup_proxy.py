"""
Lookup proxy — the API-key-gated path from client to postcode provider.

Per-request states:
    Received → KeyChecked → ProviderCalled → Logged → Responded
with Failed reachable from every step.

  1. Received        no key → MissingKey (nothing called, nothing logged)
  2. KeyChecked      validator; Unauthorized → stop, nothing logged.
                     Then the profile's domain allow-list and daily quota.
  3. ProviderCalled  provider outcome → result | NotFound | RateLimited
                     | ProviderError
  4. Logged          exactly one usage row for the identified user, written
                     AFTER the provider call so it can carry the outcome.
                     A StoreError here is logged and dropped.
  5. Responded       the router serializes the result or the ApiError.

Every invocation that passes step 2 writes one row; N calls → N rows.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from postcode_api.auth.api_key import validate_api_key
from postcode_api.core.errors import ApiError, MissingKey, StoreError
from postcode_api.models.address import ResidentialAddress
from postcode_api.models.usage import USAGE_ERROR, USAGE_SUCCESS
from postcode_api.schemas.postcodes import AddressSummary, PostcodeLocation
from postcode_api.services.domains import ensure_domain_allowed
from postcode_api.services.postcode_provider import PostcodeProvider, location_summary
from postcode_api.services.rate_limiter import check_and_increment_quota
from postcode_api.services.usage_sink import UsageSink

logger = logging.getLogger(__name__)

ENDPOINT_SEARCH = "postcode-search"
ENDPOINT_GEOCODE = "postcode-geocode"
ENDPOINT_AUTOCOMPLETE = "postcode-autocomplete"

T = TypeVar("T")


def _normalize_postcode(postcode: str) -> str:
    return postcode.replace(" ", "").upper()


def _residential_summary(address: ResidentialAddress) -> AddressSummary:
    return AddressSummary(
        id=str(address.id),
        type="residential",
        building_number=address.building_number,
        street_address=address.street_address,
        town=address.town,
        postcode=address.postcode,
        address=address.full_address,
        created_at=address.created_at,
    )


class LookupProxy:
    """One instance per request; holds no state between requests."""

    def __init__(
        self,
        session: AsyncSession,
        provider: PostcodeProvider,
        usage_sink: UsageSink,
        *,
        nearby_radius: int,
    ) -> None:
        self._session = session
        self._provider = provider
        self._usage_sink = usage_sink
        self._nearby_radius = nearby_radius

    # ── Public operations ───────────────────────────────────
    async def search(
        self, postcode: str, presented_key: str | None, domain: str | None,
    ) -> list[AddressSummary]:
        """Provider places near the postcode plus stored residential entries."""
        return await self._run(
            ENDPOINT_SEARCH, presented_key, domain,
            lambda: self._find_summaries(postcode),
        )

    async def geocode(
        self, postcode: str, presented_key: str | None, domain: str | None,
    ) -> PostcodeLocation:
        return await self._run(
            ENDPOINT_GEOCODE, presented_key, domain,
            lambda: self._provider.geocode(postcode),
        )

    async def autocomplete(
        self, partial: str, presented_key: str | None, domain: str | None,
    ) -> list[str]:
        return await self._run(
            ENDPOINT_AUTOCOMPLETE, presented_key, domain,
            lambda: self._provider.autocomplete(partial),
        )

    # ── State machine ───────────────────────────────────────
    async def _run(
        self,
        endpoint: str,
        presented_key: str | None,
        domain: str | None,
        call: Callable[[], Awaitable[T]],
    ) -> T:
        # ── 1. Received ─────────────────────────────────────
        if not presented_key:
            raise MissingKey()

        # ── 2. KeyChecked ───────────────────────────────────
        profile = await validate_api_key(self._session, presented_key)
        # Captured now: a later rollback expires the loaded profile.
        user_id = profile.id

        outcome = USAGE_ERROR
        try:
            ensure_domain_allowed(profile.allowed_domains or [], domain)
            await check_and_increment_quota(self._session, profile)

            # ── 3. ProviderCalled ───────────────────────────
            result = await call()
            outcome = USAGE_SUCCESS
            return result
        except ApiError as exc:
            logger.info("%s failed for %s: %s", endpoint, user_id, exc.kind)
            raise
        finally:
            # ── 4. Logged ───────────────────────────────────
            await self._record(user_id, endpoint, outcome)

    async def _record(self, user_id: uuid.UUID, endpoint: str, outcome: str) -> None:
        try:
            await self._usage_sink.record(
                user_id,
                endpoint,
                outcome,
                datetime.datetime.now(datetime.timezone.utc),
            )
        except StoreError:
            logger.warning(
                "Usage record not stored: user=%s endpoint=%s status=%s",
                user_id, endpoint, outcome,
                exc_info=True,
            )

    # ── Search helpers ──────────────────────────────────────
    async def _find_summaries(self, postcode: str) -> list[AddressSummary]:
        location = await self._provider.geocode(postcode)
        places = await self._provider.nearby(location, self._nearby_radius)
        if not places:
            places = [location_summary(location, "1")]

        residential = await self._residential_summaries(location.postcode)
        return places + residential

    async def _residential_summaries(self, postcode: str) -> list[AddressSummary]:
        stmt = (
            select(ResidentialAddress)
            .where(
                func.upper(func.replace(ResidentialAddress.postcode, " ", ""))
                == _normalize_postcode(postcode)
            )
            .order_by(ResidentialAddress.created_at.desc())
        )
        try:
            result = await self._session.execute(stmt)
            addresses = result.scalars().all()
        except SQLAlchemyError:
            await self._session.rollback()
            logger.warning("Residential address lookup failed for %s", postcode, exc_info=True)
            return []

        return [_residential_summary(address) for address in addresses]
