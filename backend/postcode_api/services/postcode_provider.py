"""
Postcode / places provider capability and its postcodes.io implementation.

The lookup proxy only depends on the PostcodeProvider protocol:
  • geocode(postcode)          → PostcodeLocation
  • nearby(location, radius)   → list[AddressSummary]
  • autocomplete(partial)      → list[str]
so the concrete provider can be swapped (tests inject a fake).

Upstream outcome mapping (shared by every call):
  • 429                        → RateLimited
  • 404                        → NotFound
  • other non-200 / transport  → ProviderError
  • unparseable body           → ProviderError
No retries. A retry is the user clicking search again.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol
from urllib.parse import quote

import httpx

from postcode_api.core.errors import NotFound, ProviderError, RateLimited
from postcode_api.schemas.postcodes import AddressSummary, PostcodeLocation

logger = logging.getLogger(__name__)


class PostcodeProvider(Protocol):
    async def geocode(self, postcode: str) -> PostcodeLocation: ...

    async def nearby(
        self, location: PostcodeLocation, radius: int,
    ) -> list[AddressSummary]: ...

    async def autocomplete(self, partial: str) -> list[str]: ...

    async def aclose(self) -> None: ...


def _location_from_result(result: dict[str, Any]) -> PostcodeLocation:
    return PostcodeLocation(
        postcode=result["postcode"],
        latitude=result.get("latitude"),
        longitude=result.get("longitude"),
        town=result.get("admin_district"),
        ward=result.get("admin_ward"),
        region=result.get("region"),
        country=result.get("country"),
    )


def location_summary(location: PostcodeLocation, summary_id: str) -> AddressSummary:
    """Build a provider-sourced summary for one postcode location."""
    street = location.ward or ""
    town = location.town or location.region or ""
    address = ", ".join(part for part in (street, town, location.postcode) if part)
    return AddressSummary(
        id=summary_id,
        type="google_place",
        street_address=street,
        town=town,
        postcode=location.postcode,
        address=address,
    )


class PostcodesIoProvider:
    """PostcodeProvider backed by https://api.postcodes.io."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float | None = None,
        nearby_limit: int = 10,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._nearby_limit = nearby_limit

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET a postcodes.io resource and return its `result` member."""
        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as exc:
            logger.error("Postcode provider unreachable: %s", type(exc).__name__)
            raise ProviderError() from exc

        if response.status_code == 429:
            logger.warning("Postcode provider rate limited %s", path)
            raise RateLimited()
        if response.status_code == 404:
            raise NotFound()
        if response.status_code != 200:
            logger.error(
                "Postcode provider error: status=%d body=%s",
                response.status_code,
                response.text[:500],
            )
            raise ProviderError()

        try:
            return response.json()["result"]
        except (ValueError, KeyError, TypeError) as exc:
            logger.error("Unparseable postcode provider response: %s", exc)
            raise ProviderError() from exc

    async def geocode(self, postcode: str) -> PostcodeLocation:
        result = await self._get(f"/postcodes/{quote(postcode, safe='')}")
        try:
            return _location_from_result(result)
        except (KeyError, TypeError, ValueError) as exc:
            logger.error("Malformed geocode result: %s", exc)
            raise ProviderError() from exc

    async def nearby(
        self, location: PostcodeLocation, radius: int,
    ) -> list[AddressSummary]:
        """Postcodes within `radius` metres, nearest first."""
        if location.latitude is None or location.longitude is None:
            return []

        results = await self._get(
            "/postcodes",
            params={
                "lon": location.longitude,
                "lat": location.latitude,
                "radius": radius,
                "limit": self._nearby_limit,
            },
        )
        # postcodes.io answers `"result": null` when nothing is in range
        try:
            return [
                location_summary(_location_from_result(item), str(index))
                for index, item in enumerate(results or [], start=1)
            ]
        except (KeyError, TypeError, ValueError) as exc:
            logger.error("Malformed nearby result: %s", exc)
            raise ProviderError() from exc

    async def autocomplete(self, partial: str) -> list[str]:
        result = await self._get(f"/postcodes/{quote(partial, safe='')}/autocomplete")
        if result is None:
            return []
        if not isinstance(result, list):
            raise ProviderError()
        return [str(item) for item in result]
