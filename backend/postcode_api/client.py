"""
Async client for the postcode lookup API, plus the type-ahead debounce
used while a user is typing a postcode.

    async with PostcodeLookupClient(base_url, api_key) as client:
        debouncer = SuggestionDebouncer(client.suggest, on_suggestions=show)
        debouncer.push("SW1")
        debouncer.push("SW1A")          # cancels the pending "SW1" fetch
        summaries = await debouncer.select("SW1A 1AA", client.search)
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from types import TracebackType
from typing import Any, TypeVar
from urllib.parse import quote

import httpx

from postcode_api.schemas.postcodes import AddressSummary, PostcodeLocation

logger = logging.getLogger(__name__)

DEFAULT_QUIET_PERIOD = 0.3  # seconds without a keystroke before fetching

T = TypeVar("T")


class LookupFailed(Exception):
    """A lookup call failed; `message` is suitable for showing to the user."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _failure_message(status_code: int) -> str:
    if status_code == 429:
        return "Rate limit exceeded. Please sign up for full access."
    if status_code == 404:
        return "Postcode not found"
    return "Error fetching postcode data"


class PostcodeLookupClient:
    """Calls the /api/postcodes routes with an API key."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=30.0)
        self._headers = {"X-API-Key": api_key, "Accept": "application/json"}

    async def __aenter__(self) -> PostcodeLookupClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, parse: Callable[[Any], T]) -> T:
        """GET `path` and hand the decoded body to `parse`."""
        try:
            response = await self._client.get(path, headers=self._headers)
        except httpx.HTTPError as exc:
            raise LookupFailed("Error searching postcode") from exc

        if response.status_code != 200:
            raise LookupFailed(_failure_message(response.status_code), response.status_code)

        # A gateway page or a truncated body still arrives as a 200
        try:
            return parse(response.json())
        except (ValueError, KeyError, TypeError) as exc:
            logger.debug("Unparseable response from %s: %s", path, exc)
            raise LookupFailed("Error fetching postcode data", response.status_code) from exc

    async def search(self, postcode: str) -> list[AddressSummary]:
        if not postcode.strip():
            raise LookupFailed("Please enter a postcode")
        return await self._get(
            f"/api/postcodes/{quote(postcode, safe='')}",
            lambda data: [
                AddressSummary.model_validate(item)
                for item in data["SearchEnd"]["Summaries"]
            ],
        )

    async def geocode(self, postcode: str) -> PostcodeLocation:
        return await self._get(
            f"/api/postcodes/{quote(postcode, safe='')}/geocode",
            lambda data: PostcodeLocation.model_validate(data["result"]),
        )

    async def suggest(self, partial: str) -> list[str]:
        return await self._get(
            f"/api/postcodes/{quote(partial, safe='')}/autocomplete",
            lambda data: [str(item) for item in data["result"]],
        )


class SuggestionDebouncer:
    """
    Fetch suggestions only once typing has paused.

    Each push() cancels whatever is pending and starts a fresh quiet
    period; only a value that survives the full period is fetched.
    select() skips the wait entirely and runs the full lookup.
    """

    def __init__(
        self,
        fetch: Callable[[str], Awaitable[list[str]]],
        *,
        on_suggestions: Callable[[list[str]], None] | None = None,
        on_error: Callable[[LookupFailed], None] | None = None,
        quiet_period: float = DEFAULT_QUIET_PERIOD,
    ) -> None:
        self._fetch = fetch
        self._on_suggestions = on_suggestions
        self._on_error = on_error
        self._quiet_period = quiet_period
        self._pending: asyncio.Task[None] | None = None
        self.suggestions: list[str] = []

    @property
    def pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def push(self, value: str) -> None:
        """Register a keystroke. Blank input clears without fetching."""
        self.cancel()
        value = value.strip()
        if not value:
            self.suggestions = []
            return
        self._pending = asyncio.get_running_loop().create_task(self._fire_after_quiet(value))

    def cancel(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def select(
        self,
        postcode: str,
        lookup: Callable[[str], Awaitable[T]],
    ) -> T:
        """A suggestion was chosen: drop any pending fetch, look it up now."""
        self.cancel()
        return await lookup(postcode)

    async def wait(self) -> None:
        """Wait for the pending fetch, if any (mainly for tests and shutdown)."""
        if self._pending is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._pending

    async def _fire_after_quiet(self, value: str) -> None:
        await asyncio.sleep(self._quiet_period)
        try:
            suggestions = await self._fetch(value)
        except LookupFailed as exc:
            logger.debug("Suggestion fetch for %r failed: %s", value, exc.message)
            if self._on_error is not None:
                self._on_error(exc)
            return

        self.suggestions = suggestions
        if self._on_suggestions is not None:
            self._on_suggestions(suggestions)
