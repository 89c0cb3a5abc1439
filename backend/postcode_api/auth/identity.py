"""
Client for the hosted identity & session provider.

The provider owns sign-up, passwords and sessions. This service only asks
it one question: "who does this session token belong to?", via the
GoTrue-compatible `GET {AUTH_URL}/user` endpoint.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Protocol

import httpx

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """A session token could not be resolved. Logged, never shown to clients."""


@dataclass(frozen=True, slots=True)
class Identity:
    """The identity provider's view of the signed-in user."""

    user_id: uuid.UUID
    email: str
    full_name: str | None = None


class IdentityProvider(Protocol):
    async def resolve(self, session_token: str) -> Identity: ...

    async def aclose(self) -> None: ...


class HostedAuthClient:
    """httpx-backed IdentityProvider."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=10.0)
        self._api_key = api_key

    async def aclose(self) -> None:
        await self._client.aclose()

    async def resolve(self, session_token: str) -> Identity:
        """
        Exchange a session token for an Identity.

        Raises:
            AuthenticationError: token rejected, provider unreachable,
                                 or response missing id/email.
        """
        headers = {"Authorization": f"Bearer {session_token}"}
        if self._api_key:
            headers["apikey"] = self._api_key

        try:
            response = await self._client.get("/user", headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Identity provider unreachable: %s", exc)
            raise AuthenticationError("identity provider unreachable") from exc

        if response.status_code != 200:
            raise AuthenticationError(
                f"identity provider rejected session ({response.status_code})"
            )

        try:
            data = response.json()
            user_id = uuid.UUID(data["id"])
            email = data["email"]
        except (KeyError, TypeError, ValueError) as exc:
            logger.error("Unparseable identity provider response: %s", exc)
            raise AuthenticationError("malformed identity response") from exc

        metadata = data.get("user_metadata") or {}
        return Identity(
            user_id=user_id,
            email=email,
            full_name=metadata.get("full_name"),
        )
