"""
Shared fixtures: a throwaway SQLite store per test, a scripted postcode
provider, a scripted identity provider, and an app wired to all three.
"""

import os

# Settings() is instantiated at import time; give it a URL before any
# postcode_api import happens.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")

import uuid
from collections.abc import Awaitable, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from postcode_api.auth.hashing import display_prefix, hash_api_key
from postcode_api.auth.identity import AuthenticationError, Identity
from postcode_api.core.config import Settings
from postcode_api.core.database import Database
from postcode_api.core.errors import ApiError, NotFound
from postcode_api.main import create_app
from postcode_api.models.profile import Profile
from postcode_api.models.usage import UsageRecord
from postcode_api.schemas.postcodes import AddressSummary, PostcodeLocation
from postcode_api.services.postcode_provider import location_summary

KEY_ONE = "pk_live_0123456789abcdef0123456789abcdef0123456789abcdef"
KEY_TWO = "pk_live_fedcba9876543210fedcba9876543210fedcba9876543210"

WESTMINSTER = PostcodeLocation(
    postcode="SW1A 1AA",
    latitude=51.501009,
    longitude=-0.141588,
    town="Westminster",
    ward="St James's",
    region="London",
    country="England",
)


def _normalize(postcode: str) -> str:
    return postcode.replace(" ", "").upper()


# ── Scripted collaborators ──────────────────────────────────
class FakePostcodeProvider:
    """In-memory PostcodeProvider; set `failure` to make every call raise."""

    def __init__(self) -> None:
        self.locations: dict[str, PostcodeLocation] = {"SW1A1AA": WESTMINSTER}
        self.places: dict[str, list[AddressSummary]] = {
            "SW1A 1AA": [location_summary(WESTMINSTER, "1")],
        }
        self.suggestions: dict[str, list[str]] = {"SW1A": ["SW1A 0AA", "SW1A 1AA"]}
        self.failure: ApiError | None = None
        self.calls: list[tuple[str, str]] = []
        self.closed = False

    async def geocode(self, postcode: str) -> PostcodeLocation:
        self.calls.append(("geocode", postcode))
        if self.failure is not None:
            raise self.failure
        try:
            return self.locations[_normalize(postcode)]
        except KeyError:
            raise NotFound()

    async def nearby(self, location: PostcodeLocation, radius: int) -> list[AddressSummary]:
        self.calls.append(("nearby", location.postcode))
        return list(self.places.get(location.postcode, []))

    async def autocomplete(self, partial: str) -> list[str]:
        self.calls.append(("autocomplete", partial))
        if self.failure is not None:
            raise self.failure
        return list(self.suggestions.get(partial.upper(), []))

    async def aclose(self) -> None:
        self.closed = True


class FakeIdentityProvider:
    """Maps session tokens to identities; anything else is rejected."""

    def __init__(self) -> None:
        self.sessions: dict[str, Identity] = {}

    def sign_in(self, token: str, identity: Identity) -> None:
        self.sessions[token] = identity

    async def resolve(self, session_token: str) -> Identity:
        try:
            return self.sessions[session_token]
        except KeyError:
            raise AuthenticationError("unknown session")

    async def aclose(self) -> None:
        pass


# ── App wiring ──────────────────────────────────────────────
@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'postcode_api.db'}",
        DEFAULT_RATE_LIMIT=1000,
    )


@pytest_asyncio.fixture
async def database(settings):
    db = Database(settings.DATABASE_URL)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def provider() -> FakePostcodeProvider:
    return FakePostcodeProvider()


@pytest.fixture
def identity() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def app(settings, database, provider, identity):
    return create_app(
        settings,
        database=database,
        postcode_provider=provider,
        identity_provider=identity,
    )


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


# ── Seed data ───────────────────────────────────────────────
@pytest.fixture
def make_profile(database, identity) -> Callable[..., Awaitable[Profile]]:
    """
    Insert a profile and sign it in.

    The session token is `token-<email>`; pass api_key to give it a key.
    """

    async def _make(
        email: str = "user@example.com",
        *,
        api_key: str | None = None,
        rate_limit: int = 1000,
        allowed_domains: list[str] | None = None,
        is_admin: bool = False,
    ) -> Profile:
        profile = Profile(
            id=uuid.uuid4(),
            email=email,
            full_name=email.split("@")[0].title(),
            api_key_hash=hash_api_key(api_key) if api_key else None,
            api_key_prefix=display_prefix(api_key) if api_key else None,
            rate_limit=rate_limit,
            allowed_domains=allowed_domains or [],
            is_admin=is_admin,
        )
        async with database.session_factory() as session:
            session.add(profile)
            await session.commit()

        identity.sign_in(
            f"token-{email}",
            Identity(user_id=profile.id, email=email, full_name=profile.full_name),
        )
        return profile

    return _make


@pytest_asyncio.fixture
async def user_one(make_profile) -> Profile:
    return await make_profile("one@example.com", api_key=KEY_ONE)


@pytest.fixture
def usage_rows(database) -> Callable[[uuid.UUID | None], Awaitable[list[UsageRecord]]]:
    """Fetch stored usage rows, oldest first, optionally for one user."""

    async def _rows(user_id: uuid.UUID | None = None) -> list[UsageRecord]:
        stmt = select(UsageRecord).order_by(UsageRecord.timestamp.asc())
        if user_id is not None:
            stmt = stmt.where(UsageRecord.user_id == user_id)
        async with database.session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    return _rows


def session_headers(email: str) -> dict[str, str]:
    return {"Authorization": f"Bearer token-{email}"}
