"""Tests for API key extraction, hashing and validation."""

import pytest
from sqlalchemy.exc import OperationalError

from conftest import KEY_ONE, KEY_TWO
from postcode_api.auth.api_key import extract_presented_key, validate_api_key
from postcode_api.auth.hashing import display_prefix, generate_api_key, hash_api_key
from postcode_api.core.errors import Unauthorized
from postcode_api.models.profile import Profile


class TestExtractPresentedKey:
    def test_x_api_key_wins(self):
        assert extract_presented_key("from-header", "Bearer from-auth") == "from-header"

    def test_bearer_fallback(self):
        assert extract_presented_key(None, "Bearer abc123") == "abc123"
        assert extract_presented_key(None, "bearer abc123") == "abc123"

    def test_other_schemes_are_ignored(self):
        assert extract_presented_key(None, "Basic dXNlcjpwYXNz") is None
        assert extract_presented_key(None, "Bearer") is None

    def test_nothing_presented(self):
        assert extract_presented_key(None, None) is None
        assert extract_presented_key("", None) is None

    def test_value_is_not_trimmed(self):
        assert extract_presented_key(" key ", None) == " key "


class TestHashing:
    def test_generated_key_shape(self):
        issued = generate_api_key()
        assert issued.raw.startswith("pk_live_")
        assert len(issued.raw) == len("pk_live_") + 48
        assert issued.digest == hash_api_key(issued.raw)
        assert issued.prefix == display_prefix(issued.raw) == issued.raw[:12]
        assert issued.generated_at.tzinfo is not None

    def test_keys_are_unique(self):
        assert generate_api_key().raw != generate_api_key().raw

    def test_hash_is_exact(self):
        assert hash_api_key("abc") != hash_api_key("ABC")
        assert hash_api_key("abc") != hash_api_key("abc ")


class TestValidateApiKey:
    @pytest.mark.asyncio
    async def test_matching_key_returns_profile(self, database, user_one):
        async with database.session_factory() as session:
            profile = await validate_api_key(session, KEY_ONE)
        assert profile.id == user_one.id

    @pytest.mark.asyncio
    async def test_unknown_key_is_unauthorized(self, database, user_one):
        async with database.session_factory() as session:
            with pytest.raises(Unauthorized):
                await validate_api_key(session, KEY_TWO)

    @pytest.mark.asyncio
    async def test_profile_without_key_never_matches(self, database, make_profile):
        await make_profile("nokey@example.com")
        async with database.session_factory() as session:
            with pytest.raises(Unauthorized):
                await validate_api_key(session, "")

    @pytest.mark.asyncio
    async def test_ambiguous_match_is_unauthorized(self, caplog):
        duplicates = [Profile(email="a@example.com"), Profile(email="b@example.com")]

        class Rows:
            def scalars(self):
                return self

            def all(self):
                return duplicates

        class DuplicateSession:
            async def execute(self, stmt):
                return Rows()

        with pytest.raises(Unauthorized):
            await validate_api_key(DuplicateSession(), KEY_ONE)
        assert "matches 2 profiles" in caplog.text
        assert KEY_ONE not in caplog.text

    @pytest.mark.asyncio
    async def test_store_error_is_unauthorized(self):
        class BrokenSession:
            async def execute(self, stmt):
                raise OperationalError("SELECT", {}, Exception("connection refused"))

        with pytest.raises(Unauthorized):
            await validate_api_key(BrokenSession(), KEY_ONE)
