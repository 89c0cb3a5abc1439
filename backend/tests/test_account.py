"""Tests for the signed-in account routes."""

import uuid

import pytest

from conftest import KEY_ONE, session_headers
from postcode_api.auth.identity import Identity

ONE = session_headers("one@example.com")


class TestProfile:
    @pytest.mark.asyncio
    async def test_requires_session(self, client):
        resp = await client.get("/api/account/profile")
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_api_key_is_not_a_session(self, client, user_one):
        resp = await client.get(
            "/api/account/profile", headers={"Authorization": f"Bearer {KEY_ONE}"},
        )
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_returns_profile_without_key_material(self, client, user_one):
        resp = await client.get("/api/account/profile", headers=ONE)
        assert resp.status_code == 200
        body = resp.json()
        assert body["id"] == str(user_one.id)
        assert body["api_key_prefix"] == KEY_ONE[:12]
        assert "api_key_hash" not in body
        assert KEY_ONE not in resp.text

    @pytest.mark.asyncio
    async def test_first_sign_in_provisions_profile(self, client, identity, settings):
        user_id = uuid.uuid4()
        identity.sign_in("fresh", Identity(user_id=user_id, email="new@example.com", full_name="New"))

        resp = await client.get("/api/account/profile", headers={"Authorization": "Bearer fresh"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["id"] == str(user_id)
        assert body["email"] == "new@example.com"
        assert body["rate_limit"] == settings.DEFAULT_RATE_LIMIT
        assert body["allowed_domains"] == []
        assert body["is_admin"] is False
        assert body["api_key_prefix"] is None

        again = await client.get("/api/account/profile", headers={"Authorization": "Bearer fresh"})
        assert again.json()["id"] == str(user_id)

    @pytest.mark.asyncio
    async def test_email_owned_by_another_profile_is_409(self, client, identity, make_profile):
        existing = await make_profile("admin@localhost", is_admin=True)
        identity.sign_in(
            "newcomer",
            Identity(user_id=uuid.uuid4(), email="admin@localhost", full_name="Admin"),
        )

        resp = await client.get(
            "/api/account/profile", headers={"Authorization": "Bearer newcomer"},
        )
        assert resp.status_code == 409

        # The original owner is untouched
        owner = await client.get(
            "/api/account/profile", headers=session_headers("admin@localhost"),
        )
        assert owner.status_code == 200
        assert owner.json()["id"] == str(existing.id)


class TestApiKey:
    @pytest.mark.asyncio
    async def test_generate_returns_key_once_and_it_works(self, client, user_one):
        resp = await client.post("/api/account/api-key", headers=ONE)
        assert resp.status_code == 201
        body = resp.json()
        new_key = body["api_key"]
        assert new_key.startswith("pk_live_")
        assert body["prefix"] == new_key[:12]

        lookup = await client.get("/api/postcodes/SW1A 1AA", headers={"X-API-Key": new_key})
        assert lookup.status_code == 200

        profile = await client.get("/api/account/profile", headers=ONE)
        assert new_key not in profile.text
        assert profile.json()["api_key_prefix"] == new_key[:12]

    @pytest.mark.asyncio
    async def test_rotation_revokes_old_key(self, client, user_one):
        await client.post("/api/account/api-key", headers=ONE)
        resp = await client.get("/api/postcodes/SW1A 1AA", headers={"X-API-Key": KEY_ONE})
        assert resp.status_code == 401


class TestUsage:
    @pytest.mark.asyncio
    async def test_recent_usage_newest_first(self, client, user_one):
        headers = {"X-API-Key": KEY_ONE}
        await client.get("/api/postcodes/SW1A 1AA", headers=headers)
        await client.get("/api/postcodes/ZZ99 9ZZ", headers=headers)
        await client.get("/api/postcodes/SW1A/autocomplete", headers=headers)

        resp = await client.get("/api/account/usage", params={"limit": 2}, headers=ONE)
        assert resp.status_code == 200
        rows = resp.json()
        assert [(r["endpoint"], r["status"]) for r in rows] == [
            ("postcode-autocomplete", "success"),
            ("postcode-search", "error"),
        ]

    @pytest.mark.asyncio
    async def test_usage_is_private(self, client, make_profile, user_one):
        await client.get("/api/postcodes/SW1A 1AA", headers={"X-API-Key": KEY_ONE})
        await make_profile("other@example.com")

        resp = await client.get("/api/account/usage", headers=session_headers("other@example.com"))
        assert resp.json() == []

    @pytest.mark.asyncio
    async def test_daily_counts(self, client, user_one):
        headers = {"X-API-Key": KEY_ONE}
        for postcode in ("SW1A 1AA", "SW1A 1AA", "ZZ99 9ZZ"):
            await client.get(f"/api/postcodes/{postcode}", headers=headers)

        resp = await client.get("/api/account/usage/daily", headers=ONE)
        assert resp.status_code == 200
        days = resp.json()
        assert len(days) == 1
        assert days[0]["success"] == 2
        assert days[0]["failed"] == 1


class TestDomains:
    @pytest.mark.asyncio
    async def test_add_cleans_and_stores(self, client, user_one):
        resp = await client.post(
            "/api/account/domains", json={"domain": "https://Example.com/"}, headers=ONE,
        )
        assert resp.status_code == 201
        assert resp.json()["allowed_domains"] == ["example.com"]

    @pytest.mark.asyncio
    async def test_duplicate_is_409(self, client, user_one):
        await client.post("/api/account/domains", json={"domain": "example.com"}, headers=ONE)
        resp = await client.post("/api/account/domains", json={"domain": "EXAMPLE.com"}, headers=ONE)
        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_invalid_is_422(self, client, user_one):
        resp = await client.post(
            "/api/account/domains", json={"domain": "not a domain"}, headers=ONE,
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_remove(self, client, user_one):
        await client.post("/api/account/domains", json={"domain": "example.com"}, headers=ONE)
        await client.post("/api/account/domains", json={"domain": "localhost:5173"}, headers=ONE)

        resp = await client.delete("/api/account/domains/example.com", headers=ONE)
        assert resp.status_code == 200
        assert resp.json()["allowed_domains"] == ["localhost:5173"]

        missing = await client.delete("/api/account/domains/example.com", headers=ONE)
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_added_domain_restricts_the_key(self, client, user_one):
        await client.post("/api/account/domains", json={"domain": "example.com"}, headers=ONE)

        blocked = await client.get(
            "/api/postcodes/SW1A 1AA",
            headers={"X-API-Key": KEY_ONE, "Origin": "https://other.test"},
        )
        allowed = await client.get(
            "/api/postcodes/SW1A 1AA",
            headers={"X-API-Key": KEY_ONE, "Origin": "https://example.com"},
        )
        assert blocked.status_code == 403
        assert allowed.status_code == 200
