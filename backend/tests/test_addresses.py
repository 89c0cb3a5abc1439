"""Tests for the residential address book."""

import pytest
import pytest_asyncio

from conftest import session_headers

USER = session_headers("user@example.com")
ADMIN = session_headers("admin@example.com")

DOWNING = {
    "postcode": "sw1a 2aa",
    "building_number": "10",
    "street_address": "Downing Street",
    "town": "London",
}


@pytest_asyncio.fixture
async def people(make_profile):
    await make_profile("user@example.com")
    await make_profile("admin@example.com", is_admin=True)


@pytest.mark.asyncio
async def test_create_composes_full_address(client, people):
    resp = await client.post("/api/addresses", json=DOWNING, headers=USER)
    assert resp.status_code == 201
    body = resp.json()
    assert body["postcode"] == "SW1A 2AA"
    assert body["full_address"] == "10 Downing Street, SW1A 2AA"


@pytest.mark.asyncio
async def test_create_requires_session(client):
    resp = await client.post("/api/addresses", json=DOWNING)
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_create_rejects_client_supplied_full_address(client, people):
    resp = await client.post(
        "/api/addresses", json={**DOWNING, "full_address": "anything"}, headers=USER,
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_list_and_search(client, people):
    await client.post("/api/addresses", json=DOWNING, headers=USER)
    await client.post(
        "/api/addresses",
        json={"postcode": "M1 1AE", "building_number": "1", "street_address": "Piccadilly", "town": "Manchester"},
        headers=USER,
    )

    everything = await client.get("/api/addresses", headers=USER)
    assert len(everything.json()) == 2

    found = await client.get("/api/addresses", params={"search": "manchester"}, headers=USER)
    assert [a["town"] for a in found.json()] == ["Manchester"]


@pytest.mark.asyncio
async def test_update_is_admin_only(client, people):
    created = (await client.post("/api/addresses", json=DOWNING, headers=USER)).json()
    edit = {**DOWNING, "building_number": "11"}

    forbidden = await client.put(f"/api/addresses/{created['id']}", json=edit, headers=USER)
    assert forbidden.status_code == 403

    resp = await client.put(f"/api/addresses/{created['id']}", json=edit, headers=ADMIN)
    assert resp.status_code == 200
    assert resp.json()["full_address"] == "11 Downing Street, SW1A 2AA"


@pytest.mark.asyncio
async def test_delete_is_admin_only(client, people):
    created = (await client.post("/api/addresses", json=DOWNING, headers=USER)).json()

    forbidden = await client.delete(f"/api/addresses/{created['id']}", headers=USER)
    assert forbidden.status_code == 403

    resp = await client.delete(f"/api/addresses/{created['id']}", headers=ADMIN)
    assert resp.status_code == 204

    missing = await client.delete(f"/api/addresses/{created['id']}", headers=ADMIN)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_search_wildcards_match_literally(client, people):
    await client.post("/api/addresses", json=DOWNING, headers=USER)
    await client.post(
        "/api/addresses",
        json={"postcode": "M1 1AE", "building_number": "2", "street_address": "Under_score Road", "town": "Manchester"},
        headers=USER,
    )

    percent = await client.get("/api/addresses", params={"search": "%"}, headers=USER)
    assert percent.json() == []

    underscore = await client.get("/api/addresses", params={"search": "_"}, headers=USER)
    assert [a["street_address"] for a in underscore.json()] == ["Under_score Road"]
