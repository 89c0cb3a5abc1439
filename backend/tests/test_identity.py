"""Tests for the hosted identity provider client."""

import uuid

import httpx
import pytest

from postcode_api.auth.identity import AuthenticationError, HostedAuthClient

USER_ID = uuid.uuid4()


def _client(handler) -> HostedAuthClient:
    http = httpx.AsyncClient(base_url="https://auth.test", transport=httpx.MockTransport(handler))
    return HostedAuthClient("https://auth.test", "anon-key", client=http)


@pytest.mark.asyncio
async def test_resolves_session_token():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["authorization"] = request.headers["Authorization"]
        seen["apikey"] = request.headers["apikey"]
        return httpx.Response(
            200,
            json={
                "id": str(USER_ID),
                "email": "one@example.com",
                "user_metadata": {"full_name": "One"},
            },
        )

    identity = await _client(handler).resolve("session-token")

    assert identity.user_id == USER_ID
    assert identity.email == "one@example.com"
    assert identity.full_name == "One"
    assert seen == {
        "path": "/user",
        "authorization": "Bearer session-token",
        "apikey": "anon-key",
    }


@pytest.mark.asyncio
async def test_rejected_token():
    client = _client(lambda request: httpx.Response(401, json={"msg": "invalid JWT"}))
    with pytest.raises(AuthenticationError):
        await client.resolve("expired")


@pytest.mark.asyncio
async def test_malformed_response():
    client = _client(lambda request: httpx.Response(200, json={"email": "x@example.com"}))
    with pytest.raises(AuthenticationError):
        await client.resolve("token")


@pytest.mark.asyncio
async def test_unreachable_provider():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(AuthenticationError):
        await _client(handler).resolve("token")
