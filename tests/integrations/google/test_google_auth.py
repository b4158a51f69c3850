"""Tests for the Google OAuth helpers."""

from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from familycal.errors import RemoteApiError
from familycal.integrations.google.auth import (
    TOKEN_URL,
    GoogleToken,
    build_oauth_authorize_url,
    exchange_code_for_token,
    fetch_user_info,
    refresh_access_token,
)


def mock_http(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_build_oauth_authorize_url():
    url = build_oauth_authorize_url(
        "client-123", "http://localhost:3000/auth/google/callback", state="xyz"
    )

    parsed = urlparse(url)
    params = parse_qs(parsed.query)
    assert parsed.netloc == "accounts.google.com"
    assert params["client_id"] == ["client-123"]
    assert params["redirect_uri"] == ["http://localhost:3000/auth/google/callback"]
    assert params["response_type"] == ["code"]
    assert params["access_type"] == ["offline"]
    assert params["prompt"] == ["consent"]
    assert params["state"] == ["xyz"]
    scopes = params["scope"][0].split(" ")
    assert "https://www.googleapis.com/auth/calendar.readonly" in scopes
    assert "email" in scopes


def test_build_oauth_authorize_url_without_state():
    url = build_oauth_authorize_url("client-123", "http://localhost/cb")

    assert "state" not in parse_qs(urlparse(url).query)


def test_build_oauth_authorize_url_missing_client_id():
    with pytest.raises(ValueError, match="GOOGLE_CLIENT_ID"):
        build_oauth_authorize_url("", "http://localhost/cb")


@pytest.mark.asyncio
async def test_exchange_code_for_token_success():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["form"] = parse_qs(request.content.decode())
        return httpx.Response(
            200,
            json={
                "access_token": "ya29.new",
                "refresh_token": "1//refresh",
                "expires_in": 3599,
                "token_type": "Bearer",
            },
        )

    async with mock_http(handler) as http:
        token = await exchange_code_for_token(
            http, "client-123", "shh", "http://localhost/cb", "auth-code"
        )

    assert token.access_token == "ya29.new"
    assert token.refresh_token == "1//refresh"
    assert seen["url"] == TOKEN_URL
    assert seen["form"]["grant_type"] == ["authorization_code"]
    assert seen["form"]["code"] == ["auth-code"]


@pytest.mark.asyncio
async def test_exchange_code_for_token_api_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400, json={"error": "invalid_grant", "error_description": "Bad Request"}
        )

    async with mock_http(handler) as http:
        with pytest.raises(RemoteApiError, match="invalid_grant") as exc_info:
            await exchange_code_for_token(http, "c", "s", "http://localhost/cb", "stale")

    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_exchange_code_for_token_network_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with mock_http(handler) as http:
        with pytest.raises(RemoteApiError, match="connection refused"):
            await exchange_code_for_token(http, "c", "s", "http://localhost/cb", "code")


@pytest.mark.asyncio
async def test_refresh_access_token_without_new_refresh_token():
    def handler(request: httpx.Request) -> httpx.Response:
        form = parse_qs(request.content.decode())
        assert form["grant_type"] == ["refresh_token"]
        assert form["refresh_token"] == ["1//refresh"]
        return httpx.Response(200, json={"access_token": "ya29.rotated", "expires_in": 3600})

    async with mock_http(handler) as http:
        token = await refresh_access_token(http, "c", "s", "1//refresh")

    assert token.access_token == "ya29.rotated"
    assert token.refresh_token is None


@pytest.mark.asyncio
async def test_refresh_access_token_revoked():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={"error": "invalid_grant", "error_description": "Token has been expired or revoked."},
        )

    async with mock_http(handler) as http:
        with pytest.raises(RemoteApiError, match="Token has been expired or revoked"):
            await refresh_access_token(http, "c", "s", "1//revoked")


@pytest.mark.asyncio
async def test_fetch_user_info():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer ya29.token"
        return httpx.Response(
            200,
            json={"id": "1234", "email": "parent@example.com", "name": "Pat Parent"},
        )

    async with mock_http(handler) as http:
        user = await fetch_user_info(http, "ya29.token")

    assert user.id == "1234"
    assert user.email == "parent@example.com"
    assert user.picture is None


@pytest.mark.asyncio
async def test_fetch_user_info_error_uses_google_message():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            401, json={"error": {"code": 401, "message": "Invalid Credentials"}}
        )

    async with mock_http(handler) as http:
        with pytest.raises(RemoteApiError, match="Invalid Credentials") as exc_info:
            await fetch_user_info(http, "ya29.bad")

    assert exc_info.value.status_code == 401


def test_google_token_expires_at_datetime():
    before = datetime.now(timezone.utc)
    token = GoogleToken(access_token="a", expires_in=3600)

    expires_at = token.expires_at_datetime()

    assert expires_at is not None
    assert before + timedelta(seconds=3590) <= expires_at <= before + timedelta(seconds=3610)
    assert GoogleToken(access_token="a").expires_at_datetime() is None
