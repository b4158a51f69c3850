"""Google OAuth authentication functions."""

from urllib.parse import urlencode
from datetime import datetime, timedelta, timezone
import logging

import httpx
from pydantic import BaseModel

from familycal.errors import RemoteApiError

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

OAUTH_SCOPES = [
    "openid",
    "email",
    "profile",
    "https://www.googleapis.com/auth/calendar.readonly",
]

logger = logging.getLogger(__name__)


class GoogleToken(BaseModel):
    """An OAuth token for the Google API."""

    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    token_type: str = "Bearer"
    scope: str | None = None

    def expires_at_datetime(self) -> datetime | None:
        """Convert expires_in to a datetime."""
        if self.expires_in is None:
            return None
        return datetime.now(timezone.utc) + timedelta(seconds=self.expires_in)


class GoogleUserInfo(BaseModel):
    """Profile of the Google account that logged in."""

    id: str
    email: str = ""
    name: str = ""
    picture: str | None = None


def google_error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:500]
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict):
            return str(error.get("message", error))
        description = data.get("error_description")
        if description:
            return f"{error}: {description}"
        if error:
            return str(error)
    return response.text[:500]


def build_oauth_authorize_url(
    client_id: str, redirect_uri: str, state: str | None = None
) -> str:
    """Build the Google OAuth authorization URL.

    Args:
        client_id: The OAuth client id
        redirect_uri: The redirect URI to use after authorization
        state: Optional state parameter for CSRF protection

    Returns:
        The authorization URL

    Raises:
        ValueError: If the client id is empty
    """
    if not client_id:
        raise ValueError("GOOGLE_CLIENT_ID environment variable is not set")

    params = {
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "scope": " ".join(OAUTH_SCOPES),
        "response_type": "code",
        "access_type": "offline",  # Required to get refresh token
        "prompt": "consent",  # Force consent screen to ensure refresh token
    }
    if state is not None:
        params["state"] = state

    return f"{AUTHORIZE_URL}?{urlencode(params)}"


async def exchange_code_for_token(
    http_client: httpx.AsyncClient,
    client_id: str,
    client_secret: str,
    redirect_uri: str,
    code: str,
) -> GoogleToken:
    """Exchange a Google authorization code for an access token.

    Raises:
        RemoteApiError: If the exchange request fails
    """
    try:
        response = await http_client.post(
            TOKEN_URL,
            data={
                "client_id": client_id,
                "client_secret": client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": redirect_uri,
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
    except httpx.HTTPError as e:
        raise RemoteApiError(f"Failed to exchange Google code: {e}") from e

    if response.status_code != 200:
        detail = google_error_detail(response)
        logger.error(
            f"Failed to exchange Google code: status_code={response.status_code}, error={detail}"
        )
        raise RemoteApiError(
            f"Failed to exchange Google code (status {response.status_code}): {detail}",
            status_code=response.status_code,
        )

    return GoogleToken.model_validate(response.json())


async def refresh_access_token(
    http_client: httpx.AsyncClient,
    client_id: str,
    client_secret: str,
    refresh_token: str,
) -> GoogleToken:
    """Use a refresh token to obtain a new access token.

    Google may or may not return a new refresh token alongside it.

    Raises:
        RemoteApiError: If the refresh fails, including a revoked or expired
            refresh token (``invalid_grant``).
    """
    try:
        response = await http_client.post(
            TOKEN_URL,
            data={
                "client_id": client_id,
                "client_secret": client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
    except httpx.HTTPError as e:
        raise RemoteApiError(f"Failed to refresh Google access token: {e}") from e

    if response.status_code != 200:
        detail = google_error_detail(response)
        if response.status_code == 400 and "invalid_grant" in detail:
            logger.error(
                "Refresh token has been expired or revoked. Re-authorization required."
            )
        raise RemoteApiError(
            f"Failed to refresh Google access token: {detail}",
            status_code=response.status_code,
        )

    return GoogleToken.model_validate(response.json())


async def fetch_user_info(
    http_client: httpx.AsyncClient, access_token: str
) -> GoogleUserInfo:
    """Get the profile of the account an access token belongs to."""
    try:
        response = await http_client.get(
            USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"}
        )
    except httpx.HTTPError as e:
        raise RemoteApiError(f"Failed to fetch Google user info: {e}") from e

    if response.status_code != 200:
        raise RemoteApiError(
            f"Failed to fetch Google user info: {google_error_detail(response)}",
            status_code=response.status_code,
        )
    return GoogleUserInfo.model_validate(response.json())
