"""Google sign-in for the dashboard admin.

Signing in stores the Google tokens the sync needs, together with the
admin's profile, and starts a session cookie.
"""

import logging
import secrets

import httpx
from fastapi import APIRouter, Cookie, Depends
from fastapi.responses import JSONResponse, RedirectResponse

from familycal.config import Settings
from familycal.db.credential_store import (
    ACCESS_TOKEN_KEY,
    ADMIN_USER_EMAIL_KEY,
    ADMIN_USER_ID_KEY,
    ADMIN_USER_NAME_KEY,
    ADMIN_USER_PICTURE_KEY,
    REFRESH_TOKEN_KEY,
    CredentialStore,
)
from familycal.errors import RemoteApiError
from familycal.integrations.google import auth as google_auth
from familycal.integrations.google.calendar_client import GoogleCalendarClient
from familycal.models import AdminUser
from familycal.app.dependencies import (
    get_calendar_client,
    get_credential_store,
    get_http_client,
    get_settings,
)
from familycal.app.errors import success_response
from familycal.app.session import (
    clear_session_cookie,
    create_session_token,
    get_current_admin,
    require_admin,
    set_session_cookie,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

OAUTH_STATE_COOKIE_NAME = "familycal_oauth_state"


def dashboard_url(settings: Settings, path: str) -> str:
    return f"{settings.public_dashboard_base_url.rstrip('/')}{path}"


@router.get("/google")
def google_login(settings: Settings = Depends(get_settings)) -> RedirectResponse:
    """Redirect to the Google consent screen."""
    state = secrets.token_urlsafe(32)
    url = google_auth.build_oauth_authorize_url(
        client_id=settings.google_client_id,
        redirect_uri=settings.google_redirect_uri,
        state=state,
    )
    response = RedirectResponse(url)
    response.set_cookie(
        OAUTH_STATE_COOKIE_NAME,
        state,
        max_age=600,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return response


@router.get("/google/callback")
async def google_callback(
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    oauth_state: str | None = Cookie(default=None, alias=OAUTH_STATE_COOKIE_NAME),
    settings: Settings = Depends(get_settings),
    store: CredentialStore = Depends(get_credential_store),
    client: GoogleCalendarClient = Depends(get_calendar_client),
    http_client: httpx.AsyncClient = Depends(get_http_client),
) -> RedirectResponse:
    """Google OAuth callback endpoint.

    Exchanges the code for tokens, stores them with the admin profile, hands
    them to the calendar client and signs the admin in.
    """
    failure = RedirectResponse(dashboard_url(settings, "/admin/login?error=auth_failed"))
    failure.delete_cookie(OAUTH_STATE_COOKIE_NAME)

    if error or code is None:
        logger.warning(f"Google sign-in was not completed: error={error}")
        return failure
    if state is None or oauth_state is None or not secrets.compare_digest(state, oauth_state):
        logger.warning("Google sign-in state did not match")
        return failure

    try:
        token = await google_auth.exchange_code_for_token(
            http_client,
            settings.google_client_id,
            settings.google_client_secret,
            settings.google_redirect_uri,
            code,
        )
        user_info = await google_auth.fetch_user_info(http_client, token.access_token)
    except RemoteApiError as e:
        logger.error(f"Google sign-in failed: error={e}")
        return failure

    values = {
        ACCESS_TOKEN_KEY: token.access_token,
        ADMIN_USER_ID_KEY: user_info.id,
        ADMIN_USER_EMAIL_KEY: user_info.email,
        ADMIN_USER_NAME_KEY: user_info.name,
    }
    if token.refresh_token:
        values[REFRESH_TOKEN_KEY] = token.refresh_token
    if user_info.picture:
        values[ADMIN_USER_PICTURE_KEY] = user_info.picture
    await store.set_many(values)
    client.set_credentials(
        token.access_token, token.refresh_token, token.expires_at_datetime()
    )
    logger.info(f"Admin signed in with Google: user_id={user_info.id}")

    response = RedirectResponse(dashboard_url(settings, "/admin/dashboard"))
    response.delete_cookie(OAUTH_STATE_COOKIE_NAME)
    set_session_cookie(
        response,
        create_session_token(user_info.id, settings.session_secret),
        secure=settings.is_production,
    )
    return response


@router.post("/logout")
def logout() -> JSONResponse:
    response = success_response(message="Logged out successfully")
    clear_session_cookie(response)
    return response


@router.get("/status")
async def auth_status(
    admin: AdminUser | None = Depends(get_current_admin),
) -> JSONResponse:
    """Report whether the request carries a valid admin session."""
    if admin is None:
        return success_response({"authenticated": False})
    return success_response({"authenticated": True, "user": admin.public_profile()})


@router.get("/profile")
async def profile(admin: AdminUser = Depends(require_admin)) -> JSONResponse:
    return success_response(admin.public_profile())
