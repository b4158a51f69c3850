"""Admin session cookie and the FastAPI dependencies that check it."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from fastapi import Depends, HTTPException, Request, Response, status

from familycal.config import Settings
from familycal.db.credential_store import (
    ACCESS_TOKEN_KEY,
    ADMIN_PROFILE_KEYS,
    ADMIN_USER_EMAIL_KEY,
    ADMIN_USER_ID_KEY,
    ADMIN_USER_NAME_KEY,
    ADMIN_USER_PICTURE_KEY,
    REFRESH_TOKEN_KEY,
    CredentialStore,
)
from familycal.errors import DecryptionError
from familycal.models.user import AdminUser
from .dependencies import get_credential_store, get_settings

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "familycal_session"
SESSION_MAX_AGE = timedelta(days=7)
SESSION_ALGORITHM = "HS256"


def create_session_token(
    user_id: str, secret: str, now: datetime | None = None
) -> str:
    now = now or datetime.now(timezone.utc)
    claims: dict[str, Any] = {
        "sub": user_id,
        "iat": now,
        "exp": now + SESSION_MAX_AGE,
    }
    return jwt.encode(claims, secret, algorithm=SESSION_ALGORITHM)


def decode_session_token(token: str, secret: str) -> str | None:
    """Return the user id of a valid session token, or None."""
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[SESSION_ALGORITHM],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        logger.info("Session cookie expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning(f"Invalid session cookie: {e}")
        return None
    return claims["sub"]


def set_session_cookie(response: Response, token: str, secure: bool) -> None:
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        max_age=int(SESSION_MAX_AGE.total_seconds()),
        httponly=True,
        secure=secure,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE_NAME)


async def load_admin_user(store: CredentialStore) -> AdminUser | None:
    """Load the admin profile saved at login.

    The stored tokens are read too, so a token that no longer decrypts (for
    example after ENCRYPTION_KEY changed) is noticed here.

    Raises:
        DecryptionError: If a stored token cannot be decrypted.
    """
    stored = await store.get_many([*ADMIN_PROFILE_KEYS, ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY])
    user_id = stored.get(ADMIN_USER_ID_KEY)
    if not user_id:
        return None
    return AdminUser(
        id=user_id,
        email=stored.get(ADMIN_USER_EMAIL_KEY, ""),
        name=stored.get(ADMIN_USER_NAME_KEY, ""),
        picture=stored.get(ADMIN_USER_PICTURE_KEY) or None,
    )


async def get_current_admin(
    request: Request,
    settings: Settings = Depends(get_settings),
    store: CredentialStore = Depends(get_credential_store),
) -> AdminUser | None:
    """FastAPI dependency returning the logged-in admin, or None."""
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        return None
    user_id = decode_session_token(token, settings.session_secret)
    if user_id is None:
        return None

    try:
        admin = await load_admin_user(store)
    except DecryptionError as e:
        logger.warning(f"Stored credentials could not be decrypted: error={e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Stored credentials are invalid. Please sign in again.",
        )

    if admin is None or admin.id != user_id:
        logger.warning(f"Session does not match the stored admin: user_id={user_id}")
        return None
    return admin


async def require_admin(
    admin: AdminUser | None = Depends(get_current_admin),
) -> AdminUser:
    """FastAPI dependency requiring a logged-in admin.

    Raises:
        HTTPException 401 if there is no valid session.
    """
    if admin is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return admin
