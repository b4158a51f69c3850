"""Admin settings routes."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from familycal.db import AdminSettingsRepository, LAST_SYNC_TIME_KEY
from familycal.db.admin_settings import is_sensitive_key
from familycal.errors import NotFoundError, ValidationError
from familycal.models import AdminUser
from familycal.models.settings import AdminSettingsUpdate, DisplayPreferencesUpdate
from familycal.app.dependencies import get_admin_settings_repository
from familycal.app.errors import success_response
from familycal.app.session import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


def is_protected_key(key: str) -> bool:
    """Keys that can only be written by the login flow, never through the API."""
    return is_sensitive_key(key) or "admin_user" in key


@router.get("/settings")
async def read_settings(
    settings: AdminSettingsRepository = Depends(get_admin_settings_repository),
    _admin: AdminUser = Depends(require_admin),
) -> JSONResponse:
    """Get all settings except tokens and secrets."""
    return success_response(await settings.get_all_settings())


@router.put("/settings")
async def update_settings(
    body: AdminSettingsUpdate,
    settings: AdminSettingsRepository = Depends(get_admin_settings_repository),
    _admin: AdminUser = Depends(require_admin),
) -> JSONResponse:
    """Update settings. Token, secret and admin profile keys are ignored."""
    if not body.settings:
        raise ValidationError("No settings provided")

    allowed = {k: v for k, v in body.settings.items() if not is_protected_key(k)}
    dropped = sorted(set(body.settings) - set(allowed))
    if dropped:
        logger.warning(f"Ignoring protected settings keys: keys={dropped}")
    if not allowed:
        return success_response(message="No valid settings to update")

    await settings.update_settings(allowed)
    return success_response(message="Settings updated successfully")


@router.get("/display-preferences")
async def read_display_preferences(
    settings: AdminSettingsRepository = Depends(get_admin_settings_repository),
    _admin: AdminUser = Depends(require_admin),
) -> JSONResponse:
    return success_response(await settings.get_display_preferences())


@router.put("/display-preferences")
async def update_display_preferences(
    body: DisplayPreferencesUpdate,
    settings: AdminSettingsRepository = Depends(get_admin_settings_repository),
    _admin: AdminUser = Depends(require_admin),
) -> JSONResponse:
    await settings.update_display_preferences(body.preferences)
    return success_response(message="Display preferences updated successfully")


@router.get("/last-sync-time")
async def read_last_sync_time(
    settings: AdminSettingsRepository = Depends(get_admin_settings_repository),
    _admin: AdminUser = Depends(require_admin),
) -> JSONResponse:
    last_sync_time = await settings.get_setting(LAST_SYNC_TIME_KEY)
    if not last_sync_time:
        raise NotFoundError("Last sync time not found")
    return success_response({"lastSyncTime": last_sync_time})
