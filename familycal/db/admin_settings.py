"""Database operations for the admin settings key/value store.

OAuth tokens, the admin profile, the last sync time and display preferences
all live in this table, one row per key.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable

from pydantic import ValidationError as PydanticValidationError

from familycal.models.settings import DisplayPreferences
from .connection import get_db_cursor

logger = logging.getLogger(__name__)

DISPLAY_PREFERENCE_KEYS = ("defaultView", "daysToShow", "startHour", "endHour", "showWeekends")

SENSITIVE_KEY_MARKERS = ("token", "secret")


def is_sensitive_key(key: str) -> bool:
    return any(marker in key for marker in SENSITIVE_KEY_MARKERS)


def parse_display_preferences(stored: dict[str, str]) -> DisplayPreferences:
    """Overlay stored preference strings on top of the defaults.

    Values that do not parse fall back to the default for that key.
    """
    defaults = DisplayPreferences()
    values = defaults.model_dump()
    for key, raw in stored.items():
        if key == "defaultView":
            if raw in ("day", "week", "month"):
                values[key] = raw
        elif key == "showWeekends":
            values[key] = raw == "true"
        elif key in DISPLAY_PREFERENCE_KEYS:
            try:
                values[key] = int(raw)
            except ValueError:
                logger.warning(f"Ignoring unparseable display preference: {key}={raw!r}")
    try:
        return DisplayPreferences.model_validate(values)
    except PydanticValidationError:
        logger.warning(f"Stored display preferences out of range, using defaults: {stored}")
        return defaults


def serialize_display_preferences(preferences: DisplayPreferences) -> dict[str, str]:
    result = {}
    for key, value in preferences.model_dump().items():
        if isinstance(value, bool):
            result[key] = "true" if value else "false"
        else:
            result[key] = str(value)
    return result


class AdminSettingsRepository:
    """Upsert-by-key row store over the admin_settings table."""

    def __init__(self, database_url: str):
        self.database_url = database_url

    async def get_setting(self, key: str) -> str | None:
        async with get_db_cursor(self.database_url) as cursor:
            await cursor.execute(
                "SELECT value FROM admin_settings WHERE key = %s", (key,)
            )
            row = await cursor.fetchone()
            return row[0] if row else None

    async def get_settings(self, keys: Iterable[str]) -> dict[str, str]:
        keys = list(keys)
        if not keys:
            return {}
        async with get_db_cursor(self.database_url) as cursor:
            await cursor.execute(
                "SELECT key, value FROM admin_settings WHERE key = ANY(%s)", (keys,)
            )
            return {key: value for key, value in await cursor.fetchall()}

    async def get_all_settings(self) -> dict[str, str]:
        """Get every setting except tokens and secrets."""
        async with get_db_cursor(self.database_url) as cursor:
            await cursor.execute(
                """
                SELECT key, value FROM admin_settings
                WHERE key NOT LIKE '%%token%%' AND key NOT LIKE '%%secret%%'
                ORDER BY key
                """
            )
            return {key: value for key, value in await cursor.fetchall()}

    async def update_setting(self, key: str, value: str) -> None:
        await self.update_settings({key: value})

    async def update_settings(self, settings: dict[str, str]) -> int:
        """Insert or replace several settings in one transaction.

        Returns:
            Number of keys written.
        """
        if not settings:
            return 0
        now = datetime.now(timezone.utc)
        async with get_db_cursor(self.database_url) as cursor:
            await cursor.executemany(
                """
                INSERT INTO admin_settings (key, value, created_at, updated_at)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (key)
                DO UPDATE SET
                    value = EXCLUDED.value,
                    updated_at = EXCLUDED.updated_at
                """,
                [(key, value, now, now) for key, value in settings.items()],
            )
        logger.debug(f"Updated admin settings: keys={sorted(settings)}")
        return len(settings)

    async def get_display_preferences(self) -> DisplayPreferences:
        stored = await self.get_settings(DISPLAY_PREFERENCE_KEYS)
        return parse_display_preferences(stored)

    async def update_display_preferences(self, preferences: DisplayPreferences) -> int:
        return await self.update_settings(serialize_display_preferences(preferences))
