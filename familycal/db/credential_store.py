"""Encrypted storage of Google OAuth tokens on top of the admin settings table."""

import asyncio
import logging
from typing import Iterable, Protocol

from familycal.utils.encryption import TokenCipher

logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "google_access_token"
REFRESH_TOKEN_KEY = "google_refresh_token"
LAST_SYNC_TIME_KEY = "last_sync_time"

ADMIN_USER_ID_KEY = "admin_user_id"
ADMIN_USER_EMAIL_KEY = "admin_user_email"
ADMIN_USER_NAME_KEY = "admin_user_name"
ADMIN_USER_PICTURE_KEY = "admin_user_picture"
ADMIN_PROFILE_KEYS = (
    ADMIN_USER_ID_KEY,
    ADMIN_USER_EMAIL_KEY,
    ADMIN_USER_NAME_KEY,
    ADMIN_USER_PICTURE_KEY,
)

TOKEN_KEY_MARKERS = ("access_token", "refresh_token")


def is_token_key(key: str) -> bool:
    """Keys holding OAuth tokens are encrypted at rest."""
    return any(marker in key for marker in TOKEN_KEY_MARKERS)


class SettingsStore(Protocol):
    """The slice of AdminSettingsRepository the credential store needs."""

    async def get_setting(self, key: str) -> str | None: ...

    async def get_settings(self, keys: Iterable[str]) -> dict[str, str]: ...

    async def update_settings(self, settings: dict[str, str]) -> int: ...


class CredentialStore:
    """Key/value credential storage with transparent token encryption.

    Values for token keys are encrypted on write. On read they are decrypted
    only if they look encrypted, so plaintext tokens written before encryption
    was introduced are still returned as-is.
    """

    def __init__(self, settings: SettingsStore, cipher: TokenCipher):
        self._settings = settings
        self._cipher = cipher

    # Key derivation is CPU-bound, so the cipher runs in a worker thread.
    async def _encode(self, key: str, value: str) -> str:
        if is_token_key(key):
            return await asyncio.to_thread(self._cipher.encrypt, value)
        return value

    async def _decode(self, key: str, value: str) -> str:
        if is_token_key(key) and self._cipher.is_encrypted(value):
            return await asyncio.to_thread(self._cipher.decrypt, value)
        return value

    async def get(self, key: str) -> str | None:
        """Get a single value.

        Raises:
            DecryptionError: If a stored token cannot be decrypted.
            StorageError: If the database read fails.
        """
        value = await self._settings.get_setting(key)
        if value is None:
            return None
        return await self._decode(key, value)

    async def get_many(self, keys: Iterable[str]) -> dict[str, str]:
        """Get the values that exist among `keys`; missing keys are left out."""
        stored = await self._settings.get_settings(keys)
        decoded = await asyncio.gather(
            *(self._decode(key, value) for key, value in stored.items())
        )
        return dict(zip(stored, decoded))

    async def set(self, key: str, value: str) -> None:
        await self.set_many({key: value})

    async def set_many(self, values: dict[str, str]) -> int:
        """Write several values; last write wins for each key.

        Returns:
            Number of keys written.
        """
        encrypted = await asyncio.gather(
            *(self._encode(key, value) for key, value in values.items())
        )
        encoded = dict(zip(values, encrypted))
        count = await self._settings.update_settings(encoded)
        token_keys = [key for key in values if is_token_key(key)]
        if token_keys:
            logger.info(f"Stored encrypted credentials: keys={token_keys}")
        return count
