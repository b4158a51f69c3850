from .calendars import CalendarRepository
from .events import EventRepository
from .sync_log import SyncLogRepository
from .admin_settings import AdminSettingsRepository
from .credential_store import (
    CredentialStore,
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    LAST_SYNC_TIME_KEY,
    ADMIN_PROFILE_KEYS,
)

__all__ = [
    "CalendarRepository",
    "EventRepository",
    "SyncLogRepository",
    "AdminSettingsRepository",
    "CredentialStore",
    "ACCESS_TOKEN_KEY",
    "REFRESH_TOKEN_KEY",
    "LAST_SYNC_TIME_KEY",
    "ADMIN_PROFILE_KEYS",
]
