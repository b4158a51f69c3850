from .calendar import (
    Calendar,
    CalendarEvent,
    CalendarCreate,
    EventCreate,
    DEFAULT_CALENDAR_COLOR,
)
from .sync import (
    SyncLogEntry,
    SyncStatus,
    CalendarListSyncResult,
    EventSyncResult,
    FullSyncResult,
    ConnectionTestResult,
    NO_CALENDARS_SELECTED,
)
from .settings import DisplayPreferences, CalendarView
from .user import AdminUser
from .responses import ApiResponse

__all__ = [
    "Calendar",
    "CalendarEvent",
    "CalendarCreate",
    "EventCreate",
    "DEFAULT_CALENDAR_COLOR",
    "SyncLogEntry",
    "SyncStatus",
    "CalendarListSyncResult",
    "EventSyncResult",
    "FullSyncResult",
    "ConnectionTestResult",
    "NO_CALENDARS_SELECTED",
    "DisplayPreferences",
    "CalendarView",
    "AdminUser",
    "ApiResponse",
]
