from .sync import router as sync_router
from .calendars import router as calendars_router
from .events import router as events_router
from .admin import router as admin_router
from .auth import router as auth_router

__all__ = [
    "sync_router",
    "calendars_router",
    "events_router",
    "admin_router",
    "auth_router",
]
