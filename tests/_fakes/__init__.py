"""In-memory stand-ins for the repositories and the Google client."""

from .repositories import (
    FakeCalendarRepository,
    FakeEventRepository,
    FakeSyncLogRepository,
    FakeSettingsRepository,
)
from .google import FakeCalendarClient, ReadyMonitor

__all__ = [
    "FakeCalendarRepository",
    "FakeEventRepository",
    "FakeSyncLogRepository",
    "FakeSettingsRepository",
    "FakeCalendarClient",
    "ReadyMonitor",
]
