"""Models for Google Calendar sync results and the sync audit log."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


SyncStatus = Literal["started", "completed", "failed"]

NO_CALENDARS_SELECTED = "No calendars selected for sync"


class SyncLogEntry(BaseModel):
    """One row of the sync audit trail."""

    id: int
    status: SyncStatus
    message: str | None = None
    events_synced: int = 0
    started_at: datetime
    completed_at: datetime | None = None
    created_at: datetime | None = None


class CalendarListSyncResult(BaseModel):
    """Outcome of syncing the calendar list from Google."""

    imported: int = Field(description="Calendars seen for the first time")
    updated: int = Field(description="Calendars that already existed locally")


class EventSyncResult(BaseModel):
    """Outcome of syncing events for all selected calendars."""

    calendars: int = Field(description="Selected calendars that were attempted")
    events: int = Field(description="Total events upserted")
    errors: list[str] = Field(default_factory=list)

    @property
    def nothing_selected(self) -> bool:
        return self.calendars == 0 and self.errors == [NO_CALENDARS_SELECTED]


class FullSyncResult(BaseModel):
    """Outcome of a calendar-list sync followed by an event sync."""

    calendars: CalendarListSyncResult
    events: EventSyncResult


class ConnectionTestResult(BaseModel):
    """Outcome of testing the stored Google credentials."""

    success: bool
    message: str
    user_email: str | None = Field(default=None, serialization_alias="userEmail")
