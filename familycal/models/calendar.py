"""Calendar and event models shared by the sync core and the API."""

from datetime import datetime

from pydantic import BaseModel, Field

DEFAULT_CALENDAR_COLOR = "#3B82F6"


class Calendar(BaseModel):
    """A Google calendar mirrored locally.

    `selected` is local UI state: it decides whether the calendar's events are
    synced and shown on the dashboard, and is never overwritten by a sync.
    """

    id: str
    name: str
    description: str | None = None
    color: str = DEFAULT_CALENDAR_COLOR
    selected: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CalendarEvent(BaseModel):
    """A single (possibly recurring-instance) event of a calendar.

    `start_time` and `end_time` are kept as the strings Google returns: an
    RFC 3339 datetime, or a bare date for all-day events.
    """

    id: str
    calendar_id: str
    title: str
    description: str | None = None
    start_time: str
    end_time: str
    all_day: bool = False
    location: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    # Only populated on reads that join the owning calendar.
    calendar_name: str | None = None
    calendar_color: str | None = None


class CalendarCreate(BaseModel):
    """Request body for creating a calendar by hand."""

    id: str = Field(min_length=1, max_length=255)
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    color: str = Field(default=DEFAULT_CALENDAR_COLOR, pattern=r"^#[0-9A-Fa-f]{6}$")
    selected: bool = False


class EventCreate(BaseModel):
    """Request body for creating an event by hand."""

    id: str = Field(min_length=1, max_length=255)
    calendar_id: str = Field(min_length=1, max_length=255)
    title: str = Field(min_length=1, max_length=500)
    description: str | None = Field(default=None, max_length=5000)
    start_time: str
    end_time: str
    all_day: bool = False
    location: str | None = Field(default=None, max_length=500)
