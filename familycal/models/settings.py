"""Display preferences stored in the admin settings table."""

from typing import Literal

from pydantic import BaseModel, Field

CalendarView = Literal["day", "week", "month"]


class DisplayPreferences(BaseModel):
    """How the public dashboard renders the calendar."""

    defaultView: CalendarView = "week"
    daysToShow: int = Field(default=7, ge=1, le=31)
    startHour: int = Field(default=7, ge=0, le=23)
    endHour: int = Field(default=20, ge=1, le=24)
    showWeekends: bool = True


class AdminSettingsUpdate(BaseModel):
    """Request body for updating arbitrary admin settings."""

    settings: dict[str, str]


class DisplayPreferencesUpdate(BaseModel):
    """Request body for updating display preferences."""

    preferences: DisplayPreferences
