from .calendar import CalendarFactory, CalendarEventFactory

__all__ = [
    "CalendarFactory",
    "CalendarEventFactory",
]
