from .calendar_client import GoogleCalendarClient
from .credential_monitor import CredentialMonitor, MonitorState

__all__ = ["GoogleCalendarClient", "CredentialMonitor", "MonitorState"]
