"""Error kinds raised by the calendar sync core."""


class FamilyCalendarError(Exception):
    """Base class for all errors raised by the application."""


class StorageError(FamilyCalendarError):
    """A local database read or write failed."""


class DecryptionError(FamilyCalendarError):
    """A stored token could not be decrypted."""


class RemoteApiError(FamilyCalendarError):
    """A call to the Google APIs failed.

    The original error message is kept in the exception message, and the HTTP
    status code (when there was a response) in `status_code`.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NoCredentialsError(FamilyCalendarError):
    """No Google OAuth login has completed yet."""


class NotFoundError(FamilyCalendarError):
    """A referenced calendar or event does not exist."""


class ValidationError(FamilyCalendarError):
    """A request carried invalid data."""
