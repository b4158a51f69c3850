import pytest

from tests._factories import CalendarFactory, CalendarEventFactory


class AccidentalDatabaseAccessError(Exception):
    """Raised when a unit test accidentally tries to access the database."""

    pass


def _raise_db_access_error(*args, **kwargs):
    """Raise an error when DB access is attempted in unit tests."""
    raise AccidentalDatabaseAccessError(
        "Unit test attempted to connect to the database! "
        "Either mock the database call with @patch('familycal.db.calendars.get_db_cursor') "
        "or similar, or mark this test as @pytest.mark.e2e if it requires real DB access."
    )


@pytest.fixture(autouse=True)
def prevent_db_access_in_unit_tests(request, monkeypatch):
    """Prevent accidental database access in unit tests.

    For tests marked e2e or integration this does nothing. For all other tests
    it patches psycopg.AsyncConnection.connect to raise a clear error if any
    code path tries to reach the database without proper mocking.
    """
    markers = [marker.name for marker in request.node.iter_markers()]
    if "e2e" in markers or "integration" in markers:
        yield
        return

    monkeypatch.setattr("psycopg.AsyncConnection.connect", _raise_db_access_error)
    yield


@pytest.fixture(scope="session")
def calendar_factory() -> CalendarFactory:
    return CalendarFactory()


@pytest.fixture(scope="session")
def event_factory() -> CalendarEventFactory:
    return CalendarEventFactory()
