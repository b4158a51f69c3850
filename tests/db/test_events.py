"""Tests for event database operations."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from familycal.db.events import EventRepository, today_bounds
from familycal.errors import NotFoundError

DB_URL = "postgresql://test@localhost/test"
NOW = datetime(2026, 10, 16, 8, 0, 0, tzinfo=timezone.utc)


def event_row(with_calendar: bool = True, **overrides) -> tuple:
    values = {
        "id": "event-1",
        "calendar_id": "cal-1",
        "title": "Dentist",
        "description": None,
        "start_time": "2026-10-16T09:00:00Z",
        "end_time": "2026-10-16T10:00:00Z",
        "all_day": False,
        "location": None,
        "created_at": NOW,
        "updated_at": NOW,
    }
    values.update(overrides)
    row = tuple(values.values())
    if with_calendar:
        row += ("Family", "#10B981")
    return row


def use_cursor(mock_get_cursor: MagicMock) -> AsyncMock:
    mock_cursor = AsyncMock()
    mock_get_cursor.return_value.__aenter__.return_value = mock_cursor
    return mock_cursor


class TestTodayBounds:
    def test_start_and_end_of_day_in_utc(self):
        start, end = today_bounds(datetime(2026, 10, 16, 22, 30, tzinfo=timezone.utc))

        assert start == "2026-10-16T00:00:00+00:00"
        assert end == "2026-10-17T00:00:00+00:00"


class TestReadEvents:
    """Test event reads."""

    @pytest.mark.asyncio
    @patch("familycal.db.events.get_db_cursor")
    async def test_reads_attach_calendar_name_and_color(self, mock_get_cursor):
        mock_cursor = use_cursor(mock_get_cursor)
        mock_cursor.fetchall.return_value = [event_row()]

        (event,) = await EventRepository(DB_URL).get_events_by_calendar_id("cal-1")

        assert event.calendar_name == "Family"
        assert event.calendar_color == "#10B981"
        assert "c.selected = TRUE" in mock_cursor.execute.call_args[0][0]

    @pytest.mark.asyncio
    @patch("familycal.db.events.get_db_cursor")
    async def test_date_range_with_calendar_filter(self, mock_get_cursor):
        mock_cursor = use_cursor(mock_get_cursor)
        mock_cursor.fetchall.return_value = []

        await EventRepository(DB_URL).get_events_by_date_range(
            "2026-10-01", "2026-10-31", calendar_id="cal-1"
        )

        query, params = mock_cursor.execute.call_args[0]
        assert "e.calendar_id = %s" in query
        assert params == ["cal-1", "2026-10-01", "2026-10-31"]

    @pytest.mark.asyncio
    @patch("familycal.db.events.get_db_cursor")
    async def test_get_event_by_id_without_calendar_columns(self, mock_get_cursor):
        mock_cursor = use_cursor(mock_get_cursor)
        mock_cursor.fetchone.return_value = event_row(with_calendar=False)

        event = await EventRepository(DB_URL).get_event_by_id("event-1")

        assert event is not None
        assert event.title == "Dentist"
        assert event.calendar_name is None


class TestWriteEvents:
    """Test event writes."""

    @pytest.mark.asyncio
    @patch("familycal.db.events.get_db_cursor")
    async def test_create_event_requires_calendar(self, mock_get_cursor, event_factory):
        mock_cursor = use_cursor(mock_get_cursor)
        mock_cursor.fetchone.return_value = None

        with pytest.raises(NotFoundError, match="Calendar not found"):
            await EventRepository(DB_URL).create_event(event_factory.make())

        assert mock_cursor.execute.call_count == 1

    @pytest.mark.asyncio
    @patch("familycal.db.events.get_db_cursor")
    async def test_create_event(self, mock_get_cursor, event_factory):
        mock_cursor = use_cursor(mock_get_cursor)
        mock_cursor.fetchone.side_effect = [("cal-1",), event_row(with_calendar=False)]

        event = await EventRepository(DB_URL).create_event(
            event_factory.make({"id": "event-1", "calendar_id": "cal-1"})
        )

        assert event.id == "event-1"
        assert mock_cursor.execute.call_count == 2

    @pytest.mark.asyncio
    @patch("familycal.db.events.get_db_cursor")
    async def test_upsert_skips_unchanged_rows(self, mock_get_cursor, event_factory):
        mock_cursor = use_cursor(mock_get_cursor)
        events = [event_factory.make({"id": f"e-{i}"}) for i in range(3)]

        count = await EventRepository(DB_URL).upsert_events(events)

        assert count == 3
        query, params = mock_cursor.executemany.call_args[0]
        assert "ON CONFLICT (id)" in query
        assert "IS DISTINCT FROM" in query
        assert len(params) == 3

    @pytest.mark.asyncio
    @patch("familycal.db.events.get_db_cursor")
    async def test_upsert_empty_batch(self, mock_get_cursor):
        assert await EventRepository(DB_URL).upsert_events([]) == 0
        mock_get_cursor.assert_not_called()

    @pytest.mark.asyncio
    @patch("familycal.db.events.get_db_cursor")
    async def test_delete_event(self, mock_get_cursor):
        mock_cursor = use_cursor(mock_get_cursor)
        mock_cursor.rowcount = 0

        assert await EventRepository(DB_URL).delete_event("nope") is False

    @pytest.mark.asyncio
    @patch("familycal.db.events.get_db_cursor")
    async def test_update_event_missing(self, mock_get_cursor):
        mock_cursor = use_cursor(mock_get_cursor)
        mock_cursor.fetchone.return_value = None

        with pytest.raises(NotFoundError):
            await EventRepository(DB_URL).update_event("nope", {"title": "X"})

    @pytest.mark.asyncio
    @patch("familycal.db.events.get_db_cursor")
    async def test_upsert_writes_in_id_order(self, mock_get_cursor, event_factory):
        mock_cursor = use_cursor(mock_get_cursor)
        events = [event_factory.make({"id": event_id}) for event_id in ("c", "a", "b")]

        await EventRepository(DB_URL).upsert_events(events)

        params = mock_cursor.executemany.call_args[0][1]
        assert [row[0] for row in params] == ["a", "b", "c"]

    @pytest.mark.asyncio
    @patch("familycal.db.events.get_db_cursor")
    async def test_delete_events_by_calendar_id(self, mock_get_cursor):
        mock_cursor = use_cursor(mock_get_cursor)
        mock_cursor.rowcount = 4

        deleted = await EventRepository(DB_URL).delete_events_by_calendar_id("cal-1")

        assert deleted == 4
        query, params = mock_cursor.execute.call_args[0]
        assert "DELETE FROM events WHERE calendar_id = %s" in query
        assert params == ("cal-1",)
