"""Test the /api/events endpoints."""

from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from familycal.app.dependencies import get_event_repository
from familycal.errors import NotFoundError


@pytest.fixture
def mock_events(app: FastAPI) -> AsyncMock:
    """Override the event repository dependency with a mock."""
    events = AsyncMock()
    app.dependency_overrides[get_event_repository] = lambda: events
    return events


class TestReadEvents:
    """Test GET /api/events and /api/events/today."""

    def test_defaults_to_today(self, client: TestClient, mock_events, event_factory):
        mock_events.get_todays_events.return_value = [event_factory.make()]

        response = client.get("/api/events")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Retrieved 1 events"
        assert body["data"][0]["title"] == "Soccer practice"
        mock_events.get_events_by_date_range.assert_not_awaited()

    def test_by_calendar_takes_precedence(self, client: TestClient, mock_events):
        mock_events.get_events_by_calendar_id.return_value = []

        client.get("/api/events", params={"calendar_id": "cal-1", "start_date": "2026-10-01"})

        mock_events.get_events_by_calendar_id.assert_awaited_once_with("cal-1")
        mock_events.get_events_by_date_range.assert_not_awaited()

    def test_by_date_range(self, client: TestClient, mock_events):
        mock_events.get_events_by_date_range.return_value = []

        client.get(
            "/api/events",
            params={"start_date": "2026-10-01T00:00:00Z", "end_date": "2026-10-31T23:59:59Z"},
        )

        mock_events.get_events_by_date_range.assert_awaited_once_with(
            "2026-10-01T00:00:00Z", "2026-10-31T23:59:59Z"
        )

    def test_open_ended_range_starts_at_epoch(self, client: TestClient, mock_events):
        mock_events.get_events_by_date_range.return_value = []

        client.get("/api/events", params={"end_date": "2026-10-31"})

        start_date, end_date = mock_events.get_events_by_date_range.await_args.args
        assert start_date == "1970-01-01T00:00:00+00:00"
        assert end_date == "2026-10-31"

    def test_limit(self, client: TestClient, mock_events, event_factory):
        mock_events.get_todays_events.return_value = [
            event_factory.make({"id": f"event-{i}"}) for i in range(5)
        ]

        response = client.get("/api/events", params={"limit": 2})

        assert [e["id"] for e in response.json()["data"]] == ["event-0", "event-1"]

    def test_invalid_limit(self, client: TestClient, mock_events):
        response = client.get("/api/events", params={"limit": 0})

        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"

    def test_today(self, client: TestClient, mock_events, event_factory):
        mock_events.get_todays_events.return_value = [
            event_factory.make({"calendar_name": "Family", "calendar_color": "#10B981"})
        ]

        response = client.get("/api/events/today")

        body = response.json()
        assert body["message"] == "Retrieved 1 events for today"
        assert body["data"][0]["calendar_color"] == "#10B981"


class TestWriteEvents:
    """Test POST and DELETE /api/events."""

    def test_create(self, auth_client: TestClient, mock_events, event_factory):
        mock_events.create_event.return_value = event_factory.make({"id": "event-9"})

        response = auth_client.post(
            "/api/events",
            json={
                "id": "event-9",
                "calendar_id": "family@group.calendar.google.com",
                "title": "Soccer practice",
                "start_time": "2026-10-16T17:00:00-05:00",
                "end_time": "2026-10-16T18:30:00-05:00",
            },
        )

        assert response.status_code == 201
        assert response.json() == {
            "success": True,
            "data": {"id": "event-9"},
            "message": 'Event "Soccer practice" created successfully',
        }
        created = mock_events.create_event.await_args.args[0]
        assert created.all_day is False

    def test_create_in_unknown_calendar(self, auth_client: TestClient, mock_events):
        mock_events.create_event.side_effect = NotFoundError("Calendar not found")

        response = auth_client.post(
            "/api/events",
            json={
                "id": "event-9",
                "calendar_id": "nope",
                "title": "Orphan",
                "start_time": "2026-10-16",
                "end_time": "2026-10-17",
                "all_day": True,
            },
        )

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Calendar not found"}

    def test_create_missing_title(self, auth_client: TestClient, mock_events):
        response = auth_client.post(
            "/api/events",
            json={"id": "e", "calendar_id": "c", "start_time": "2026-10-16", "end_time": "2026-10-17"},
        )

        assert response.status_code == 400
        fields = [e["field"] for e in response.json()["details"]["errors"]]
        assert fields == ["title"]
        mock_events.create_event.assert_not_awaited()

    def test_create_requires_auth(self, client: TestClient, mock_events):
        response = client.post(
            "/api/events",
            json={
                "id": "event-9",
                "calendar_id": "cal-1",
                "title": "Sneaky",
                "start_time": "2026-10-16",
                "end_time": "2026-10-17",
            },
        )

        assert response.status_code == 401
        mock_events.create_event.assert_not_awaited()

    def test_delete(self, auth_client: TestClient, mock_events):
        mock_events.delete_event.return_value = True

        response = auth_client.delete("/api/events/event-1")

        assert response.json() == {"success": True, "message": "Event deleted successfully"}

    def test_delete_missing(self, auth_client: TestClient, mock_events):
        mock_events.delete_event.return_value = False

        response = auth_client.delete("/api/events/nope")

        assert response.status_code == 404
        assert response.json()["error"] == "Event not found"

    def test_delete_requires_auth(self, client: TestClient, mock_events):
        assert client.delete("/api/events/event-1").status_code == 401
        mock_events.delete_event.assert_not_awaited()
