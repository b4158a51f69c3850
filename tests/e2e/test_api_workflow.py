import psycopg
import pytest


def seed_calendar(db_url: str, calendar_id: str, name: str, selected: bool) -> None:
    with psycopg.connect(db_url, autocommit=True) as conn:
        conn.execute(
            "INSERT INTO calendars (id, name, selected) VALUES (%s, %s, %s)",
            (calendar_id, name, selected),
        )


@pytest.mark.e2e
def test_admin_manages_calendars_and_events(client, auth_client, db_url):
    seed_calendar(db_url, "school@group.calendar.google.com", "School", selected=False)

    # Public reads need no session
    res = client.get("/api/calendars")
    assert res.status_code == 200
    assert [c["name"] for c in res.json()["data"]] == ["School"]
    assert client.get("/api/calendars/selected").json()["data"] == []

    res = auth_client.put("/api/calendars/school@group.calendar.google.com/toggle")
    assert res.status_code == 200
    assert res.json()["data"]["selected"] is True

    res = auth_client.post(
        "/api/events",
        json={
            "id": "manual-1",
            "calendar_id": "school@group.calendar.google.com",
            "title": "Parent-teacher conference",
            "start_time": "2026-10-20T15:00:00Z",
            "end_time": "2026-10-20T15:30:00Z",
        },
    )
    assert res.status_code == 201

    res = client.get(
        "/api/events",
        params={"start_date": "2026-10-20T00:00:00Z", "end_date": "2026-10-21T00:00:00Z"},
    )
    events = res.json()["data"]
    assert [e["id"] for e in events] == ["manual-1"]
    assert events[0]["calendar_name"] == "School"

    res = auth_client.delete("/api/calendars/school@group.calendar.google.com")
    assert res.status_code == 200
    assert auth_client.delete("/api/events/manual-1").status_code == 404


@pytest.mark.e2e
def test_admin_settings_and_status(auth_client):
    res = auth_client.get("/auth/status")
    assert res.json()["data"]["authenticated"] is True
    assert res.json()["data"]["user"]["email"] == "e2e@example.com"

    res = auth_client.put(
        "/api/admin/settings",
        json={"settings": {"theme": "dark", "admin_user_id": "intruder"}},
    )
    assert res.json()["message"] == "Settings updated successfully"

    settings = auth_client.get("/api/admin/settings").json()["data"]
    assert settings["theme"] == "dark"
    assert settings["admin_user_id"] == "google-e2e-admin"

    assert auth_client.get("/api/admin/last-sync-time").status_code == 404


@pytest.mark.e2e
def test_sync_without_google_sign_in(auth_client):
    res = auth_client.get("/api/sync/logs")
    assert res.status_code == 200
    assert res.json()["data"] == []
