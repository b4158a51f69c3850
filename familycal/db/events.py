"""Database access for calendar events."""

import logging
from datetime import datetime, time, timedelta, timezone
from typing import Any, Iterable

from psycopg import sql

from familycal.errors import NotFoundError
from familycal.models.calendar import CalendarEvent
from .connection import get_db_cursor

logger = logging.getLogger(__name__)

EVENT_COLUMNS = (
    "e.id, e.calendar_id, e.title, e.description, e.start_time, e.end_time, "
    "e.all_day, e.location, e.created_at, e.updated_at"
)
JOINED_COLUMNS = f"{EVENT_COLUMNS}, c.name, c.color"

UPDATABLE_FIELDS = (
    "title",
    "description",
    "start_time",
    "end_time",
    "all_day",
    "location",
)


def _row_to_event(row: tuple) -> CalendarEvent:
    """Convert a database row (optionally with calendar name/color) to an event."""
    (
        event_id,
        calendar_id,
        title,
        description,
        start_time,
        end_time,
        all_day,
        location,
        created_at,
        updated_at,
        *calendar_fields,
    ) = row
    calendar_name, calendar_color = calendar_fields or (None, None)
    return CalendarEvent(
        id=event_id,
        calendar_id=calendar_id,
        title=title,
        description=description,
        start_time=start_time,
        end_time=end_time,
        all_day=bool(all_day),
        location=location,
        created_at=created_at,
        updated_at=updated_at,
        calendar_name=calendar_name,
        calendar_color=calendar_color,
    )


def today_bounds(now: datetime | None = None) -> tuple[str, str]:
    """Get ISO strings for the start of today and the start of tomorrow (UTC)."""
    now = now or datetime.now(timezone.utc)
    start_of_day = datetime.combine(now.date(), time.min, tzinfo=timezone.utc)
    end_of_day = start_of_day + timedelta(days=1)
    return start_of_day.isoformat(), end_of_day.isoformat()


class EventRepository:
    """Events table. Reads only return events of selected calendars."""

    def __init__(self, database_url: str):
        self.database_url = database_url

    async def get_events_by_calendar_id(self, calendar_id: str) -> list[CalendarEvent]:
        async with get_db_cursor(self.database_url) as cursor:
            await cursor.execute(
                f"""
                SELECT {JOINED_COLUMNS}
                FROM events e
                JOIN calendars c ON e.calendar_id = c.id
                WHERE e.calendar_id = %s AND c.selected = TRUE
                ORDER BY e.start_time ASC
                """,
                (calendar_id,),
            )
            return [_row_to_event(row) for row in await cursor.fetchall()]

    async def get_events_by_date_range(
        self, start_date: str, end_date: str, calendar_id: str | None = None
    ) -> list[CalendarEvent]:
        """Get events overlapping [start_date, end_date].

        Times are compared as ISO-8601 strings, which order correctly for both
        datetimes and bare dates.
        """
        query = f"""
            SELECT {JOINED_COLUMNS}
            FROM events e
            JOIN calendars c ON e.calendar_id = c.id
            WHERE c.selected = TRUE
        """
        params: list = []
        if calendar_id:
            query += " AND e.calendar_id = %s"
            params.append(calendar_id)
        query += " AND e.end_time >= %s AND e.start_time <= %s ORDER BY e.start_time ASC"
        params.extend([start_date, end_date])

        async with get_db_cursor(self.database_url) as cursor:
            await cursor.execute(query, params)
            return [_row_to_event(row) for row in await cursor.fetchall()]

    async def get_todays_events(self) -> list[CalendarEvent]:
        start_of_day, end_of_day = today_bounds()
        async with get_db_cursor(self.database_url) as cursor:
            await cursor.execute(
                f"""
                SELECT {JOINED_COLUMNS}
                FROM events e
                JOIN calendars c ON e.calendar_id = c.id
                WHERE c.selected = TRUE
                  AND e.start_time < %s
                  AND e.end_time >= %s
                ORDER BY e.start_time ASC
                """,
                (end_of_day, start_of_day),
            )
            return [_row_to_event(row) for row in await cursor.fetchall()]

    async def get_event_by_id(self, event_id: str) -> CalendarEvent | None:
        async with get_db_cursor(self.database_url) as cursor:
            await cursor.execute(
                f"SELECT {EVENT_COLUMNS} FROM events e WHERE e.id = %s",
                (event_id,),
            )
            row = await cursor.fetchone()
            return _row_to_event(row) if row else None

    async def create_event(self, event: CalendarEvent) -> CalendarEvent:
        """Insert a new event.

        Raises:
            NotFoundError: If the event's calendar does not exist.
        """
        now = datetime.now(timezone.utc)
        async with get_db_cursor(self.database_url) as cursor:
            await cursor.execute(
                "SELECT id FROM calendars WHERE id = %s", (event.calendar_id,)
            )
            if await cursor.fetchone() is None:
                raise NotFoundError("Calendar not found")

            await cursor.execute(
                """
                INSERT INTO events AS e (
                    id, calendar_id, title, description, start_time, end_time,
                    all_day, location, created_at, updated_at
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING """
                + EVENT_COLUMNS,
                (
                    event.id,
                    event.calendar_id,
                    event.title,
                    event.description,
                    event.start_time,
                    event.end_time,
                    event.all_day,
                    event.location,
                    now,
                    now,
                ),
            )
            row = await cursor.fetchone()

        if row is None:
            raise RuntimeError(f"Failed to create event_id={event.id}")
        logger.info(f"Created event: event_id={event.id}, calendar_id={event.calendar_id}")
        return _row_to_event(row)

    async def update_event(self, event_id: str, updates: dict[str, Any]) -> CalendarEvent:
        update_fields: list[sql.Composable] = []
        params: list = []
        for field in UPDATABLE_FIELDS:
            if field in updates:
                update_fields.append(sql.SQL("{} = %s").format(sql.Identifier(field)))
                params.append(updates[field])

        if not update_fields:
            existing = await self.get_event_by_id(event_id)
            if existing is None:
                raise NotFoundError("Event not found")
            return existing

        update_fields.append(sql.SQL("updated_at = %s"))
        params.append(datetime.now(timezone.utc))
        params.append(event_id)

        query = sql.SQL(
            "UPDATE events AS e SET {update_fields} WHERE e.id = %s RETURNING "
            + EVENT_COLUMNS
        ).format(update_fields=sql.SQL(", ").join(update_fields))

        async with get_db_cursor(self.database_url) as cursor:
            await cursor.execute(query, params)
            row = await cursor.fetchone()

        if row is None:
            raise NotFoundError("Event not found")
        return _row_to_event(row)

    async def delete_event(self, event_id: str) -> bool:
        async with get_db_cursor(self.database_url) as cursor:
            await cursor.execute("DELETE FROM events WHERE id = %s", (event_id,))
            return cursor.rowcount > 0

    async def delete_events_by_calendar_id(self, calendar_id: str) -> int:
        async with get_db_cursor(self.database_url) as cursor:
            await cursor.execute(
                "DELETE FROM events WHERE calendar_id = %s", (calendar_id,)
            )
            return cursor.rowcount

    async def upsert_events(self, events: Iterable[CalendarEvent]) -> int:
        """Insert or replace events by id.

        Rows whose content did not change are left untouched, so upserting the
        same events twice leaves the table identical. Rows are written in id
        order so concurrent batches sharing an event lock it in the same order.

        Returns:
            Number of events upserted.
        """
        now = datetime.now(timezone.utc)
        params = [
            (
                event.id,
                event.calendar_id,
                event.title,
                event.description,
                event.start_time,
                event.end_time,
                event.all_day,
                event.location,
                now,
                now,
            )
            for event in sorted(events, key=lambda event: event.id)
        ]
        if not params:
            return 0

        async with get_db_cursor(self.database_url) as cursor:
            await cursor.executemany(
                """
                INSERT INTO events AS e (
                    id, calendar_id, title, description, start_time, end_time,
                    all_day, location, created_at, updated_at
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (id)
                DO UPDATE SET
                    calendar_id = EXCLUDED.calendar_id,
                    title = EXCLUDED.title,
                    description = EXCLUDED.description,
                    start_time = EXCLUDED.start_time,
                    end_time = EXCLUDED.end_time,
                    all_day = EXCLUDED.all_day,
                    location = EXCLUDED.location,
                    updated_at = EXCLUDED.updated_at
                WHERE (e.calendar_id, e.title, e.description, e.start_time,
                       e.end_time, e.all_day, e.location)
                      IS DISTINCT FROM
                      (EXCLUDED.calendar_id, EXCLUDED.title, EXCLUDED.description,
                       EXCLUDED.start_time, EXCLUDED.end_time, EXCLUDED.all_day,
                       EXCLUDED.location)
                """,
                params,
            )

        logger.info(f"Upserted events: count={len(params)}")
        return len(params)
