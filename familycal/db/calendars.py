"""Database access for calendars."""

import logging
from datetime import datetime, timezone
from typing import Any, Iterable

from psycopg import sql

from familycal.errors import NotFoundError
from familycal.models.calendar import Calendar, DEFAULT_CALENDAR_COLOR
from .connection import get_db_cursor

logger = logging.getLogger(__name__)

CALENDAR_COLUMNS = "id, name, description, color, selected, created_at, updated_at"

# Fields an admin may change by hand.
UPDATABLE_FIELDS = ("name", "description", "color", "selected")


def _row_to_calendar(row: tuple) -> Calendar:
    """Convert a database row to a Calendar object."""
    (
        calendar_id,
        name,
        description,
        color,
        selected,
        created_at,
        updated_at,
    ) = row
    return Calendar(
        id=calendar_id,
        name=name,
        description=description,
        color=color or DEFAULT_CALENDAR_COLOR,
        selected=bool(selected),
        created_at=created_at,
        updated_at=updated_at,
    )


class CalendarRepository:
    """Calendars table, including the selection-preserving sync upsert."""

    def __init__(self, database_url: str):
        self.database_url = database_url

    async def get_all_calendars(self) -> list[Calendar]:
        async with get_db_cursor(self.database_url) as cursor:
            await cursor.execute(
                f"SELECT {CALENDAR_COLUMNS} FROM calendars ORDER BY name"
            )
            return [_row_to_calendar(row) for row in await cursor.fetchall()]

    async def get_selected_calendars(self) -> list[Calendar]:
        async with get_db_cursor(self.database_url) as cursor:
            await cursor.execute(
                f"SELECT {CALENDAR_COLUMNS} FROM calendars "
                "WHERE selected = TRUE ORDER BY name ASC"
            )
            return [_row_to_calendar(row) for row in await cursor.fetchall()]

    async def get_calendar_by_id(self, calendar_id: str) -> Calendar | None:
        async with get_db_cursor(self.database_url) as cursor:
            await cursor.execute(
                f"SELECT {CALENDAR_COLUMNS} FROM calendars WHERE id = %s",
                (calendar_id,),
            )
            row = await cursor.fetchone()
            return _row_to_calendar(row) if row else None

    async def get_existing_calendar_ids(self) -> set[str]:
        """Get the ids of every calendar currently stored."""
        async with get_db_cursor(self.database_url) as cursor:
            await cursor.execute("SELECT id FROM calendars")
            return {row[0] for row in await cursor.fetchall()}

    async def create_calendar(self, calendar: Calendar) -> Calendar:
        logger.info(f"Creating calendar: calendar_id={calendar.id}")
        now = datetime.now(timezone.utc)
        async with get_db_cursor(self.database_url) as cursor:
            await cursor.execute(
                f"""
                INSERT INTO calendars (id, name, description, color, selected, created_at, updated_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                RETURNING {CALENDAR_COLUMNS}
                """,
                (
                    calendar.id,
                    calendar.name,
                    calendar.description,
                    calendar.color or DEFAULT_CALENDAR_COLOR,
                    calendar.selected,
                    now,
                    now,
                ),
            )
            row = await cursor.fetchone()
            if row is None:
                raise RuntimeError(f"Failed to create calendar_id={calendar.id}")
            return _row_to_calendar(row)

    async def update_calendar(self, calendar_id: str, updates: dict[str, Any]) -> Calendar:
        """Update the given fields of a calendar.

        Raises:
            NotFoundError: If the calendar does not exist.
        """
        update_fields: list[sql.Composable] = []
        params: list = []
        for field in UPDATABLE_FIELDS:
            if field in updates:
                update_fields.append(
                    sql.SQL("{} = %s").format(sql.Identifier(field))
                )
                params.append(updates[field])

        if not update_fields:
            existing = await self.get_calendar_by_id(calendar_id)
            if existing is None:
                raise NotFoundError("Calendar not found")
            return existing

        update_fields.append(sql.SQL("updated_at = %s"))
        params.append(datetime.now(timezone.utc))
        params.append(calendar_id)

        query = sql.SQL(
            "UPDATE calendars SET {update_fields} WHERE id = %s RETURNING "
            + CALENDAR_COLUMNS
        ).format(update_fields=sql.SQL(", ").join(update_fields))

        async with get_db_cursor(self.database_url) as cursor:
            await cursor.execute(query, params)
            row = await cursor.fetchone()

        if row is None:
            raise NotFoundError("Calendar not found")
        return _row_to_calendar(row)

    async def toggle_calendar_selection(self, calendar_id: str) -> Calendar:
        async with get_db_cursor(self.database_url) as cursor:
            await cursor.execute(
                f"""
                UPDATE calendars
                SET selected = NOT selected,
                    updated_at = %s
                WHERE id = %s
                RETURNING {CALENDAR_COLUMNS}
                """,
                (datetime.now(timezone.utc), calendar_id),
            )
            row = await cursor.fetchone()

        if row is None:
            raise NotFoundError("Calendar not found")
        calendar = _row_to_calendar(row)
        logger.info(
            f"Toggled calendar selection: calendar_id={calendar_id}, "
            f"selected={calendar.selected}"
        )
        return calendar

    async def delete_calendar(self, calendar_id: str) -> bool:
        """Delete a calendar. Its events are removed by the foreign key cascade."""
        async with get_db_cursor(self.database_url) as cursor:
            await cursor.execute("DELETE FROM calendars WHERE id = %s", (calendar_id,))
            deleted = cursor.rowcount > 0

        if deleted:
            logger.info(f"Deleted calendar: calendar_id={calendar_id}")
        else:
            logger.warning(f"No calendar found to delete: calendar_id={calendar_id}")
        return deleted

    async def upsert_synced_calendars(self, calendars: Iterable[Calendar]) -> int:
        """Insert or refresh calendars fetched from Google.

        Only name, description and color are written for calendars that already
        exist; their `selected` flag is left as it is. New calendars start
        unselected.

        Returns:
            Number of calendars written.
        """
        now = datetime.now(timezone.utc)
        params = [
            (
                calendar.id,
                calendar.name,
                calendar.description,
                calendar.color,
                now,
                now,
            )
            for calendar in calendars
        ]
        if not params:
            return 0

        async with get_db_cursor(self.database_url) as cursor:
            await cursor.executemany(
                """
                INSERT INTO calendars (id, name, description, color, selected, created_at, updated_at)
                VALUES (%s, %s, %s, %s, FALSE, %s, %s)
                ON CONFLICT (id)
                DO UPDATE SET
                    name = EXCLUDED.name,
                    description = EXCLUDED.description,
                    color = EXCLUDED.color,
                    updated_at = EXCLUDED.updated_at
                """,
                params,
            )

        logger.info(f"Upserted synced calendars: count={len(params)}")
        return len(params)
