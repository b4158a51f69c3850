"""Database access for the sync audit log."""

import logging
from datetime import datetime, timezone

from familycal.models.sync import SyncLogEntry, SyncStatus
from .connection import get_db_cursor

logger = logging.getLogger(__name__)

SYNC_LOG_COLUMNS = "id, status, message, events_synced, started_at, completed_at, created_at"


def _row_to_sync_log(row: tuple) -> SyncLogEntry:
    """Convert a database row to a SyncLogEntry object."""
    (
        log_id,
        status,
        message,
        events_synced,
        started_at,
        completed_at,
        created_at,
    ) = row
    return SyncLogEntry(
        id=log_id,
        status=status,
        message=message,
        events_synced=events_synced or 0,
        started_at=started_at,
        completed_at=completed_at,
        created_at=created_at,
    )


class SyncLogRepository:
    """Append-only log with one row per sync invocation."""

    def __init__(self, database_url: str):
        self.database_url = database_url

    async def create_log(
        self, status: SyncStatus, message: str, events_synced: int = 0
    ) -> SyncLogEntry:
        now = datetime.now(timezone.utc)
        async with get_db_cursor(self.database_url) as cursor:
            await cursor.execute(
                f"""
                INSERT INTO sync_log (status, message, events_synced, started_at, created_at)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING {SYNC_LOG_COLUMNS}
                """,
                (status, message, events_synced, now, now),
            )
            row = await cursor.fetchone()

        if row is None:
            raise RuntimeError("Sync log was not created")
        entry = _row_to_sync_log(row)
        logger.debug(f"Created sync log: sync_log_id={entry.id}, status={status}")
        return entry

    async def update_log(
        self,
        log_id: int,
        status: SyncStatus,
        message: str,
        events_synced: int | None = None,
    ) -> bool:
        """Move a log entry to its terminal status and stamp `completed_at`."""
        async with get_db_cursor(self.database_url) as cursor:
            await cursor.execute(
                """
                UPDATE sync_log
                SET status = %s,
                    message = %s,
                    events_synced = %s,
                    completed_at = %s
                WHERE id = %s
                """,
                (status, message, events_synced or 0, datetime.now(timezone.utc), log_id),
            )
            updated = cursor.rowcount > 0

        if not updated:
            logger.warning(f"No sync log found to update: sync_log_id={log_id}")
        return updated

    async def get_logs(self, limit: int) -> list[SyncLogEntry]:
        async with get_db_cursor(self.database_url) as cursor:
            await cursor.execute(
                f"""
                SELECT {SYNC_LOG_COLUMNS}
                FROM sync_log
                ORDER BY started_at DESC
                LIMIT %s
                """,
                (limit,),
            )
            return [_row_to_sync_log(row) for row in await cursor.fetchall()]

    async def get_log_by_id(self, log_id: int) -> SyncLogEntry | None:
        async with get_db_cursor(self.database_url) as cursor:
            await cursor.execute(
                f"SELECT {SYNC_LOG_COLUMNS} FROM sync_log WHERE id = %s", (log_id,)
            )
            row = await cursor.fetchone()
            return _row_to_sync_log(row) if row else None
