"""Create calendars, events, admin_settings and sync_log tables.

Revision ID: 0001
Revises:
Create Date: 2026-10-16 00:00:00.000000+00:00

"""

from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE calendars (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            description TEXT,
            color VARCHAR(7) NOT NULL DEFAULT '#3B82F6',
            selected BOOLEAN NOT NULL DEFAULT FALSE,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
        )
    """)

    # start_time and end_time hold RFC 3339 datetimes or bare dates (all-day
    # events) as returned by Google; ISO strings sort chronologically.
    op.execute("""
        CREATE TABLE events (
            id TEXT PRIMARY KEY,
            calendar_id TEXT NOT NULL REFERENCES calendars(id) ON DELETE CASCADE,
            title TEXT NOT NULL,
            description TEXT,
            start_time TEXT NOT NULL,
            end_time TEXT NOT NULL,
            all_day BOOLEAN NOT NULL DEFAULT FALSE,
            location TEXT,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
        )
    """)
    op.execute("CREATE INDEX idx_events_calendar_id ON events(calendar_id)")
    op.execute("CREATE INDEX idx_events_start_time ON events(start_time)")

    op.execute("""
        CREATE TABLE admin_settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
        )
    """)

    op.execute("""
        CREATE TABLE sync_log (
            id SERIAL PRIMARY KEY,
            status VARCHAR(20) NOT NULL CHECK (status IN ('started', 'completed', 'failed')),
            message TEXT,
            events_synced INTEGER NOT NULL DEFAULT 0,
            started_at TIMESTAMP WITH TIME ZONE NOT NULL,
            completed_at TIMESTAMP WITH TIME ZONE,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
        )
    """)
    op.execute("CREATE INDEX idx_sync_log_started_at ON sync_log(started_at DESC)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS sync_log")
    op.execute("DROP TABLE IF EXISTS admin_settings")
    op.execute("DROP TABLE IF EXISTS events")
    op.execute("DROP TABLE IF EXISTS calendars")
