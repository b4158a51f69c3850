from contextlib import asynccontextmanager
from typing import AsyncIterator

import psycopg

from familycal.errors import StorageError


def get_sqlalchemy_database_url(url: str) -> str:
    """Get the database URL formatted for SQLAlchemy (used by Alembic).

    Automatically converts postgresql:// to postgresql+psycopg://
    to ensure psycopg3 is used instead of psycopg2.
    """
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


@asynccontextmanager
async def get_db_connection(url: str) -> AsyncIterator[psycopg.AsyncConnection]:
    """Get an async database connection context manager.

    Explicitly closes the connection to ensure proper cleanup.
    """
    try:
        conn = await psycopg.AsyncConnection.connect(url)
    except psycopg.Error as e:
        raise StorageError(f"Failed to connect to database: {e}") from e
    try:
        yield conn
    finally:
        await conn.close()


@asynccontextmanager
async def get_db_cursor(url: str) -> AsyncIterator[psycopg.AsyncCursor]:
    """Get an async database cursor context manager.

    Commits the transaction on successful completion, or rolls back on
    exception. Driver errors are re-raised as StorageError.
    """
    async with get_db_connection(url) as conn:
        async with conn.cursor() as cursor:
            try:
                yield cursor
                await conn.commit()
            except psycopg.Error as e:
                await conn.rollback()
                raise StorageError(f"Database error: {e}") from e
            except Exception:
                await conn.rollback()
                raise
