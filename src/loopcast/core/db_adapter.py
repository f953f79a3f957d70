"""
Database adapter that supports both SQLite and PostgreSQL.

Uses DATABASE_URL environment variable to determine which backend to use:
- If DATABASE_URL starts with "postgres://", use PostgreSQL
- Otherwise, use SQLite (default behavior)
"""

import os
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Protocol

from loguru import logger

from loopcast.errors import StorageUnavailableError


class CursorProtocol(Protocol):
    """What the stores read back from a query."""

    def fetchone(self) -> Optional[Any]: ...
    def fetchall(self) -> list[Any]: ...
    @property
    def rowcount(self) -> int: ...


class ConnectionProtocol(Protocol):
    """Connection surface shared by sqlite3 and the PostgreSQL wrapper."""

    def execute(self, query: str, params: tuple = ()) -> CursorProtocol: ...
    def commit(self) -> None: ...


def get_database_url() -> Optional[str]:
    """Get DATABASE_URL from environment."""
    return os.environ.get("DATABASE_URL")


def is_postgres() -> bool:
    """Check if using PostgreSQL."""
    url = get_database_url()
    return url is not None and url.startswith(("postgres://", "postgresql://"))


class PostgresConnection:
    """psycopg2 connection with sqlite3-style ``execute`` and name-keyed rows."""

    def __init__(self, conn: Any) -> None:
        self._conn = conn

    def execute(self, query: str, params: tuple = ()) -> Any:
        from psycopg2.extras import RealDictCursor

        cursor = self._conn.cursor(cursor_factory=RealDictCursor)
        # Station queries never carry a literal "?"
        cursor.execute(query.replace("?", "%s"), params)
        return cursor

    def commit(self) -> None:
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()


@contextmanager
def get_station_db_connection() -> Iterator[ConnectionProtocol]:
    """
    Get a database connection for station epoch and catalog access.

    Uses DATABASE_URL if set (PostgreSQL), otherwise falls back to SQLite.

    Raises:
        StorageUnavailableError: If the backing store cannot be reached
    """
    if is_postgres():
        import psycopg2

        url = get_database_url()
        logger.debug("Connecting to PostgreSQL")

        try:
            conn = psycopg2.connect(url)
        except psycopg2.OperationalError as e:
            raise StorageUnavailableError(f"Cannot connect to PostgreSQL: {e}") from e

        wrapped = PostgresConnection(conn)
        try:
            yield wrapped
        except psycopg2.OperationalError as e:
            raise StorageUnavailableError(f"PostgreSQL error: {e}") from e
        finally:
            wrapped.close()
    else:
        from .database import get_db_connection

        with get_db_connection() as conn:
            yield conn


def init_postgres_schema() -> None:
    """Initialize PostgreSQL schema for station tables."""
    if not is_postgres():
        logger.debug("Not using PostgreSQL, skipping schema init")
        return

    import psycopg2

    logger.info("Initializing PostgreSQL schema...")

    conn = psycopg2.connect(get_database_url())
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS station_config (
            id SERIAL PRIMARY KEY,
            name TEXT NOT NULL,
            playlist_started_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS tracks (
            id SERIAL PRIMARY KEY,
            station_id INTEGER NOT NULL REFERENCES station_config(id) ON DELETE CASCADE,
            title TEXT NOT NULL,
            artist TEXT NOT NULL,
            duration_seconds INTEGER NOT NULL DEFAULT 0,
            file_url TEXT NOT NULL,
            play_order INTEGER NOT NULL DEFAULT 0,
            artwork_url TEXT,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_tracks_station_order "
        "ON tracks(station_id, play_order, id)"
    )

    conn.commit()
    cursor.close()
    conn.close()

    logger.info("PostgreSQL schema initialized")


def init_storage() -> None:
    """Create the schema on whichever backend is configured."""
    if is_postgres():
        init_postgres_schema()
    else:
        from .database import init_database

        init_database()
