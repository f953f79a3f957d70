"""
SQLite database operations for Loopcast
"""

import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from loguru import logger

from loopcast.errors import StorageUnavailableError

from .config import DatabaseConfig, get_data_dir

# Database schema version for migrations
SCHEMA_VERSION = 1

# Set from the [database] config section; LOOPCAST_DB_PATH wins over both
_configured_path: Optional[Path] = None


def configure_database(config: DatabaseConfig) -> None:
    """Apply the [database] config section."""
    global _configured_path
    _configured_path = Path(config.path) if config.path else None


def get_database_path() -> Path:
    """Get the path to the SQLite database file."""
    env_path = os.environ.get("LOOPCAST_DB_PATH")
    if env_path:
        return Path(env_path).expanduser()
    if _configured_path:
        return _configured_path
    return get_data_dir() / "loopcast.db"


@contextmanager
def get_db_connection() -> Iterator[sqlite3.Connection]:
    """Get a database connection with proper cleanup and concurrency support.

    Raises:
        StorageUnavailableError: If the database cannot be opened or queried
    """
    db_path = get_database_path()
    try:
        conn = sqlite3.connect(db_path, timeout=30.0)
    except sqlite3.Error as e:
        raise StorageUnavailableError(f"Cannot open database {db_path}: {e}") from e
    conn.row_factory = sqlite3.Row  # Enable dict-like access

    try:
        # WAL mode allows reads during writes (many pollers, one admin)
        conn.execute("PRAGMA journal_mode=WAL")
        yield conn
    except sqlite3.OperationalError as e:
        raise StorageUnavailableError(f"Database error: {e}") from e
    finally:
        conn.close()


def init_database() -> None:
    """Initialize the database with required tables."""
    db_path = get_database_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    with get_db_connection() as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY
            )
        """)

        # One row per station; playlist_started_at is the epoch
        conn.execute("""
            CREATE TABLE IF NOT EXISTS station_config (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                playlist_started_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS tracks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
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

        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_tracks_station_order "
            "ON tracks(station_id, play_order, id)"
        )

        conn.execute(
            "INSERT OR IGNORE INTO schema_version (version) VALUES (?)",
            (SCHEMA_VERSION,),
        )
        conn.commit()

    logger.info(f"Database initialized at {db_path}")
