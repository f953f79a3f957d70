"""
Epoch store for radio stations.

Each station row holds a single "loop started at" timestamp. Writes are a
plain overwrite (last write wins).
"""

from datetime import datetime, timezone
from typing import Any, Optional

from loguru import logger

from loopcast.core.db_adapter import get_station_db_connection

from .models import Epoch, parse_timestamp, to_utc


def _format_timestamp(value: datetime) -> str:
    return to_utc(value).isoformat()


def _row_to_epoch(row: Any) -> Epoch:
    """Convert database row to Epoch."""
    return Epoch(
        station_id=row["id"],
        name=row["name"],
        started_at=parse_timestamp(row["playlist_started_at"]),
        updated_at=parse_timestamp(row["updated_at"]),
    )


def create_station(name: str, started_at: Optional[datetime] = None) -> Epoch:
    """Create a station whose loop starts at ``started_at`` (default: now).

    Args:
        name: Display name
        started_at: Loop start instant

    Returns:
        The created station's Epoch

    Raises:
        ValueError: If name is empty
    """
    if not name.strip():
        raise ValueError("Station name cannot be empty")

    now = datetime.now(timezone.utc)
    started_at = started_at or now

    with get_station_db_connection() as conn:
        cursor = conn.execute(
            """
            INSERT INTO station_config (name, playlist_started_at, updated_at)
            VALUES (?, ?, ?)
            RETURNING id
            """,
            (name, _format_timestamp(started_at), _format_timestamp(now)),
        )
        station_id = cursor.fetchone()["id"]
        conn.commit()

    logger.info(f"Created station '{name}' with id {station_id}")
    return Epoch(
        station_id=station_id,
        name=name,
        started_at=to_utc(started_at),
        updated_at=now,
    )


def get_epoch(station_id: int) -> Optional[Epoch]:
    """Get a station's epoch.

    Args:
        station_id: Station ID

    Returns:
        Epoch or None if the station does not exist
    """
    with get_station_db_connection() as conn:
        cursor = conn.execute(
            "SELECT id, name, playlist_started_at, updated_at FROM station_config WHERE id = ?",
            (station_id,),
        )
        row = cursor.fetchone()
        return _row_to_epoch(row) if row else None


def list_stations() -> list[Epoch]:
    """Get every station's epoch, ordered by id."""
    with get_station_db_connection() as conn:
        cursor = conn.execute(
            "SELECT id, name, playlist_started_at, updated_at FROM station_config ORDER BY id"
        )
        return [_row_to_epoch(row) for row in cursor.fetchall()]


def save_epoch(epoch: Epoch) -> bool:
    """Overwrite a station's epoch.

    Single-statement update; concurrent writers resolve as last write wins.

    Returns:
        True if the station exists and was updated
    """
    with get_station_db_connection() as conn:
        cursor = conn.execute(
            """
            UPDATE station_config
            SET playlist_started_at = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                _format_timestamp(epoch.started_at),
                _format_timestamp(epoch.updated_at),
                epoch.station_id,
            ),
        )
        conn.commit()
        updated = cursor.rowcount > 0

    if updated:
        logger.info(
            f"Epoch for station {epoch.station_id} set to {epoch.started_at.isoformat()}"
        )
    return updated
