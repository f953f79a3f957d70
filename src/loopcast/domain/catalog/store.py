"""
Catalog access for a station's loop.

Read-only from the scheduler's point of view; add_track exists for seeding
stations from the CLI.
"""

from typing import Any, Optional

from loguru import logger

from loopcast.core.db_adapter import get_station_db_connection

from .models import Track


def _row_to_track(row: Any) -> Track:
    """Convert database row to Track."""
    return Track(
        id=row["id"],
        title=row["title"],
        artist=row["artist"],
        duration=max(0, int(row["duration_seconds"] or 0)),
        source_url=row["file_url"],
        play_order=row["play_order"],
        artwork_url=row["artwork_url"],
    )


def get_catalog(station_id: int) -> list[Track]:
    """Get a station's tracks in loop order.

    Ordering is (play_order, id) so ties in play_order still give a total
    order.

    Args:
        station_id: Station ID

    Returns:
        Ordered list of tracks (empty if the station has none)
    """
    with get_station_db_connection() as conn:
        cursor = conn.execute(
            """
            SELECT id, title, artist, duration_seconds, file_url, play_order, artwork_url
            FROM tracks
            WHERE station_id = ?
            ORDER BY play_order, id
            """,
            (station_id,),
        )
        return [_row_to_track(row) for row in cursor.fetchall()]


def get_track(station_id: int, track_id: int) -> Optional[Track]:
    """Get a single track from a station's catalog.

    Returns:
        Track or None if not found
    """
    with get_station_db_connection() as conn:
        cursor = conn.execute(
            """
            SELECT id, title, artist, duration_seconds, file_url, play_order, artwork_url
            FROM tracks
            WHERE station_id = ? AND id = ?
            """,
            (station_id, track_id),
        )
        row = cursor.fetchone()
        return _row_to_track(row) if row else None


def add_track(
    station_id: int,
    title: str,
    artist: str,
    duration: int,
    source_url: str,
    play_order: Optional[int] = None,
    artwork_url: Optional[str] = None,
) -> Track:
    """Append a track to a station's loop.

    Args:
        station_id: Station ID
        title: Track title
        artist: Track artist
        duration: Duration estimate in whole seconds
        source_url: Playable source locator
        play_order: Explicit position (default: after the current last track)
        artwork_url: Optional artwork locator

    Returns:
        The created Track

    Raises:
        ValueError: If duration is negative or source_url is empty
    """
    if duration < 0:
        raise ValueError(f"Invalid duration: {duration}. Must be >= 0")
    if not source_url.strip():
        raise ValueError("Track needs a source URL")

    with get_station_db_connection() as conn:
        if play_order is None:
            cursor = conn.execute(
                "SELECT COALESCE(MAX(play_order), -1) AS last FROM tracks WHERE station_id = ?",
                (station_id,),
            )
            play_order = int(cursor.fetchone()["last"]) + 1

        cursor = conn.execute(
            """
            INSERT INTO tracks (station_id, title, artist, duration_seconds, file_url, play_order, artwork_url)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            RETURNING id
            """,
            (station_id, title, artist, duration, source_url, play_order, artwork_url),
        )
        track_id = cursor.fetchone()["id"]
        conn.commit()

    logger.info(
        f"Added track {track_id} to station {station_id}: {artist} - {title} "
        f"({duration}s, order={play_order})"
    )
    return Track(
        id=track_id,
        title=title,
        artist=artist,
        duration=duration,
        source_url=source_url,
        play_order=play_order,
        artwork_url=artwork_url,
    )
