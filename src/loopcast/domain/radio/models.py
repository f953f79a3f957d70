"""
Radio domain models.

Contains data structures for the station epoch and projected schedule.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from loopcast.domain.catalog.models import Track


def to_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Parse a stored timestamp (ISO string for SQLite, datetime for PostgreSQL)."""
    if isinstance(value, datetime):
        return to_utc(value)
    return to_utc(datetime.fromisoformat(str(value)))


@dataclass(frozen=True)
class Epoch:
    """When a station's loop started.

    Every listener derives the current position from this one timestamp.
    Only the skip operation moves it.
    """

    station_id: int
    name: str
    started_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class ScheduleSnapshot:
    """What is on air at one instant.

    Recomputed on every poll and never stored. When ``current`` is set,
    ``0 <= elapsed_seconds < current.duration``; ``current`` is None exactly
    when the catalog is empty or has zero total duration.
    """

    current: Optional[Track]
    elapsed_seconds: int
    up_next: tuple[Track, ...]
    total_tracks: int
    current_index: Optional[int] = None  # Index into the projected catalog

    @classmethod
    def no_signal(cls, total_tracks: int = 0) -> "ScheduleSnapshot":
        """Snapshot for an empty or zero-length loop."""
        return cls(current=None, elapsed_seconds=0, up_next=(), total_tracks=total_tracks)

    @property
    def on_air(self) -> bool:
        return self.current is not None

    @property
    def source_url(self) -> Optional[str]:
        return self.current.source_url if self.current else None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the query interface body."""
        return {
            "current_track": self.current.to_dict() if self.current else None,
            "elapsed_seconds": self.elapsed_seconds,
            "up_next": [t.to_dict() for t in self.up_next],
            "total_tracks": self.total_tracks,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScheduleSnapshot":
        """Parse a query interface body.

        Raises:
            ValueError: If the body is missing required fields
        """
        try:
            current_data = data.get("current_track")
            current = Track.from_dict(current_data) if current_data else None
            up_next = tuple(
                Track.from_dict(t, play_order=i + 1)
                for i, t in enumerate(data.get("up_next") or [])
            )
            return cls(
                current=current,
                elapsed_seconds=max(0, int(data.get("elapsed_seconds") or 0)),
                up_next=up_next,
                total_tracks=int(data.get("total_tracks") or 0),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed now-playing response: {e}") from e
