"""
Now-playing query for radio.

Reads a station's epoch and catalog and projects them onto the current
time. This is what the HTTP now-playing endpoint serves and what an
in-process listener polls.
"""

from datetime import datetime, timezone
from typing import Optional

from loguru import logger

from loopcast.domain.catalog.store import get_catalog

from .epoch import get_epoch
from .models import ScheduleSnapshot
from .projector import PREVIEW_SIZE, project


def get_now_playing(
    station_id: int,
    now: Optional[datetime] = None,
    preview_size: int = PREVIEW_SIZE,
) -> ScheduleSnapshot:
    """Get what a station has on air.

    An unknown station reports "no signal" rather than an error, like an
    empty catalog does.

    Args:
        station_id: Station ID
        now: Instant to project for (default: current time)
        preview_size: Maximum number of upcoming tracks

    Returns:
        ScheduleSnapshot

    Raises:
        StorageUnavailableError: If the store cannot be reached
    """
    epoch = get_epoch(station_id)
    if epoch is None:
        logger.debug(f"Station {station_id} not configured, reporting no signal")
        return ScheduleSnapshot.no_signal()

    catalog = get_catalog(station_id)
    snapshot = project(
        epoch, catalog, now or datetime.now(timezone.utc), preview_size=preview_size
    )
    if snapshot.current:
        logger.debug(
            f"Station {station_id} on air: track {snapshot.current.id} "
            f"at {snapshot.elapsed_seconds}s"
        )
    return snapshot
