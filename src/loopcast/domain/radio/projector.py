"""
Deterministic schedule projection for radio.

The core algorithm that makes "tune in mid-stream" work: given when the loop
started, the ordered catalog and the wall clock, calculate exactly which
track is on air and how far into it we are. Pure functions only - every
client and server process can call these without coordination.
"""

import math
from datetime import datetime
from typing import Sequence

from loguru import logger

from loopcast.domain.catalog.models import Track

from .models import Epoch, ScheduleSnapshot, to_utc

# Upcoming tracks shown in the queue display
PREVIEW_SIZE = 5


def loop_length(catalog: Sequence[Track]) -> int:
    """Total loop duration in seconds.

    Tracks with nonpositive duration occupy no time in the loop.
    """
    return sum(max(track.duration, 0) for track in catalog)


def elapsed_since(epoch: Epoch, now: datetime) -> int:
    """Whole seconds since the epoch (negative if the clock is behind it)."""
    return math.floor((to_utc(now) - to_utc(epoch.started_at)).total_seconds())


def _preview(catalog: Sequence[Track], index: int, size: int) -> tuple[Track, ...]:
    """Next playable tracks after ``index``, wrapping around the catalog."""
    playable = sum(1 for track in catalog if track.duration > 0)
    count = min(size, playable - 1)
    upcoming: list[Track] = []
    offset = 1
    while len(upcoming) < count:
        track = catalog[(index + offset) % len(catalog)]
        if track.duration > 0:
            upcoming.append(track)
        offset += 1
    return tuple(upcoming)


def project(
    epoch: Epoch,
    catalog: Sequence[Track],
    now: datetime,
    preview_size: int = PREVIEW_SIZE,
) -> ScheduleSnapshot:
    """Calculate what is on air at ``now``.

    Never raises for plausible input: an empty catalog or zero total
    duration is the "no signal" snapshot, and an epoch in the future (clock
    skew) still resolves to a valid in-loop position.

    Args:
        epoch: Station epoch
        catalog: Tracks in loop order
        now: Instant to project for
        preview_size: Maximum number of upcoming tracks

    Returns:
        ScheduleSnapshot for ``now``
    """
    length = loop_length(catalog)
    if not catalog or length == 0:
        return ScheduleSnapshot.no_signal(total_tracks=len(catalog))

    # Python's % on a positive divisor is floor-mod, so a negative elapsed
    # still lands in [0, length)
    position = elapsed_since(epoch, now) % length

    accumulated = 0
    for index, track in enumerate(catalog):
        if track.duration <= 0:
            continue
        if accumulated + track.duration > position:
            return ScheduleSnapshot(
                current=track,
                elapsed_seconds=position - accumulated,
                up_next=_preview(catalog, index, preview_size),
                total_tracks=len(catalog),
                current_index=index,
            )
        accumulated += track.duration

    # Unreachable while position < length
    logger.warning(
        f"Position calculation overflow for station {epoch.station_id}: "
        f"position={position}, length={length}"
    )
    return ScheduleSnapshot.no_signal(total_tracks=len(catalog))


def remaining_seconds(snapshot: ScheduleSnapshot) -> int:
    """Seconds left in the current track (0 when nothing is on air)."""
    if snapshot.current is None:
        return 0
    return snapshot.current.duration - snapshot.elapsed_seconds
