"""
Skip controller for radio.

The only writer of a station's epoch. Skipping rewinds the epoch by the
time left in the current track, so every projection from then on lands on
the start of the following track.
"""

import threading
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from loguru import logger

from loopcast.domain.catalog.models import Track
from loopcast.domain.catalog.store import get_catalog
from loopcast.errors import NoCurrentTrackError, StationNotFoundError

from .auth import get_signing_secret, verify_token
from .epoch import get_epoch, save_epoch
from .models import Epoch
from .projector import project, remaining_seconds

# Serializes skips within one process; across processes the epoch write is
# last-write-wins
_skip_lock = threading.Lock()


def advance_epoch(epoch: Epoch, catalog: Sequence[Track], now: datetime) -> Epoch:
    """Compute the epoch that puts the next track on air at ``now``.

    Args:
        epoch: Current epoch
        catalog: Tracks in loop order
        now: Instant of the skip

    Returns:
        New Epoch (the input is not modified)

    Raises:
        NoCurrentTrackError: If nothing is on air (empty or zero-length loop)
    """
    snapshot = project(epoch, catalog, now)
    if snapshot.current is None:
        raise NoCurrentTrackError(f"Nothing on air for station {epoch.station_id}")

    remaining = remaining_seconds(snapshot)
    return replace(
        epoch,
        started_at=epoch.started_at - timedelta(seconds=remaining),
        updated_at=now,
    )


def skip_track(
    station_id: int,
    token: Optional[str],
    now: Optional[datetime] = None,
) -> Epoch:
    """Skip the track on air for a station.

    Requires a valid admin token. Nothing is written unless every check
    passes.

    Args:
        station_id: Station ID
        token: Admin capability token
        now: Instant of the skip (default: current time)

    Returns:
        The stored post-skip Epoch

    Raises:
        AuthorizationError: If the token is missing, invalid or expired
        StationNotFoundError: If the station does not exist
        NoCurrentTrackError: If nothing is on air
    """
    verify_token(token, get_signing_secret())

    with _skip_lock:
        now = now or datetime.now(timezone.utc)
        epoch = get_epoch(station_id)
        if epoch is None:
            raise StationNotFoundError(station_id)

        catalog = get_catalog(station_id)
        skipped = project(epoch, catalog, now).current
        new_epoch = advance_epoch(epoch, catalog, now)

        if not save_epoch(new_epoch):
            raise StationNotFoundError(station_id)

    logger.info(f"Skipped track {skipped.id} on station {station_id}")
    return new_epoch
