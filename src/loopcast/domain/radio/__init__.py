"""
Radio domain module.

Provides the shared-clock broadcast: a station epoch, deterministic schedule
projection, the skip controller and admin capability tokens.
"""

from .models import Epoch, ScheduleSnapshot
from .auth import (
    LoginRateLimiter,
    check_admin_password,
    issue_token,
    login,
    verify_token,
)
from .epoch import create_station, get_epoch, list_stations, save_epoch
from .projector import PREVIEW_SIZE, elapsed_since, loop_length, project, remaining_seconds
from .query import get_now_playing
from .skip import advance_epoch, skip_track

__all__ = [
    # Models
    "Epoch",
    "ScheduleSnapshot",
    # Epoch store
    "create_station",
    "get_epoch",
    "list_stations",
    "save_epoch",
    # Projection
    "PREVIEW_SIZE",
    "elapsed_since",
    "loop_length",
    "project",
    "remaining_seconds",
    "get_now_playing",
    # Skip
    "advance_epoch",
    "skip_track",
    # Auth
    "LoginRateLimiter",
    "check_admin_password",
    "issue_token",
    "login",
    "verify_token",
]
