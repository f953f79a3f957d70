"""
Playback domain module.

Client side of the broadcast: the playback state machine, the engine it
drives, the controller that serializes events, and the polling loop.
"""

from .state import (
    RESYNC_TOLERANCE,
    PlaybackMode,
    PlaybackPhase,
    PlaybackState,
    transition,
)
from .engine import MpvEngine, PlaybackEngine, check_mpv_available
from .controller import PlaybackController
from .poller import PollingLoop
from .client import LocalRadio, RadioClient

__all__ = [
    # State machine
    "RESYNC_TOLERANCE",
    "PlaybackMode",
    "PlaybackPhase",
    "PlaybackState",
    "transition",
    # Engine
    "MpvEngine",
    "PlaybackEngine",
    "check_mpv_available",
    # Session
    "PlaybackController",
    "PollingLoop",
    # Schedule sources
    "LocalRadio",
    "RadioClient",
]
