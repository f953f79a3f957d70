"""
Playback controller: the single owner of a client's playback state.

Events from the polling loop, the listener and the engine all go through
``dispatch``, which applies the state machine under a lock and sends the
resulting commands to the one engine in order. Snapshot fetches happen
outside the lock; poll results carry the generation they were issued under
so a response that arrives after the listener changed modes is dropped.
"""

import threading
import time
from typing import Callable, Optional

from loguru import logger

from loopcast.domain.catalog.models import Track
from loopcast.domain.radio.models import ScheduleSnapshot
from loopcast.errors import PlaybackRejected, SnapshotUnavailable

from .engine import PlaybackEngine
from .state import (
    RESYNC_TOLERANCE,
    Command,
    EngineEnded,
    EngineProgress,
    Event,
    Load,
    Pause,
    Play,
    PlaybackMode,
    PlaybackState,
    PlayRejected,
    PollResult,
    Seek,
    SeekRequested,
    SetVolume,
    SkipInvoked,
    UserPaused,
    UserRequestedLive,
    UserRequestedTrack,
    UserResumed,
    VolumeChanged,
    transition,
)


class PlaybackController:
    """Serializes playback events and engine commands for one session."""

    def __init__(
        self,
        engine: PlaybackEngine,
        fetch_snapshot: Callable[[], ScheduleSnapshot],
        skip_request: Optional[Callable[[str], None]] = None,
        volume: float = 0.8,
        resync_tolerance: float = RESYNC_TOLERANCE,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            engine: The session's playback engine
            fetch_snapshot: Returns the current schedule; raises
                SnapshotUnavailable on transient failure
            skip_request: Sends an admin skip with a token
            volume: Initial volume (0..1), applied by ``start``
            resync_tolerance: Seconds a live pause may last before resume reloads
            clock: Wall clock in seconds
        """
        self.engine = engine
        self.fetch_snapshot = fetch_snapshot
        self.skip_request = skip_request
        self.resync_tolerance = resync_tolerance
        self.clock = clock
        self._lock = threading.RLock()
        self._state = PlaybackState(volume=volume)

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def calibrating(self) -> bool:
        return self._state.calibrating

    def dispatch(self, event: Event) -> PlaybackState:
        """Apply an event and run its commands against the engine."""
        with self._lock:
            self._state, commands = transition(
                self._state, event, self.resync_tolerance
            )
            self._execute(commands)
            return self._state

    def _execute(self, commands: list[Command]) -> None:
        for command in commands:
            try:
                self._run(command)
            except PlaybackRejected as e:
                logger.warning(f"Play rejected by engine: {e}")
                self._state, _ = transition(self._state, PlayRejected())
                return

    def _run(self, command: Command) -> None:
        if isinstance(command, Load):
            self.engine.load(command.source)
        elif isinstance(command, Seek):
            self.engine.seek(command.position)
        elif isinstance(command, Play):
            self.engine.play()
        elif isinstance(command, Pause):
            self.engine.pause()
        elif isinstance(command, SetVolume):
            self.engine.set_volume(command.volume)
        else:
            raise TypeError(f"Unknown engine command: {command!r}")

    def _fetch(self) -> Optional[ScheduleSnapshot]:
        try:
            return self.fetch_snapshot()
        except SnapshotUnavailable as e:
            logger.warning(f"Schedule unavailable, will retry: {e}")
            return None

    # --- Polling ---

    def poll(self) -> bool:
        """Fetch the schedule and apply it.

        Returns:
            True if a snapshot was fetched (it may still be discarded as stale)
        """
        generation = self._state.generation
        snapshot = self._fetch()
        if snapshot is None:
            return False
        self.dispatch(PollResult(snapshot, generation, self.clock()))
        return True

    def sync_engine(self) -> None:
        """Read engine progress and handle a finished source."""
        position = self.engine.position()
        duration = self.engine.duration()
        if position is not None:
            self.dispatch(EngineProgress(position, duration))
        state = self._state
        if (
            state.is_playing
            and not state.source_exhausted
            and self.engine.is_finished()
        ):
            self.on_engine_ended()

    def on_engine_ended(self) -> PlaybackState:
        snapshot = self._fetch()
        return self.dispatch(EngineEnded(snapshot, self.clock()))

    # --- Listener actions ---

    def start(self) -> None:
        """Apply the initial volume and take a first schedule reading."""
        self.dispatch(VolumeChanged(self._state.volume))
        self.poll()

    def play_live(self) -> PlaybackState:
        snapshot = self._fetch()
        return self.dispatch(UserRequestedLive(snapshot, self.clock()))

    def play_track(self, track: Track) -> PlaybackState:
        return self.dispatch(UserRequestedTrack(track))

    def pause(self) -> PlaybackState:
        return self.dispatch(UserPaused(self.clock()))

    def resume(self) -> PlaybackState:
        snapshot = self._fetch() if self._state.mode is PlaybackMode.LIVE else None
        return self.dispatch(UserResumed(snapshot, self.clock()))

    def toggle(self) -> PlaybackState:
        return self.pause() if self._state.is_playing else self.resume()

    def seek(self, delta: float) -> PlaybackState:
        position = self.engine.position()
        if position is not None:
            self.dispatch(EngineProgress(position, self.engine.duration()))
        return self.dispatch(SeekRequested(delta))

    def set_volume(self, volume: float) -> PlaybackState:
        return self.dispatch(VolumeChanged(volume))

    def skip(self, token: str) -> PlaybackState:
        """Skip the broadcast track and jump straight to the next one.

        Raises:
            RuntimeError: If no skip request function was configured
            AuthorizationError: If the token is refused (state unchanged)
            NoCurrentTrackError: If nothing is on air (state unchanged)
        """
        if self.skip_request is None:
            raise RuntimeError("Skipping is not available for this session")
        self.skip_request(token)
        snapshot = self._fetch()
        return self.dispatch(SkipInvoked(snapshot, self.clock()))
