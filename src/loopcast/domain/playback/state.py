"""
Playback state machine for a listening client.

Every input (poll result, user action, engine callback) is an event;
``transition`` maps (state, event) to the next state plus the transport
commands to send to the playback engine. It never touches an engine itself,
so the whole table is testable without audio.

Phases:
- LIVE_STANDBY       live mode, nothing playing
- LIVE_PLAYING       following the shared broadcast
- ON_DEMAND_PLAYING  playing a listener-chosen track
- ON_DEMAND_PAUSED   on-demand track loaded but paused
"""

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, Optional, Union

from loguru import logger

from loopcast.domain.catalog.models import Track
from loopcast.domain.radio.models import ScheduleSnapshot

# Max seconds a live listener can stay paused and still resume in place
RESYNC_TOLERANCE = 5.0


class PlaybackMode(str, Enum):
    LIVE = "live"
    ON_DEMAND = "on_demand"


class PlaybackPhase(str, Enum):
    LIVE_STANDBY = "live_standby"
    LIVE_PLAYING = "live_playing"
    ON_DEMAND_PLAYING = "on_demand_playing"
    ON_DEMAND_PAUSED = "on_demand_paused"


class PlaybackState(NamedTuple):
    """Immutable client playback state. Update with ``_replace``."""

    mode: PlaybackMode = PlaybackMode.LIVE
    is_playing: bool = False
    on_demand_track: Optional[Track] = None
    live_source: Optional[str] = None  # Live source last loaded into the engine
    loaded_source: Optional[str] = None  # Whatever the engine has loaded
    position: float = 0.0  # Engine position in seconds
    on_demand_elapsed: float = 0.0
    volume: float = 0.8  # 0..1
    probed_duration: Optional[float] = None  # Engine-reported, display only
    paused_at: Optional[float] = None  # Wall clock of the last live pause
    generation: int = 0  # Bumped whenever the user or engine changes what plays
    needs_interaction: bool = False  # Engine refused play ("tap to play")
    source_exhausted: bool = False  # Live file ran out before its scheduled slot
    snapshot: Optional[ScheduleSnapshot] = None  # Last applied schedule

    @property
    def phase(self) -> PlaybackPhase:
        if self.mode is PlaybackMode.LIVE:
            return (
                PlaybackPhase.LIVE_PLAYING
                if self.is_playing
                else PlaybackPhase.LIVE_STANDBY
            )
        return (
            PlaybackPhase.ON_DEMAND_PLAYING
            if self.is_playing
            else PlaybackPhase.ON_DEMAND_PAUSED
        )

    @property
    def calibrating(self) -> bool:
        """True until a schedule has been received."""
        return self.snapshot is None

    @property
    def current_track(self) -> Optional[Track]:
        """Track the listener is hearing (or would hear on resume)."""
        if self.mode is PlaybackMode.ON_DEMAND:
            return self.on_demand_track
        if self.snapshot and self.snapshot.source_url == self.live_source:
            return self.snapshot.current
        return None

    @property
    def display_duration(self) -> Optional[float]:
        """Probed duration when known, else the catalog estimate."""
        if self.probed_duration:
            return self.probed_duration
        track = self.current_track
        return float(track.duration) if track else None


# === Events ===


@dataclass(frozen=True)
class PollResult:
    """Scheduled poll finished. ``generation`` is the state's at issue time."""

    snapshot: ScheduleSnapshot
    generation: int
    now: float


@dataclass(frozen=True)
class UserRequestedLive:
    snapshot: Optional[ScheduleSnapshot]  # Fresh projection, None if unavailable
    now: float


@dataclass(frozen=True)
class UserRequestedTrack:
    track: Track


@dataclass(frozen=True)
class UserPaused:
    now: float


@dataclass(frozen=True)
class UserResumed:
    snapshot: Optional[ScheduleSnapshot]  # Fresh projection for live resume
    now: float


@dataclass(frozen=True)
class EngineEnded:
    snapshot: Optional[ScheduleSnapshot]
    now: float


@dataclass(frozen=True)
class SkipInvoked:
    snapshot: Optional[ScheduleSnapshot]  # Projection taken after the skip
    now: float


@dataclass(frozen=True)
class SeekRequested:
    delta: float  # Seconds, relative to the engine position


@dataclass(frozen=True)
class VolumeChanged:
    volume: float


@dataclass(frozen=True)
class EngineProgress:
    position: float
    duration: Optional[float] = None


@dataclass(frozen=True)
class PlayRejected:
    pass


Event = Union[
    PollResult,
    UserRequestedLive,
    UserRequestedTrack,
    UserPaused,
    UserResumed,
    EngineEnded,
    SkipInvoked,
    SeekRequested,
    VolumeChanged,
    EngineProgress,
    PlayRejected,
]


# === Commands ===


@dataclass(frozen=True)
class Load:
    source: str


@dataclass(frozen=True)
class Seek:
    position: float


@dataclass(frozen=True)
class Play:
    pass


@dataclass(frozen=True)
class Pause:
    pass


@dataclass(frozen=True)
class SetVolume:
    volume: float


Command = Union[Load, Seek, Play, Pause, SetVolume]

Transition = tuple[PlaybackState, list[Command]]


# === Helpers ===


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _load_live(
    state: PlaybackState,
    snapshot: ScheduleSnapshot,
    offset: float,
    play: bool,
    now: float,
) -> Transition:
    """Load the projected live source at ``offset``, optionally playing."""
    source = snapshot.source_url
    commands: list[Command] = [Load(source), Seek(float(offset))]
    if play:
        commands.append(Play())

    logger.debug(f"Loading live source {source} at {offset}s (play={play})")
    return (
        state._replace(
            mode=PlaybackMode.LIVE,
            is_playing=play,
            on_demand_track=None,
            on_demand_elapsed=0.0,
            live_source=source,
            loaded_source=source,
            position=float(offset),
            probed_duration=None,
            # The loaded offset is fresh as of now, so a prompt resume is in sync
            paused_at=None if play else now,
            needs_interaction=False if play else state.needs_interaction,
            source_exhausted=False,
            snapshot=snapshot,
        ),
        commands,
    )


def _go_live_without_signal(
    state: PlaybackState,
    snapshot: Optional[ScheduleSnapshot],
    keep_playing: bool,
) -> Transition:
    """Switch to live mode when there is nothing on air to load.

    With ``keep_playing`` the intent to play survives, so the next poll that
    finds a track loads and plays it.
    """
    commands: list[Command] = []
    if state.is_playing and (
        not keep_playing or state.mode is PlaybackMode.ON_DEMAND
    ):
        commands.append(Pause())
    return (
        state._replace(
            mode=PlaybackMode.LIVE,
            is_playing=keep_playing,
            on_demand_track=None,
            on_demand_elapsed=0.0,
            live_source=None,
            loaded_source=None if keep_playing else state.loaded_source,
            probed_duration=None,
            paused_at=None,
            snapshot=snapshot or state.snapshot,
            source_exhausted=False,
        ),
        commands,
    )


# === Handlers ===


def _on_poll(state: PlaybackState, event: PollResult, tolerance: float) -> Transition:
    if event.generation != state.generation:
        logger.debug(
            f"Discarding stale poll (issued gen {event.generation}, now {state.generation})"
        )
        return state, []

    state = state._replace(snapshot=event.snapshot)
    if state.mode is not PlaybackMode.LIVE or not event.snapshot.on_air:
        return state, []
    if event.snapshot.source_url == state.live_source:
        return state, []

    logger.info(f"Live track changed to {event.snapshot.current.id}, reloading")
    return _load_live(
        state,
        event.snapshot,
        event.snapshot.elapsed_seconds,
        play=state.is_playing,
        now=event.now,
    )


def _on_request_live(
    state: PlaybackState, event: UserRequestedLive, tolerance: float
) -> Transition:
    state = state._replace(generation=state.generation + 1)
    if event.snapshot is None or not event.snapshot.on_air:
        return _go_live_without_signal(state, event.snapshot, keep_playing=False)
    return _load_live(
        state, event.snapshot, event.snapshot.elapsed_seconds, play=True, now=event.now
    )


def _on_request_track(
    state: PlaybackState, event: UserRequestedTrack, tolerance: float
) -> Transition:
    source = event.track.source_url
    return (
        state._replace(
            mode=PlaybackMode.ON_DEMAND,
            is_playing=True,
            on_demand_track=event.track,
            on_demand_elapsed=0.0,
            live_source=None,
            loaded_source=source,
            position=0.0,
            probed_duration=None,
            paused_at=None,
            generation=state.generation + 1,
            needs_interaction=False,
            source_exhausted=False,
        ),
        [Load(source), Seek(0.0), Play()],
    )


def _on_pause(state: PlaybackState, event: UserPaused, tolerance: float) -> Transition:
    if not state.is_playing:
        return state, []
    return state._replace(is_playing=False, paused_at=event.now), [Pause()]


def _on_resume(state: PlaybackState, event: UserResumed, tolerance: float) -> Transition:
    if state.is_playing:
        return state, []

    resumed = state._replace(
        is_playing=True,
        paused_at=None,
        needs_interaction=False,
        generation=state.generation + 1,
    )

    if state.mode is PlaybackMode.ON_DEMAND:
        if state.loaded_source is None:
            return state, []
        return resumed, [Play()]

    snapshot = event.snapshot
    if snapshot is None or not snapshot.on_air:
        # Cannot check freshness; resume whatever is loaded
        if state.live_source is None:
            return state._replace(snapshot=snapshot or state.snapshot), []
        return resumed, [Play()]

    stale = (
        snapshot.source_url != state.live_source
        or state.paused_at is None
        or event.now - state.paused_at > tolerance
    )
    if stale:
        return _load_live(
            resumed, snapshot, snapshot.elapsed_seconds, play=True, now=event.now
        )
    return resumed._replace(snapshot=snapshot), [Play()]


def _on_ended(state: PlaybackState, event: EngineEnded, tolerance: float) -> Transition:
    snapshot = event.snapshot
    if state.mode is PlaybackMode.ON_DEMAND:
        logger.info("On-demand track ended, returning to live")
        state = state._replace(generation=state.generation + 1)
        if snapshot is None or not snapshot.on_air:
            return _go_live_without_signal(
                state._replace(is_playing=False), snapshot, keep_playing=False
            )
        return _load_live(
            state, snapshot, snapshot.elapsed_seconds, play=True, now=event.now
        )

    state = state._replace(generation=state.generation + 1)
    if (
        snapshot is not None
        and snapshot.on_air
        and snapshot.source_url == state.live_source
        and state.probed_duration
        and snapshot.elapsed_seconds >= state.probed_duration
    ):
        # File is shorter than its slot; hold until the schedule moves on
        logger.info(
            f"Live source {state.live_source} ended early, waiting for the next track"
        )
        return state._replace(snapshot=snapshot, source_exhausted=True), []

    # Live source ran out early (e.g. fetch failed mid-stream): reload now
    logger.warning(f"Live source {state.live_source} ended, resynchronizing")
    if snapshot is None or not snapshot.on_air:
        return _go_live_without_signal(state, snapshot, keep_playing=True)
    return _load_live(state, snapshot, snapshot.elapsed_seconds, play=True, now=event.now)


def _on_skip(state: PlaybackState, event: SkipInvoked, tolerance: float) -> Transition:
    state = state._replace(generation=state.generation + 1)
    if event.snapshot is None or not event.snapshot.on_air:
        return _go_live_without_signal(state, event.snapshot, keep_playing=True)
    return _load_live(state, event.snapshot, 0.0, play=True, now=event.now)


def _on_seek(state: PlaybackState, event: SeekRequested, tolerance: float) -> Transition:
    if state.loaded_source is None:
        return state, []

    target = state.position + event.delta
    duration = state.display_duration
    target = _clamp(target, 0.0, duration) if duration else max(0.0, target)

    updated = state._replace(position=target)
    if state.mode is PlaybackMode.ON_DEMAND:
        updated = updated._replace(on_demand_elapsed=target)
    return updated, [Seek(target)]


def _on_volume(state: PlaybackState, event: VolumeChanged, tolerance: float) -> Transition:
    volume = _clamp(event.volume, 0.0, 1.0)
    return state._replace(volume=volume), [SetVolume(volume)]


def _on_progress(
    state: PlaybackState, event: EngineProgress, tolerance: float
) -> Transition:
    updated = state._replace(position=max(0.0, event.position))
    if event.duration and event.duration > 0:
        updated = updated._replace(probed_duration=float(event.duration))
    if state.mode is PlaybackMode.ON_DEMAND:
        updated = updated._replace(on_demand_elapsed=updated.position)
    return updated, []


def _on_play_rejected(
    state: PlaybackState, event: PlayRejected, tolerance: float
) -> Transition:
    logger.warning("Playback engine rejected play, waiting for the listener")
    return state._replace(is_playing=False, paused_at=None, needs_interaction=True), []


_HANDLERS = {
    PollResult: _on_poll,
    UserRequestedLive: _on_request_live,
    UserRequestedTrack: _on_request_track,
    UserPaused: _on_pause,
    UserResumed: _on_resume,
    EngineEnded: _on_ended,
    SkipInvoked: _on_skip,
    SeekRequested: _on_seek,
    VolumeChanged: _on_volume,
    EngineProgress: _on_progress,
    PlayRejected: _on_play_rejected,
}


def transition(
    state: PlaybackState,
    event: Event,
    tolerance: float = RESYNC_TOLERANCE,
) -> Transition:
    """Apply one event.

    Args:
        state: Current state
        event: Incoming event
        tolerance: Seconds a live pause may last before resume reloads

    Returns:
        (next_state, commands) - commands must be sent to the engine in order

    Raises:
        TypeError: If the event type is unknown
    """
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"Unknown playback event: {event!r}")
    return handler(state, event, tolerance)
