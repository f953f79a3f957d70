"""Tests for the playback state machine transition table."""

import pytest

from loopcast.domain.catalog.models import Track
from loopcast.domain.playback.state import (
    EngineEnded,
    EngineProgress,
    Load,
    Pause,
    Play,
    PlaybackMode,
    PlaybackPhase,
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
from loopcast.domain.radio.models import ScheduleSnapshot


def make_track(track_id: int, duration: int = 180) -> Track:
    return Track(
        id=track_id,
        title=f"Track {track_id}",
        artist="Artist",
        duration=duration,
        source_url=f"https://cdn.example.com/{track_id}.mp3",
    )


def on_air(track_id: int, elapsed: int = 30) -> ScheduleSnapshot:
    return ScheduleSnapshot(
        current=make_track(track_id),
        elapsed_seconds=elapsed,
        up_next=(make_track(track_id + 1),),
        total_tracks=2,
    )


NO_SIGNAL = ScheduleSnapshot.no_signal()


@pytest.fixture
def live_playing() -> PlaybackState:
    """Live listener hearing track 1 at generation 3."""
    state, _ = transition(
        PlaybackState(generation=2), UserRequestedLive(on_air(1), now=1000.0)
    )
    return state


@pytest.fixture
def on_demand_playing() -> PlaybackState:
    state, _ = transition(PlaybackState(), UserRequestedTrack(make_track(7)))
    return state


class TestInitialState:
    def test_defaults(self) -> None:
        state = PlaybackState()
        assert state.phase is PlaybackPhase.LIVE_STANDBY
        assert state.calibrating
        assert state.current_track is None

    def test_unknown_event_raises(self) -> None:
        with pytest.raises(TypeError):
            transition(PlaybackState(), object())


class TestPoll:
    """Reload-on-change and the stale-poll guard."""

    def test_first_poll_in_standby_loads_paused(self) -> None:
        state, commands = transition(
            PlaybackState(), PollResult(on_air(1), generation=0, now=10.0)
        )
        assert commands == [Load(on_air(1).source_url), Seek(30.0)]
        assert state.live_source == on_air(1).source_url
        assert not state.is_playing
        assert not state.calibrating

    def test_same_source_is_noop(self, live_playing: PlaybackState) -> None:
        state, commands = transition(
            live_playing, PollResult(on_air(1, elapsed=35), live_playing.generation, 1005.0)
        )
        assert commands == []
        assert state.snapshot.elapsed_seconds == 35

    def test_changed_source_reloads_and_keeps_playing(
        self, live_playing: PlaybackState
    ) -> None:
        state, commands = transition(
            live_playing, PollResult(on_air(2, elapsed=3), live_playing.generation, 1200.0)
        )
        assert commands == [Load(on_air(2).source_url), Seek(3.0), Play()]
        assert state.phase is PlaybackPhase.LIVE_PLAYING

    def test_stale_generation_discarded(self, live_playing: PlaybackState) -> None:
        state, commands = transition(
            live_playing, PollResult(on_air(2), live_playing.generation - 1, 1200.0)
        )
        assert state == live_playing
        assert commands == []

    def test_poll_in_flight_cannot_clobber_on_demand(
        self, live_playing: PlaybackState
    ) -> None:
        issued = live_playing.generation
        state, _ = transition(live_playing, UserRequestedTrack(make_track(9)))
        state, commands = transition(state, PollResult(on_air(2), issued, 1200.0))
        assert commands == []
        assert state.on_demand_track.id == 9

    def test_poll_in_flight_cannot_clobber_live_resume(
        self, live_playing: PlaybackState
    ) -> None:
        paused, _ = transition(live_playing, UserPaused(now=1001.0))
        issued = paused.generation
        state, commands = transition(paused, UserResumed(on_air(2, elapsed=1), now=1190.0))
        assert commands[0] == Load(on_air(2).source_url)

        state, commands = transition(state, PollResult(on_air(1, elapsed=99), issued, 1191.0))
        assert commands == []
        assert state.live_source == on_air(2).source_url

    def test_on_demand_ignores_schedule_changes(
        self, on_demand_playing: PlaybackState
    ) -> None:
        state, commands = transition(
            on_demand_playing,
            PollResult(on_air(2), on_demand_playing.generation, 50.0),
        )
        assert commands == []
        assert state.snapshot == on_air(2)
        assert state.mode is PlaybackMode.ON_DEMAND

    def test_no_signal_poll_keeps_loaded_source(self, live_playing: PlaybackState) -> None:
        state, commands = transition(
            live_playing, PollResult(NO_SIGNAL, live_playing.generation, 1010.0)
        )
        assert commands == []
        assert state.snapshot == NO_SIGNAL


class TestUserRequests:
    def test_request_live_seeks_to_projection(self) -> None:
        state, commands = transition(
            PlaybackState(), UserRequestedLive(on_air(4, elapsed=42), now=5.0)
        )
        assert commands == [Load(on_air(4).source_url), Seek(42.0), Play()]
        assert state.phase is PlaybackPhase.LIVE_PLAYING
        assert state.generation == 1

    def test_request_live_without_signal_pauses(
        self, on_demand_playing: PlaybackState
    ) -> None:
        state, commands = transition(on_demand_playing, UserRequestedLive(None, now=5.0))
        assert commands == [Pause()]
        assert state.phase is PlaybackPhase.LIVE_STANDBY
        assert state.on_demand_track is None

    def test_request_track(self, live_playing: PlaybackState) -> None:
        track = make_track(9)
        state, commands = transition(live_playing, UserRequestedTrack(track))
        assert commands == [Load(track.source_url), Seek(0.0), Play()]
        assert state.phase is PlaybackPhase.ON_DEMAND_PLAYING
        assert state.current_track == track
        assert state.live_source is None
        assert state.generation == live_playing.generation + 1


class TestPauseResume:
    def test_pause_keeps_mode(self, live_playing: PlaybackState) -> None:
        state, commands = transition(live_playing, UserPaused(now=1001.0))
        assert commands == [Pause()]
        assert state.mode is PlaybackMode.LIVE
        assert state.paused_at == 1001.0

    def test_pause_when_paused_is_noop(self) -> None:
        state, commands = transition(PlaybackState(), UserPaused(now=1.0))
        assert commands == []

    def test_short_live_pause_resumes_in_place(self, live_playing: PlaybackState) -> None:
        paused, _ = transition(live_playing, UserPaused(now=1001.0))
        state, commands = transition(paused, UserResumed(on_air(1, elapsed=33), now=1003.0))
        assert commands == [Play()]
        assert state.phase is PlaybackPhase.LIVE_PLAYING

    def test_long_live_pause_reloads(self, live_playing: PlaybackState) -> None:
        paused, _ = transition(live_playing, UserPaused(now=1001.0))
        state, commands = transition(paused, UserResumed(on_air(1, elapsed=90), now=1060.0))
        assert commands == [Load(on_air(1).source_url), Seek(90.0), Play()]
        assert state.paused_at is None

    def test_resume_after_track_change_reloads(self, live_playing: PlaybackState) -> None:
        paused, _ = transition(live_playing, UserPaused(now=1001.0))
        _, commands = transition(paused, UserResumed(on_air(2, elapsed=1), now=1002.0))
        assert commands[0] == Load(on_air(2).source_url)

    def test_tolerance_is_configurable(self, live_playing: PlaybackState) -> None:
        paused, _ = transition(live_playing, UserPaused(now=1000.0))
        _, commands = transition(
            paused, UserResumed(on_air(1, elapsed=32), now=1002.0), tolerance=1.0
        )
        assert Load(on_air(1).source_url) in commands

    def test_resume_live_without_fresh_snapshot_plays_loaded(
        self, live_playing: PlaybackState
    ) -> None:
        paused, _ = transition(live_playing, UserPaused(now=1001.0))
        state, commands = transition(paused, UserResumed(None, now=1100.0))
        assert commands == [Play()]
        assert state.is_playing

    def test_resume_on_demand(self, on_demand_playing: PlaybackState) -> None:
        paused, _ = transition(on_demand_playing, UserPaused(now=10.0))
        assert paused.phase is PlaybackPhase.ON_DEMAND_PAUSED
        state, commands = transition(paused, UserResumed(None, now=500.0))
        assert commands == [Play()]
        assert state.phase is PlaybackPhase.ON_DEMAND_PLAYING


class TestEngineEnded:
    def test_on_demand_end_returns_to_live(self, on_demand_playing: PlaybackState) -> None:
        state, commands = transition(
            on_demand_playing, EngineEnded(on_air(3, elapsed=12), now=99.0)
        )
        assert commands == [Load(on_air(3).source_url), Seek(12.0), Play()]
        assert state.phase is PlaybackPhase.LIVE_PLAYING
        assert state.on_demand_track is None
        assert state.generation == on_demand_playing.generation + 1

    def test_on_demand_end_without_signal_goes_standby(
        self, on_demand_playing: PlaybackState
    ) -> None:
        state, commands = transition(on_demand_playing, EngineEnded(NO_SIGNAL, now=99.0))
        assert commands == []
        assert state.phase is PlaybackPhase.LIVE_STANDBY

    def test_live_end_resyncs(self, live_playing: PlaybackState) -> None:
        state, commands = transition(live_playing, EngineEnded(on_air(2, elapsed=1), now=1180.0))
        assert commands == [Load(on_air(2).source_url), Seek(1.0), Play()]
        assert state.is_playing

    def test_live_file_shorter_than_slot_waits_for_next_track(
        self, live_playing: PlaybackState
    ) -> None:
        state, _ = transition(live_playing, EngineProgress(150.0, 150.0))
        state, commands = transition(state, EngineEnded(on_air(1, elapsed=160), now=1130.0))
        assert commands == []
        assert state.source_exhausted
        assert state.is_playing

        state, commands = transition(
            state, PollResult(on_air(2, elapsed=0), state.generation, 1150.0)
        )
        assert commands == [Load(on_air(2).source_url), Seek(0.0), Play()]
        assert not state.source_exhausted

    def test_live_end_with_failed_fetch_keeps_intent(
        self, live_playing: PlaybackState
    ) -> None:
        state, commands = transition(live_playing, EngineEnded(None, now=1180.0))
        assert commands == []
        assert state.is_playing
        assert state.live_source is None

        # Next successful poll reloads and plays
        state, commands = transition(
            state, PollResult(on_air(2, elapsed=4), state.generation, 1185.0)
        )
        assert commands == [Load(on_air(2).source_url), Seek(4.0), Play()]


class TestSkip:
    def test_skip_loads_next_track_from_start(self, on_demand_playing: PlaybackState) -> None:
        state, commands = transition(
            on_demand_playing, SkipInvoked(on_air(5, elapsed=1), now=20.0)
        )
        assert commands == [Load(on_air(5).source_url), Seek(0.0), Play()]
        assert state.mode is PlaybackMode.LIVE
        assert state.generation == on_demand_playing.generation + 1

    def test_skip_without_snapshot_waits_for_poll(
        self, live_playing: PlaybackState
    ) -> None:
        state, _ = transition(live_playing, SkipInvoked(None, now=20.0))
        assert state.is_playing
        assert state.live_source is None


class TestSeekVolumeProgress:
    def test_seek_is_relative_and_clamped(self, on_demand_playing: PlaybackState) -> None:
        state, _ = transition(on_demand_playing, EngineProgress(170.0, 180.0))
        state, commands = transition(state, SeekRequested(30.0))
        assert commands == [Seek(180.0)]

        state, commands = transition(state, SeekRequested(-500.0))
        assert commands == [Seek(0.0)]
        assert state.on_demand_elapsed == 0.0

    def test_seek_without_source_is_noop(self) -> None:
        _, commands = transition(PlaybackState(), SeekRequested(10.0))
        assert commands == []

    def test_seek_live_does_not_touch_schedule(self, live_playing: PlaybackState) -> None:
        state, commands = transition(live_playing, SeekRequested(10.0))
        assert commands == [Seek(40.0)]
        assert state.snapshot == live_playing.snapshot

    def test_volume_clamped(self) -> None:
        state, commands = transition(PlaybackState(), VolumeChanged(1.7))
        assert state.volume == 1.0
        assert commands == [SetVolume(1.0)]

    def test_probed_duration_is_display_only(self, live_playing: PlaybackState) -> None:
        state, _ = transition(live_playing, EngineProgress(31.0, 176.5))
        assert state.display_duration == 176.5
        assert state.snapshot.current.duration == 180


class TestPlayRejected:
    def test_rejection_leaves_coherent_paused_state(
        self, on_demand_playing: PlaybackState
    ) -> None:
        state, commands = transition(on_demand_playing, PlayRejected())
        assert commands == []
        assert state.phase is PlaybackPhase.ON_DEMAND_PAUSED
        assert state.needs_interaction

    def test_next_play_action_clears_flag(self, on_demand_playing: PlaybackState) -> None:
        rejected, _ = transition(on_demand_playing, PlayRejected())
        state, commands = transition(rejected, UserResumed(None, now=5.0))
        assert commands == [Play()]
        assert not state.needs_interaction
