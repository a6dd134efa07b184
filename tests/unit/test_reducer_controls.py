# pylint: disable=missing-module-docstring,missing-function-docstring
from dataclasses import replace

from orchestrator.commands import (
    Command,
    LogEvent,
    MirrorState,
    MoveQueue,
    NotifyUser,
    PausePlayback,
    SeekPlayback,
    StartPlayback,
)
from orchestrator.enums.direction import QueueDirection
from orchestrator.enums.state import State
from orchestrator.events import (
    EventType,
    NextRequested,
    PausePressed,
    PlaybackStatusUpdated,
    PlayPressed,
    PreviousRequested,
    QueueInfoReceived,
    QueueMoveFailed,
    SeekRequested,
    TogglePressed,
)
from orchestrator.reducer import reduce
from orchestrator.state_dataclass import PlayerState
from playback.track import Track


SONG_A = Track(name="Song A", track_id=1)


def loaded(**overrides: object) -> PlayerState:
    base = PlayerState(
        state=State.COMPLETE,
        run_id=3,
        track=SONG_A,
        handle_ready=True,
        is_playing=True,
        duration_ms=10_000,
    )
    return replace(base, **overrides)  # type: ignore[arg-type]


def status(run_id: int = 3, position_ms: int = 0, finished: bool = False) -> PlaybackStatusUpdated:
    return PlaybackStatusUpdated(
        event_type=EventType.PLAYBACK_STATUS_UPDATED,
        ts_ms=0,
        run_id=run_id,
        position_ms=position_ms,
        duration_ms=10_000,
        is_playing=not finished,
        did_just_finish=finished,
    )


def effects(commands: tuple[Command, ...]) -> list[Command]:
    return [c for c in commands if not isinstance(c, LogEvent)]


# ---------------------------------------------------------------------
# Play / pause
# ---------------------------------------------------------------------

def test_pause_then_play_mirror_each_transition() -> None:
    state, commands = reduce(loaded(), PausePressed(event_type=EventType.PAUSE_PRESSED, ts_ms=0))
    assert not state.is_playing
    assert effects(commands) == [
        PausePlayback(),
        MirrorState(track_name="Song A", track_id=1, is_playing=False),
    ]

    state, commands = reduce(state, PlayPressed(event_type=EventType.PLAY_PRESSED, ts_ms=0))
    assert state.is_playing
    assert effects(commands) == [
        StartPlayback(),
        MirrorState(track_name="Song A", track_id=1, is_playing=True),
    ]


def test_toggle_flips_playback() -> None:
    toggle = TogglePressed(event_type=EventType.TOGGLE_PRESSED, ts_ms=0)

    state, _ = reduce(loaded(), toggle)
    assert not state.is_playing

    state, _ = reduce(state, toggle)
    assert state.is_playing


def test_controls_without_handle_are_ignored() -> None:
    state = PlayerState(state=State.STREAMING, run_id=1, track=SONG_A)

    for event in (
        PlayPressed(event_type=EventType.PLAY_PRESSED, ts_ms=0),
        PausePressed(event_type=EventType.PAUSE_PRESSED, ts_ms=0),
        SeekRequested(event_type=EventType.SEEK_REQUESTED, ts_ms=0, position_ms=100),
    ):
        new_state, commands = reduce(state, event)
        assert new_state == state
        assert effects(commands) == []


def test_seek_is_clamped_to_duration() -> None:
    state, commands = reduce(
        loaded(),
        SeekRequested(event_type=EventType.SEEK_REQUESTED, ts_ms=0, position_ms=99_999),
    )

    assert state.position_ms == 10_000
    assert effects(commands) == [SeekPlayback(position_ms=10_000)]


# ---------------------------------------------------------------------
# Previous: restart vs queue
# ---------------------------------------------------------------------

def test_previous_early_in_track_moves_queue() -> None:
    state = loaded(position_ms=1_500)  # 15%

    _, commands = reduce(state, PreviousRequested(event_type=EventType.PREVIOUS_REQUESTED, ts_ms=0))

    assert effects(commands) == [MoveQueue(direction=QueueDirection.PREVIOUS)]


def test_previous_late_in_track_restarts() -> None:
    state = loaded(position_ms=2_500)  # 25%

    new_state, commands = reduce(
        state, PreviousRequested(event_type=EventType.PREVIOUS_REQUESTED, ts_ms=0)
    )

    assert new_state.position_ms == 0
    assert effects(commands) == [SeekPlayback(position_ms=0)]


def test_previous_restart_resumes_paused_track() -> None:
    state = loaded(position_ms=5_000, is_playing=False)

    new_state, commands = reduce(
        state, PreviousRequested(event_type=EventType.PREVIOUS_REQUESTED, ts_ms=0)
    )

    assert new_state.is_playing
    assert effects(commands) == [
        SeekPlayback(position_ms=0),
        StartPlayback(),
        MirrorState(track_name="Song A", track_id=1, is_playing=True),
    ]


# ---------------------------------------------------------------------
# Next / end of track
# ---------------------------------------------------------------------

def test_next_moves_queue() -> None:
    _, commands = reduce(loaded(), NextRequested(event_type=EventType.NEXT_REQUESTED, ts_ms=0))
    assert effects(commands) == [MoveQueue(direction=QueueDirection.NEXT)]


def test_next_disabled_for_single_item_queue() -> None:
    _, commands = reduce(
        loaded(single_item_queue=True),
        NextRequested(event_type=EventType.NEXT_REQUESTED, ts_ms=0),
    )
    assert effects(commands) == []


def test_queue_info_sets_single_item_flag() -> None:
    state, _ = reduce(
        loaded(),
        QueueInfoReceived(
            event_type=EventType.QUEUE_INFO_RECEIVED, ts_ms=0, run_id=3, single_item=True
        ),
    )
    assert state.single_item_queue


def test_status_tracks_position() -> None:
    state, commands = reduce(loaded(), status(position_ms=4_200))

    assert state.position_ms == 4_200
    assert commands == ()


def test_finish_advances_queue() -> None:
    state, commands = reduce(loaded(), status(position_ms=10_000, finished=True))

    assert not state.is_playing
    assert effects(commands) == [
        MirrorState(track_name="Song A", track_id=1, is_playing=False),
        MoveQueue(direction=QueueDirection.NEXT),
    ]


def test_finish_with_single_item_queue_stops() -> None:
    state, commands = reduce(
        loaded(single_item_queue=True), status(position_ms=10_000, finished=True)
    )

    assert not state.is_playing
    assert effects(commands) == [
        MirrorState(track_name="Song A", track_id=1, is_playing=False),
    ]


def test_status_from_old_run_is_ignored() -> None:
    state = loaded()
    new_state, commands = reduce(state, status(run_id=2, finished=True))

    assert new_state == state
    assert effects(commands) == []


def test_queue_move_failure_alerts() -> None:
    state = loaded()
    new_state, commands = reduce(
        state,
        QueueMoveFailed(
            event_type=EventType.QUEUE_MOVE_FAILED,
            ts_ms=0,
            direction=QueueDirection.NEXT,
            message="503",
        ),
    )

    assert new_state == state
    assert effects(commands) == [
        NotifyUser(title="Error", message="Could not advance to the next song"),
    ]
