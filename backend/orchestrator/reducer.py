"""
Pure player reducer.

(state, event) -> (new_state, commands)

Rules:
- Pure: no side effects, no IO, no clocks.
- Deterministic: output depends only on inputs.
- Total: every (state, event) pair is handled or explicitly ignored (logged).
- Run-safe: stream-scoped events from a superseded run are ignored.

Teardown ordering: when a new track replaces a live one, every command
that releases the old session or handle is emitted before OpenStream.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from orchestrator.commands import (
    AppendFragment,
    CheckQueue,
    CloseStream,
    Command,
    DiscardFragments,
    FinalizeAudio,
    LogEvent,
    MirrorState,
    MoveQueue,
    NotifyUser,
    OpenStream,
    PausePlayback,
    ReleasePlayback,
    SeekPlayback,
    StartPlayback,
    StartStatusPolling,
    StopStatusPolling,
)
from orchestrator.enums.direction import QueueDirection
from orchestrator.enums.policy import InvalidFragmentPolicy
from orchestrator.enums.state import State
from orchestrator.events import (
    AudioFailed,
    AudioReady,
    Event,
    FragmentReceived,
    FragmentRejected,
    NextRequested,
    PausePressed,
    PlaybackStatusUpdated,
    PlayPressed,
    PlayRequested,
    PreviousRequested,
    QueueInfoReceived,
    QueueMoveFailed,
    RunEvent,
    SeekRequested,
    StreamCompleted,
    StreamConnected,
    StreamFailed,
    TogglePressed,
)
from orchestrator.state_dataclass import PlayerState
from spec import (
    ALERT_AUDIO_PROCESSING_FAILED,
    ALERT_CONNECTION_ERROR,
    ALERT_INVALID_FRAGMENT,
    ALERT_NEXT_FAILED,
    ALERT_PREVIOUS_FAILED,
    ALERT_TITLE_ERROR,
    PREVIOUS_RESTART_THRESHOLD,
)

Result = tuple[PlayerState, tuple[Command, ...]]

# States in which a session for state.track exists and may be reused.
_REUSABLE_STATES = frozenset({State.CONNECTING, State.STREAMING, State.COMPLETE})

# States in which a stream connection may still be open.
_STREAM_LIVE_STATES = frozenset({State.CONNECTING, State.STREAMING})


# =============================================================================
# Helpers
# =============================================================================

def _log(
    state: PlayerState,
    event: Event,
    decision: str,
    details: dict[str, Any] | None = None,
) -> LogEvent:
    return LogEvent(
        event={
            "ts_ms": event.ts_ms,
            "state": state.state.value,
            "run_id": state.run_id,
            "event_type": event.event_type.value,
            "decision": decision,
            "track_key": state.track.key if state.track is not None else None,
            "is_playing": state.is_playing,
            "details": details or {},
        }
    )


def _logs_last(commands: tuple[Command, ...]) -> tuple[Command, ...]:
    non_logs: list[Command] = []
    logs: list[Command] = []
    state_change_logs: list[Command] = []

    for command in commands:
        if isinstance(command, LogEvent):
            if command.event.get("decision") == "state_changed":
                state_change_logs.append(command)
            else:
                logs.append(command)
        else:
            non_logs.append(command)

    return tuple(non_logs + logs + state_change_logs)


def _state_changed(old: PlayerState, new: PlayerState, event: Event, source: str) -> LogEvent:
    return _log(
        new,
        event,
        "state_changed",
        {
            "from_state": old.state.value,
            "to_state": new.state.value,
            "source": source,
        },
    )


def _ignore(state: PlayerState, event: Event, reason: str) -> Result:
    return state, (_log(state, event, "ignore", {"reason": reason}),)


def _mirror(state: PlayerState, is_playing: bool) -> MirrorState:
    track = state.track
    return MirrorState(
        track_name=track.name if track is not None else None,
        track_id=track.track_id if track is not None else None,
        is_playing=is_playing,
    )


def _alert(message: str) -> NotifyUser:
    return NotifyUser(title=ALERT_TITLE_ERROR, message=message)


def _is_stale(state: PlayerState, event: RunEvent) -> bool:
    return event.run_id != state.run_id


def _fail(
    state: PlayerState,
    event: Event,
    *,
    reason: str,
    alert: str,
    close_stream: bool,
) -> Result:
    new_state = replace(state, state=State.FAILED, is_playing=False, last_error=reason)
    commands: list[Command] = []
    if close_stream:
        commands.append(CloseStream(run_id=state.run_id))
        commands.append(DiscardFragments(run_id=state.run_id))
    commands.append(_mirror(new_state, False))
    commands.append(_alert(alert))
    commands.append(_log(new_state, event, "session_failed", {"reason": reason}))
    commands.append(_state_changed(state, new_state, event, "failure"))
    return new_state, _logs_last(tuple(commands))


# =============================================================================
# Reducer
# =============================================================================

def reduce(state: PlayerState, event: Event) -> Result:
    """
    Pure reducer for the streaming playback state machine.

    Given the current player state and a single event, returns:
    - the next state
    - a tuple of commands describing required side effects

    Properties:
    - Deterministic: no IO, clocks, or randomness
    - Total: every (state, event) pair is handled or explicitly ignored
    - Run-safe: ignores stream-scoped events with stale run IDs
    """
    if isinstance(event, PlayRequested):
        return _on_play_requested(state, event)

    # ------------------------------------------------------------------
    # Stream session
    # ------------------------------------------------------------------
    if isinstance(event, RunEvent) and _is_stale(state, event):
        return _ignore(state, event, "stale_run")

    if isinstance(event, StreamConnected):
        if state.state is not State.CONNECTING:
            return _ignore(state, event, f"stream_connected_in_{state.state.value}")
        new_state = replace(state, state=State.STREAMING)
        return new_state, (_state_changed(state, new_state, event, "stream_connected"),)

    if isinstance(event, FragmentReceived):
        if state.state is not State.STREAMING:
            return _ignore(state, event, f"fragment_in_{state.state.value}")
        new_state = replace(state, fragments_received=state.fragments_received + 1)
        return new_state, (AppendFragment(run_id=state.run_id, fragment=event.fragment),)

    if isinstance(event, FragmentRejected):
        return _on_fragment_rejected(state, event)

    if isinstance(event, StreamCompleted):
        if state.state is not State.STREAMING or state.track is None:
            return _ignore(state, event, f"complete_in_{state.state.value}")
        new_state = replace(state, state=State.COMPLETE)
        return new_state, _logs_last((
            FinalizeAudio(run_id=state.run_id, track=state.track),
            CloseStream(run_id=state.run_id),
            _log(
                new_state,
                event,
                "stream_complete",
                {
                    "fragments_received": state.fragments_received,
                    "fragments_rejected": state.fragments_rejected,
                },
            ),
            _state_changed(state, new_state, event, "stream_complete"),
        ))

    if isinstance(event, StreamFailed):
        if state.state not in _STREAM_LIVE_STATES:
            return _ignore(state, event, f"stream_error_in_{state.state.value}")
        return _fail(
            state,
            event,
            reason=f"stream_error: {event.message or 'connection'}",
            alert=event.message or ALERT_CONNECTION_ERROR,
            close_stream=True,
        )

    # ------------------------------------------------------------------
    # Cache write / decoder
    # ------------------------------------------------------------------
    if isinstance(event, AudioReady):
        if state.state is not State.COMPLETE:
            return _ignore(state, event, f"audio_ready_in_{state.state.value}")
        new_state = replace(
            state,
            handle_ready=True,
            is_playing=True,
            position_ms=0,
            duration_ms=event.duration_ms,
        )
        return new_state, _logs_last((
            StartPlayback(),
            _mirror(new_state, True),
            StartStatusPolling(run_id=state.run_id),
            _log(new_state, event, "audio_ready", {"duration_ms": event.duration_ms}),
        ))

    if isinstance(event, AudioFailed):
        if state.state is not State.COMPLETE:
            return _ignore(state, event, f"audio_failed_in_{state.state.value}")
        return _fail(
            state,
            event,
            reason=f"{event.stage}_failed: {event.message}",
            alert=ALERT_AUDIO_PROCESSING_FAILED,
            close_stream=False,
        )

    if isinstance(event, PlaybackStatusUpdated):
        return _on_status_updated(state, event)

    if isinstance(event, QueueInfoReceived):
        new_state = replace(state, single_item_queue=event.single_item)
        return new_state, (
            _log(new_state, event, "queue_info", {"single_item": event.single_item}),
        )

    # ------------------------------------------------------------------
    # User control
    # ------------------------------------------------------------------
    if isinstance(event, TogglePressed):
        if state.is_playing:
            return _pause(state, event)
        return _play(state, event)

    if isinstance(event, PlayPressed):
        return _play(state, event)

    if isinstance(event, PausePressed):
        return _pause(state, event)

    if isinstance(event, SeekRequested):
        if not state.handle_ready:
            return _ignore(state, event, "seek_without_handle")
        position = max(0, event.position_ms)
        if state.duration_ms > 0:
            position = min(position, state.duration_ms)
        new_state = replace(state, position_ms=position)
        return new_state, _logs_last((
            SeekPlayback(position_ms=position),
            _log(new_state, event, "seek", {"position_ms": position}),
        ))

    if isinstance(event, NextRequested):
        if state.single_item_queue:
            return _ignore(state, event, "single_item_queue")
        return state, _logs_last((
            MoveQueue(direction=QueueDirection.NEXT),
            _log(state, event, "queue_next"),
        ))

    if isinstance(event, PreviousRequested):
        return _on_previous(state, event)

    if isinstance(event, QueueMoveFailed):
        message = (
            ALERT_NEXT_FAILED
            if event.direction is QueueDirection.NEXT
            else ALERT_PREVIOUS_FAILED
        )
        return state, _logs_last((
            _alert(message),
            _log(
                state,
                event,
                "queue_move_failed",
                {"direction": event.direction.value, "error": event.message},
            ),
        ))

    return _ignore(state, event, "unhandled_event")


# =============================================================================
# Handlers
# =============================================================================

def _on_play_requested(state: PlayerState, event: PlayRequested) -> Result:
    requested = event.track

    if (
        state.track is not None
        and state.track.key == requested.key
        and state.state in _REUSABLE_STATES
    ):
        return state, (
            _log(
                state,
                event,
                "reuse_session",
                {"requested": requested.key, "is_playing": state.is_playing},
            ),
        )

    old_run = state.run_id
    commands: list[Command] = []

    # Teardown of the previous session / handle, before anything new.
    if state.handle_ready:
        commands.append(StopStatusPolling())
    if state.state in _STREAM_LIVE_STATES:
        commands.append(CloseStream(run_id=old_run))
        commands.append(DiscardFragments(run_id=old_run))
    if state.handle_ready or state.state is State.COMPLETE:
        commands.append(ReleasePlayback())

    new_run = old_run + 1
    new_state = replace(
        state,
        state=State.CONNECTING,
        run_id=new_run,
        track=requested,
        handle_ready=False,
        is_playing=False,
        position_ms=0,
        duration_ms=0,
        fragments_received=0,
        fragments_rejected=0,
        single_item_queue=False,
        last_error=None,
    )

    commands.append(_mirror(new_state, False))
    commands.append(CheckQueue(run_id=new_run))
    commands.append(OpenStream(run_id=new_run, track=requested))
    commands.append(
        _log(
            new_state,
            event,
            "start_session",
            {"previous_run_id": old_run, "previous_state": state.state.value},
        )
    )
    commands.append(_state_changed(state, new_state, event, "play_requested"))
    return new_state, _logs_last(tuple(commands))


def _on_fragment_rejected(state: PlayerState, event: FragmentRejected) -> Result:
    if state.state is not State.STREAMING:
        return _ignore(state, event, f"fragment_rejected_in_{state.state.value}")

    new_state = replace(state, fragments_rejected=state.fragments_rejected + 1)

    if state.policy is InvalidFragmentPolicy.DROP:
        return new_state, (
            _log(new_state, event, "fragment_dropped", {"reason": event.reason}),
        )

    return _fail(
        new_state,
        event,
        reason=f"invalid_fragment: {event.reason}",
        alert=ALERT_INVALID_FRAGMENT,
        close_stream=True,
    )


def _on_status_updated(state: PlayerState, event: PlaybackStatusUpdated) -> Result:
    if not state.handle_ready:
        return state, ()

    new_state = replace(
        state,
        position_ms=event.position_ms,
        duration_ms=event.duration_ms or state.duration_ms,
    )

    if not event.did_just_finish:
        return new_state, ()

    new_state = replace(new_state, is_playing=False)

    if state.single_item_queue:
        return new_state, _logs_last((
            _mirror(new_state, False),
            _log(new_state, event, "track_finished", {"advance": False}),
        ))

    return new_state, _logs_last((
        _mirror(new_state, False),
        MoveQueue(direction=QueueDirection.NEXT),
        _log(new_state, event, "track_finished", {"advance": True}),
    ))


def _on_previous(state: PlayerState, event: PreviousRequested) -> Result:
    restart = (
        state.handle_ready
        and state.duration_ms > 0
        and state.position_ms > state.duration_ms * PREVIOUS_RESTART_THRESHOLD
    )

    if not restart:
        return state, _logs_last((
            MoveQueue(direction=QueueDirection.PREVIOUS),
            _log(state, event, "queue_previous", {"position_ms": state.position_ms}),
        ))

    new_state = replace(state, position_ms=0, is_playing=True)
    commands: list[Command] = [SeekPlayback(position_ms=0)]
    if not state.is_playing:
        commands.append(StartPlayback())
        commands.append(_mirror(new_state, True))
    commands.append(_log(new_state, event, "restart_track", {"position_ms": state.position_ms}))
    return new_state, _logs_last(tuple(commands))


def _play(state: PlayerState, event: Event) -> Result:
    if not state.handle_ready:
        return _ignore(state, event, "play_without_handle")
    if state.is_playing:
        return _ignore(state, event, "already_playing")

    new_state = replace(state, is_playing=True)
    return new_state, _logs_last((
        StartPlayback(),
        _mirror(new_state, True),
        _log(new_state, event, "play"),
    ))


def _pause(state: PlayerState, event: Event) -> Result:
    if not state.handle_ready:
        return _ignore(state, event, "pause_without_handle")
    if not state.is_playing:
        return _ignore(state, event, "already_paused")

    new_state = replace(state, is_playing=False)
    return new_state, _logs_last((
        PausePlayback(),
        _mirror(new_state, False),
        _log(new_state, event, "pause"),
    ))
