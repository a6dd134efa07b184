# pylint: disable=missing-module-docstring,missing-function-docstring

from orchestrator.commands import LogEvent
from orchestrator.enums.state import State
from orchestrator.events import EventType, PlayRequested, PausePressed
from orchestrator.reducer import reduce
from orchestrator.state_dataclass import PlayerState
from playback.track import Track


def test_reducer_emits_logevent_with_required_fields() -> None:
    state = PlayerState(state=State.IDLE)

    event = PlayRequested(
        event_type=EventType.PLAY_REQUESTED,
        ts_ms=123,
        track=Track(name="Song A", track_id=1),
    )

    _, commands = reduce(state, event)

    log_events = [c for c in commands if isinstance(c, LogEvent)]
    assert log_events, "Reducer must emit at least one LogEvent"

    payload = log_events[0].event

    for key in ("ts_ms", "state", "run_id", "event_type", "decision", "details"):
        assert key in payload

    assert payload["ts_ms"] == 123
    assert payload["event_type"] == "PLAY_REQUESTED"


def test_ignored_events_are_logged_not_dropped() -> None:
    _, commands = reduce(PlayerState(), PausePressed(event_type=EventType.PAUSE_PRESSED, ts_ms=0))

    assert len(commands) == 1
    assert isinstance(commands[0], LogEvent)
    assert commands[0].event["decision"] == "ignore"
