# pylint: disable=missing-module-docstring,missing-function-docstring
import asyncio
import json
from pathlib import Path
from typing import Any

import pytest

import session.gateway as gateway_mod
from adapters.decoder.base import AudioDecoder, PlaybackStatus
from config import AppConfig
from orchestrator.enums.policy import InvalidFragmentPolicy
from playback.track import Track
from session.gateway import PlayerGateway
from session.player_session import PlayerSession, build_player_session


class FakeStream:
    def __init__(self, *, run_id: int, track: Track, opened: list[Track]) -> None:
        self.run_id = run_id
        self.track = track
        self._opened = opened

    async def open(self) -> None:
        self._opened.append(self.track)

    async def close(self) -> None:
        return None


class IdleDecoder(AudioDecoder):
    async def load(self, path: Path) -> None:
        return None

    async def play(self) -> None:
        return None

    async def pause(self) -> None:
        return None

    async def seek(self, position_ms: int) -> None:
        return None

    async def status(self) -> PlaybackStatus:
        return PlaybackStatus.unloaded()

    async def unload(self) -> None:
        return None


def _config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        env="test",
        log_level="INFO",
        stream_url="ws://stream.invalid",
        api_base_url="http://api.invalid",
        user_email=None,
        cache_dir=tmp_path / "cache",
        store_path=tmp_path / "now_playing.json",
        invalid_fragment_policy=InvalidFragmentPolicy.DROP,
        status_poll_interval_ms=50,
        stream_open_timeout_s=1.0,
        queue_http_timeout_s=1.0,
        mpv_audio_device=None,
    )


def _session(tmp_path: Path) -> tuple[PlayerSession, list[Track]]:
    opened: list[Track] = []

    def stream_factory(*, run_id: int, track: Track, emit_event: Any) -> FakeStream:
        return FakeStream(run_id=run_id, track=track, opened=opened)

    session = build_player_session(
        _config(tmp_path),
        decoder_factory=IdleDecoder,
        stream_factory=stream_factory,
    )
    return session, opened


def _capture_logs(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    emitted: list[dict[str, Any]] = []
    monkeypatch.setattr(gateway_mod, "log_event", emitted.append)
    return emitted


def test_connect_sends_session_init(tmp_path: Path) -> None:
    session, _ = _session(tmp_path)
    gw = PlayerGateway(session=session)

    result = asyncio.run(gw.on_ws_connect())

    init = result.outbound_json[0]
    assert init["type"] == "SESSION_INIT"
    assert init["session_id"] == session.session_id
    assert init["client_id"] == gw.client_id
    assert init["player"]["state"] == "IDLE"
    assert init["now_playing"]["resume_target"] is None


def test_play_message_opens_stream_and_publishes_state(tmp_path: Path) -> None:
    session, opened = _session(tmp_path)
    gw = PlayerGateway(session=session)

    result = asyncio.run(
        gw.on_json_message(json.dumps({"type": "PLAY", "song_name": " Song A ", "song_id": "12"}))
    )

    assert opened == [Track(name="Song A", track_id=12)]
    assert session.runtime is not None
    assert session.runtime.snapshot()["state"] == "STREAMING"

    states = [m for m in result.outbound_json if m["type"] == "STATE"]
    assert len(states) == 1
    assert states[0]["track"] == {"name": "Song A", "id": 12}


def test_play_without_id_uses_name_only(tmp_path: Path) -> None:
    session, opened = _session(tmp_path)
    gw = PlayerGateway(session=session)

    asyncio.run(gw.on_json_message(json.dumps({"type": "PLAY", "song_name": "Song A"})))

    assert opened == [Track(name="Song A")]


@pytest.mark.parametrize(
    ("payload", "log_type"),
    [
        ("{not json", "JSON_DECODE_ERROR"),
        ("[1, 2]", "JSON_NOT_OBJECT"),
        (json.dumps({"type": "PLAY"}), "INVALID_MESSAGE"),
        (json.dumps({"type": "PLAY", "song_name": "x", "song_id": "abc"}), "INVALID_MESSAGE"),
        (json.dumps({"type": "SEEK", "position_ms": "10"}), "INVALID_MESSAGE"),
        (json.dumps({"type": "SEEK", "position_ms": True}), "INVALID_MESSAGE"),
        ('{"type": "SEEK", "position_ms": 1e999}', "INVALID_MESSAGE"),
        ('{"type": "SEEK", "position_ms": NaN}', "INVALID_MESSAGE"),
        ('{"type": "SEEK", "position_ms": -Infinity}', "INVALID_MESSAGE"),
        ('{"type": "PLAY", "song_name": "x", "song_id": 1e999}', "INVALID_MESSAGE"),
        ('{"type": "PLAY", "song_name": "x", "song_id": NaN}', "INVALID_MESSAGE"),
        (json.dumps({"type": "SHUFFLE"}), "UNKNOWN_MESSAGE_TYPE"),
    ],
)
def test_bad_messages_are_logged_not_raised(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    payload: str,
    log_type: str,
) -> None:
    emitted = _capture_logs(monkeypatch)
    session, opened = _session(tmp_path)
    gw = PlayerGateway(session=session)

    result = asyncio.run(gw.on_json_message(payload))

    assert result.outbound_json == ()
    assert opened == []
    assert [e["event_type"] for e in emitted] == [log_type]
    assert emitted[0]["client_id"] == gw.client_id


def test_status_drains_pending_control_first(tmp_path: Path) -> None:
    session, _ = _session(tmp_path)
    gw = PlayerGateway(session=session)
    session.enqueue_control({"type": "ALERT", "title": "t", "message": "m", "ts_ms": 1})

    result = asyncio.run(gw.on_json_message(json.dumps({"type": "STATUS"})))

    assert [m["type"] for m in result.outbound_json] == ["ALERT", "STATUS"]
    assert session.drain_control() == ()


def test_now_playing_reflects_mirror(tmp_path: Path) -> None:
    session, _ = _session(tmp_path)
    assert session.mirror is not None
    session.mirror.sync("Song B", 4, True)
    gw = PlayerGateway(session=session)

    result = asyncio.run(gw.on_json_message(json.dumps({"type": "STATUS"})))

    now_playing = result.outbound_json[-1]["now_playing"]
    assert now_playing["last_track_name"] == "Song B"
    assert now_playing["is_playing"] is True
    assert now_playing["resume_target"] == {"name": "Song B", "id": 4}


def test_controls_without_handle_are_noops(tmp_path: Path) -> None:
    session, opened = _session(tmp_path)
    gw = PlayerGateway(session=session)

    async def scenario() -> None:
        for msg_type in ("RESUME", "PAUSE", "TOGGLE", "NEXT", "PREVIOUS"):
            await gw.on_json_message(json.dumps({"type": msg_type}))
        await gw.on_json_message(json.dumps({"type": "SEEK", "position_ms": 1000}))

    asyncio.run(scenario())

    assert opened == []
    assert session.runtime is not None
    assert session.runtime.snapshot()["state"] == "IDLE"


def test_next_pushed_waits_for_runtime_messages(tmp_path: Path) -> None:
    session, _ = _session(tmp_path)
    gw = PlayerGateway(session=session)

    async def scenario() -> tuple[bool, tuple[dict[str, Any], ...]]:
        waiter = asyncio.create_task(gw.next_pushed())
        await asyncio.sleep(0)
        was_waiting = not waiter.done()
        session.enqueue_control({"type": "ALERT", "title": "Error", "message": "m", "ts_ms": 1})
        result = await asyncio.wait_for(waiter, timeout=1.0)
        return was_waiting, result.outbound_json

    was_waiting, pushed = asyncio.run(scenario())

    assert was_waiting
    assert [m["type"] for m in pushed] == ["ALERT"]
    assert session.drain_control() == ()
