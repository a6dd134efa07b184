"""
Player control gateway.

Responsibilities:
- One gateway per connected control client (WebSocket)
- Routes inbound JSON control messages -> reducer events
- Returns control messages (alerts, state snapshots) queued by the runtime
- Validates message shape; never raises on client input

NOT responsible for:
- Executing commands
- Any state machine logic
- Player lifetime: the PlayerSession outlives every gateway
"""

from __future__ import annotations

import json
import math
import time
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from observability.logger import log_event
from orchestrator.events import (
    Event,
    EventType,
    NextRequested,
    PausePressed,
    PlayPressed,
    PlayRequested,
    PreviousRequested,
    SeekRequested,
    TogglePressed,
)
from playback.track import Track
from session.player_session import PlayerSession


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _new_client_id() -> str:
    return f"client_{uuid4().hex[:12]}"


class InvalidControlMessage(ValueError):
    """Raised when a control message is missing or has malformed fields."""


# ------------------------------------------------------------------
# Gateway result
# ------------------------------------------------------------------

@dataclass(frozen=True)
class GatewayResult:
    """
    Return value for gateway boundary methods.

    outbound_json:
        JSON messages to send to client
    """
    outbound_json: tuple[dict[str, Any], ...] = ()


# ------------------------------------------------------------------
# PlayerGateway
# ------------------------------------------------------------------

class PlayerGateway:
    """
    One gateway == one control client of the shared player session.
    """

    def __init__(self, *, session: PlayerSession) -> None:
        self.session = session
        self.client_id = _new_client_id()

    async def on_ws_connect(self) -> GatewayResult:
        """Called when a control client connects."""
        self._log("CLIENT_CONNECTED")

        init_msg: dict[str, Any] = {
            "type": "SESSION_INIT",
            "session_id": self.session.session_id,
            "client_id": self.client_id,
            "player": self._snapshot(),
            "now_playing": self._now_playing(),
        }
        return GatewayResult(outbound_json=(init_msg,) + self._drain_control_out())

    async def on_ws_disconnect(self, reason: str | None = None) -> GatewayResult:
        """
        Called when the control client disconnects.

        Playback continues; the player session is process-wide.
        """
        self._log("CLIENT_DISCONNECTED", {"reason": reason})
        return GatewayResult()

    async def next_pushed(self) -> GatewayResult:
        """
        Wait for control messages raised outside a client request (stream
        failures, decode failures, end of track) and return them.

        May return an empty result when another drain got there first.
        """
        await self.session.wait_control()
        return GatewayResult(outbound_json=self._drain_control_out())

    async def on_json_message(self, payload: str) -> GatewayResult:
        """Route inbound JSON to reducer events."""
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            self._log("JSON_DECODE_ERROR", {"error": str(e), "payload_preview": payload[:100]})
            return GatewayResult()

        if not isinstance(data, dict):
            self._log("JSON_NOT_OBJECT", {"payload_preview": payload[:100]})
            return GatewayResult()

        msg_type = data.get("type")

        if msg_type == "STATUS":
            status_msg = {
                "type": "STATUS",
                "player": self._snapshot(),
                "now_playing": self._now_playing(),
            }
            return GatewayResult(outbound_json=self._drain_control_out() + (status_msg,))

        try:
            event = self._to_event(msg_type, data)
        except InvalidControlMessage as e:
            self._log("INVALID_MESSAGE", {"msg_type": msg_type, "error": str(e)})
            return GatewayResult()

        if event is None:
            self._log("UNKNOWN_MESSAGE_TYPE", {"msg_type": msg_type})
            return GatewayResult()

        await self._dispatch(event)
        return GatewayResult(outbound_json=self._drain_control_out())

    # ------------------------------------------------------------------
    # Message -> event mapping
    # ------------------------------------------------------------------

    def _to_event(self, msg_type: Any, data: dict[str, Any]) -> Event | None:
        ts_ms = _now_ms()

        if msg_type == "PLAY":
            return PlayRequested(
                event_type=EventType.PLAY_REQUESTED,
                ts_ms=ts_ms,
                track=_parse_track(data),
            )
        if msg_type == "RESUME":
            return PlayPressed(event_type=EventType.PLAY_PRESSED, ts_ms=ts_ms)
        if msg_type == "PAUSE":
            return PausePressed(event_type=EventType.PAUSE_PRESSED, ts_ms=ts_ms)
        if msg_type == "TOGGLE":
            return TogglePressed(event_type=EventType.TOGGLE_PRESSED, ts_ms=ts_ms)
        if msg_type == "SEEK":
            position = data.get("position_ms")
            if isinstance(position, bool) or not isinstance(position, (int, float)):
                raise InvalidControlMessage("position_ms must be a number")
            if isinstance(position, float) and not math.isfinite(position):
                raise InvalidControlMessage("position_ms must be finite")
            return SeekRequested(
                event_type=EventType.SEEK_REQUESTED,
                ts_ms=ts_ms,
                position_ms=int(position),
            )
        if msg_type == "NEXT":
            return NextRequested(event_type=EventType.NEXT_REQUESTED, ts_ms=ts_ms)
        if msg_type == "PREVIOUS":
            return PreviousRequested(event_type=EventType.PREVIOUS_REQUESTED, ts_ms=ts_ms)
        return None

    # ------------------------------------------------------------------
    # Runtime dispatch
    # ------------------------------------------------------------------

    async def _dispatch(self, event: Event) -> None:
        runtime = self.session.runtime
        if runtime is None:
            self._log("DISPATCH_WITHOUT_RUNTIME", {"dropped_event": event.event_type.value})
            return
        await runtime.handle_event(event)

    def _drain_control_out(self) -> tuple[dict[str, Any], ...]:
        return self.session.drain_control()

    def _snapshot(self) -> dict[str, Any] | None:
        runtime = self.session.runtime
        return runtime.snapshot() if runtime is not None else None

    def _now_playing(self) -> dict[str, Any] | None:
        mirror = self.session.mirror
        if mirror is None:
            return None
        record = mirror.read()
        target = record.resume_target()
        return {
            **record.to_dict(),
            "resume_target": (
                {"name": target.name, "id": target.track_id} if target is not None else None
            ),
        }

    def _log(self, event_type: str, details: dict[str, Any] | None = None) -> None:
        log_event({
            "ts_ms": _now_ms(),
            "event_type": event_type,
            "client_id": self.client_id,
            **self.session.log_context(),
            "details": details or {},
        })


def _parse_track(data: dict[str, Any]) -> Track:
    name = data.get("song_name")
    if not isinstance(name, str) or not name.strip():
        raise InvalidControlMessage("song_name is required")

    song_id = data.get("song_id")
    if song_id is None or song_id == "":
        return Track(name=name.strip())

    # Ids arrive as numbers or numeric strings (deep links carry strings).
    if isinstance(song_id, bool):
        raise InvalidControlMessage("song_id must be an integer")
    try:
        track_id = int(song_id)
    except (TypeError, ValueError, OverflowError) as e:
        raise InvalidControlMessage("song_id must be an integer") from e
    return Track(name=name.strip(), track_id=track_id)
