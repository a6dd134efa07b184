"""
Stream session over the EchoBeat streaming WebSocket.

One StreamSession == one connection == one track == one run_id.

Lifecycle:
- open(): connect, send startStream, start the receive loop
- receive loop: translates server messages into reducer events, in
  arrival order, awaiting each emit before reading the next frame
- close(): idempotent; safe to call from inside the receive loop

The session never retries. A connect failure raises StreamOpenError; a
connection lost before streamComplete is reported as StreamFailed.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from websockets.asyncio.client import ClientConnection, connect as ws_connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from observability.logger import log_event, now_ms
from orchestrator.events import (
    Event,
    EventType,
    FragmentReceived,
    StreamCompleted,
    StreamFailed,
)
from playback.track import Track
from protocol.stream_messages import (
    ServerMessageKind,
    StreamProtocolError,
    decode_server_message,
    encode_start_stream,
)
from session.connection_status import ConnectionStatus
from spec import STREAM_OPEN_TIMEOUT_S_DEFAULT

EmitEvent = Callable[[Event], Awaitable[None]]
Connector = Callable[..., Awaitable[Any]]


class StreamOpenError(Exception):
    """Raised when the connection cannot be established or startStream sent."""


class StreamSession:
    """
    Client side of one streaming request.

    The receive loop emits exactly one terminal event (StreamCompleted or
    StreamFailed) unless the session is closed first.
    """

    def __init__(
        self,
        *,
        run_id: int,
        track: Track,
        url: str,
        emit_event: EmitEvent,
        open_timeout_s: float = STREAM_OPEN_TIMEOUT_S_DEFAULT,
        connect: Connector = ws_connect,
        session_id: str | None = None,
    ) -> None:
        self._run_id = run_id
        self._track = track
        self._url = url
        self._emit = emit_event
        self._open_timeout_s = open_timeout_s
        self._connect = connect
        self._session_id = session_id

        self._ws: ClientConnection | None = None
        self._recv_task: asyncio.Task[None] | None = None
        self._closed = False

        self.status = ConnectionStatus.DOWN

    @property
    def run_id(self) -> int:
        return self._run_id

    @property
    def track(self) -> Track:
        return self._track

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        """
        Connect and send startStream.

        Raises:
            StreamOpenError on handshake failure, timeout, or send failure.
        """
        if self._closed:
            raise StreamOpenError("session already closed")

        self.status = ConnectionStatus.CONNECTING
        self._log("STREAM_CONNECTING", {"url": self._url})

        try:
            self._ws = await self._connect(self._url, open_timeout=self._open_timeout_s)
            await self._ws.send(encode_start_stream(self._track))
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            self.status = ConnectionStatus.DOWN
            await self._close_ws()
            self._log("STREAM_CONNECT_FAILED", {"error": repr(e)})
            raise StreamOpenError(str(e) or type(e).__name__) from e

        self.status = ConnectionStatus.UP
        self._log("STREAM_CONNECTED")
        self._recv_task = asyncio.create_task(self._recv_loop())

    async def close(self) -> None:
        """
        Close the connection and stop the receive loop. Idempotent.

        When called from the receive loop itself (a reducer reaction to an
        event this session emitted) the loop is not cancelled; it exits on
        its own once the emit returns.
        """
        if self._closed:
            return
        self._closed = True

        task = self._recv_task
        self._recv_task = None

        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        await self._close_ws()
        self.status = ConnectionStatus.DOWN
        self._log("STREAM_CLOSED")

    # ------------------------------------------------------------------
    # Receive loop
    # ------------------------------------------------------------------

    async def _recv_loop(self) -> None:
        ws = self._ws
        if ws is None:
            return

        try:
            async for payload in ws:
                if self._closed:
                    return

                try:
                    message = decode_server_message(payload)
                except StreamProtocolError as e:
                    self._log("STREAM_MESSAGE_IGNORED", {"error": str(e)})
                    continue

                if message.kind is ServerMessageKind.AUDIO_CHUNK:
                    await self._emit(
                        FragmentReceived(
                            event_type=EventType.FRAGMENT_RECEIVED,
                            ts_ms=now_ms(),
                            run_id=self._run_id,
                            fragment=message.fragment,
                        )
                    )
                    continue

                if message.kind is ServerMessageKind.STREAM_COMPLETE:
                    await self._emit(
                        StreamCompleted(
                            event_type=EventType.STREAM_COMPLETED,
                            ts_ms=now_ms(),
                            run_id=self._run_id,
                        )
                    )
                    return

                await self._emit(
                    StreamFailed(
                        event_type=EventType.STREAM_FAILED,
                        ts_ms=now_ms(),
                        run_id=self._run_id,
                        message=message.error_message,
                    )
                )
                return

        except asyncio.CancelledError:
            raise
        except ConnectionClosed as e:
            if self._closed:
                return
            self._log("STREAM_CONNECTION_LOST", {"error": repr(e)})

        if self._closed:
            return

        await self._emit(
            StreamFailed(
                event_type=EventType.STREAM_FAILED,
                ts_ms=now_ms(),
                run_id=self._run_id,
                message=None,
            )
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _close_ws(self) -> None:
        ws = self._ws
        self._ws = None
        if ws is None:
            return
        try:
            await ws.close()
        except (OSError, WebSocketException) as e:
            self._log("STREAM_CLOSE_ERROR", {"error": repr(e)})

    def _log(self, event: str, details: dict[str, Any] | None = None) -> None:
        log_event({
            "ts_ms": now_ms(),
            "event_type": event,
            "session_id": self._session_id,
            "run_id": self._run_id,
            **self._track.log_fields(),
            "details": details or {},
        })
