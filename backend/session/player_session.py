"""
Player session container.

- Process-wide: one PlayerSession per server process, shared by every
  connected control client
- Owns the runtime (which owns the authoritative player state)
- Owns the outbound control FIFO (alerts, state snapshots)
- NOT a state machine
- Contains no orchestration logic
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from adapters.decoder.base import DecoderFactory
from audio.cache_writer import PlaybackCacheWriter
from orchestrator.runtime import Runtime
from orchestrator.runtime_context import (
    QueueClientProtocol,
    RuntimeExecutionContext,
    StreamFactory,
)
from orchestrator.state_dataclass import PlayerState
from playback.mirror import PlaybackStateMirror
from playback.store import KeyValueStore
from session.stream_session import StreamSession

from config import AppConfig


def _new_session_id() -> str:
    return f"player_{uuid4().hex[:12]}"


# ---------------------------------------------------------------------
# PlayerSession
# ---------------------------------------------------------------------


@dataclass
class PlayerSession:
    """Mutable runtime container for the player core."""

    # ------------------------------------------------------------------
    # Identity / lifecycle
    # ------------------------------------------------------------------

    session_id: str = field(default_factory=_new_session_id)
    created_at: float = field(default_factory=time.time)

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    runtime: Runtime | None = None
    mirror: PlaybackStateMirror | None = None

    def __post_init__(self) -> None:
        self._control_out: deque[dict[str, Any]] = deque()
        self._control_waiters: list[asyncio.Future[None]] = []

    # ------------------------------------------------------------------
    # Wiring helpers
    # ------------------------------------------------------------------

    def attach_runtime(self, runtime: Runtime) -> None:
        self.runtime = runtime

    def attach_mirror(self, mirror: PlaybackStateMirror) -> None:
        self.mirror = mirror

    # ------------------------------------------------------------------
    # Observability helpers (read-only)
    # ------------------------------------------------------------------

    def log_context(self) -> dict[str, Any]:
        """Standard logging context for this session."""
        return {
            "session_id": self.session_id,
            "state": self.runtime.state.state.value if self.runtime else None,
        }

    # ------------------------------------------------------------------
    # Control channel
    # ------------------------------------------------------------------

    def enqueue_control(self, msg: dict[str, Any]) -> None:
        """
        Enqueue a control message for gateway delivery to the client.

        Messages are buffered in FIFO order and later retrieved via
        drain_control().
        """
        self._control_out.append(msg)
        for waiter in self._control_waiters:
            if not waiter.done():
                waiter.set_result(None)

    def drain_control(self) -> tuple[dict[str, Any], ...]:
        """
        Drain all pending control messages in FIFO order.

        After this call, the control queue is empty.
        """
        if not self._control_out:
            return ()
        out = tuple(self._control_out)
        self._control_out.clear()
        return out

    async def wait_control(self) -> None:
        """
        Block until at least one control message is pending.

        Returns immediately if the queue is already non-empty. Several
        waiters may be woken by one message; only one of them will drain it.
        """
        if self._control_out:
            return
        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._control_waiters.append(waiter)
        try:
            await waiter
        finally:
            self._control_waiters.remove(waiter)


# ---------------------------------------------------------------------
# Bootstrap
# ---------------------------------------------------------------------


def build_player_session(
    config: AppConfig,
    *,
    decoder_factory: DecoderFactory,
    stream_factory: StreamFactory | None = None,
    queue_client: QueueClientProtocol | None = None,
) -> PlayerSession:
    """
    Wire a PlayerSession from configuration.

    stream_factory defaults to real WebSocket sessions against
    config.stream_url. queue_client is optional; without it queue
    navigation is skipped.
    """
    session = PlayerSession()
    mirror = PlaybackStateMirror(KeyValueStore(config.store_path))
    session.attach_mirror(mirror)

    if stream_factory is None:
        def stream_factory(*, run_id, track, emit_event):  # type: ignore[no-redef]
            return StreamSession(
                run_id=run_id,
                track=track,
                url=config.stream_url,
                emit_event=emit_event,
                open_timeout_s=config.stream_open_timeout_s,
                session_id=session.session_id,
            )

    runtime = Runtime(
        initial_state=PlayerState(policy=config.invalid_fragment_policy),
        context=RuntimeExecutionContext(
            session=session,
            stream_factory=stream_factory,
            cache_writer=PlaybackCacheWriter(cache_dir=config.cache_dir),
            decoder_factory=decoder_factory,
            mirror=mirror,
            queue_client=queue_client,
            status_poll_interval_ms=config.status_poll_interval_ms,
        ),
    )
    session.attach_runtime(runtime)
    return session
