"""
Runtime execution context.

Provides Runtime with access to the imperative resources it needs for
command execution (stream sessions, cache writer, decoder, mirror, play
queue, control channel).

This module contains:
- Narrow Protocols (capabilities, not implementations)
- Zero orchestration logic
- Zero state mutation
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Awaitable, Callable, Protocol, runtime_checkable

from adapters.decoder.base import DecoderFactory
from audio.reassembly import ReassembledAudio
from orchestrator.enums.direction import QueueDirection
from orchestrator.events import Event
from playback.track import Track
from session.session_guard import StreamSessionProtocol
from spec import STATUS_POLL_INTERVAL_MS_DEFAULT


# ---------------------------------------------------------------------
# Capability Protocols
# ---------------------------------------------------------------------

class StreamFactory(Protocol):
    def __call__(
        self,
        *,
        run_id: int,
        track: Track,
        emit_event: Callable[[Event], Awaitable[None]],
    ) -> StreamSessionProtocol: ...


class CacheWriterProtocol(Protocol):
    async def persist(
        self,
        audio: ReassembledAudio,
        *,
        session_id: str | None = None,
    ) -> Path: ...


class MirrorProtocol(Protocol):
    def sync(self, track_name: str | None, track_id: int | None, is_playing: bool) -> None: ...


@runtime_checkable
class QueueClientProtocol(Protocol):
    """
    Blocking play queue client. Called from a worker thread.

    Failures raise adapters.queue.rest_queue.QueueError.
    """

    def is_single_item(self) -> bool: ...

    def step(self, direction: QueueDirection) -> Track: ...


class ControlSinkProtocol(Protocol):
    session_id: str

    def enqueue_control(self, message: dict[str, Any]) -> None: ...


# ---------------------------------------------------------------------
# Runtime Execution Context
# ---------------------------------------------------------------------

class RuntimeExecutionContext:
    """
    Imperative execution context for Runtime.

    Runtime is allowed to:
    - Open and close stream sessions
    - Write the cache file and load decoders
    - Write the now-playing mirror
    - Call the play queue
    - Push control messages to the client surface

    Runtime is NOT allowed to:
    - Perform orchestration decisions
    """

    def __init__(
        self,
        *,
        session: ControlSinkProtocol,
        stream_factory: StreamFactory,
        cache_writer: CacheWriterProtocol,
        decoder_factory: DecoderFactory,
        mirror: MirrorProtocol,
        queue_client: QueueClientProtocol | None = None,
        status_poll_interval_ms: int = STATUS_POLL_INTERVAL_MS_DEFAULT,
    ) -> None:
        self.session = session
        self.stream_factory = stream_factory
        self.cache_writer = cache_writer
        self.decoder_factory = decoder_factory
        self.mirror = mirror
        self.queue_client = queue_client
        self.status_poll_interval_ms = status_poll_interval_ms

    @property
    def session_id(self) -> str:
        return self.session.session_id

    def enqueue_control(self, message: dict[str, Any]) -> None:
        self.session.enqueue_control(message)
