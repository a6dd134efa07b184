"""
Singleton session guard.

Owns the process-wide "current" stream session, its reassembly buffer and
the live PlaybackHandle. At most one of each exists at any time.

The reducer decides WHEN to tear down; the guard enforces that a new
session or handle is never installed while an old one is still live.
"""

from __future__ import annotations

from typing import Protocol

from audio.reassembly import ChunkReassembler
from playback.handle import PlaybackHandle
from playback.track import Track


class SessionGuardError(Exception):
    """Raised when installing a session or handle while another is live."""


class StreamSessionProtocol(Protocol):
    @property
    def run_id(self) -> int: ...

    @property
    def track(self) -> Track: ...

    async def open(self) -> None: ...

    async def close(self) -> None: ...


class SessionGuard:
    """Holder of the single live stream session and playback handle."""

    def __init__(self) -> None:
        self._stream: StreamSessionProtocol | None = None
        self._reassembler: ChunkReassembler | None = None
        self._handle: PlaybackHandle | None = None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def stream(self) -> StreamSessionProtocol | None:
        return self._stream

    @property
    def handle(self) -> PlaybackHandle | None:
        return self._handle

    @property
    def stream_run_id(self) -> int | None:
        return self._stream.run_id if self._stream is not None else None

    def reassembler_for(self, run_id: int) -> ChunkReassembler | None:
        """Buffer of the live session if it belongs to `run_id`."""
        if self._stream is None or self._stream.run_id != run_id:
            return None
        return self._reassembler

    def matches(self, track: Track) -> bool:
        """True if the live session or handle already serves `track`."""
        if self._handle is not None and self._handle.track.key == track.key:
            return True
        return self._stream is not None and self._stream.track.key == track.key

    # ------------------------------------------------------------------
    # Install
    # ------------------------------------------------------------------

    def install_stream(
        self,
        stream: StreamSessionProtocol,
        reassembler: ChunkReassembler,
    ) -> None:
        if self._stream is not None:
            raise SessionGuardError(
                f"stream run {self._stream.run_id} still live; "
                f"cannot install run {stream.run_id}"
            )
        self._stream = stream
        self._reassembler = reassembler

    def install_handle(self, handle: PlaybackHandle) -> None:
        if self._handle is not None:
            raise SessionGuardError(
                f"playback handle for {self._handle.track.key!r} still live; "
                f"cannot install {handle.track.key!r}"
            )
        self._handle = handle

    async def replace(
        self,
        stream: StreamSessionProtocol,
        reassembler: ChunkReassembler,
    ) -> None:
        """
        Tear down whatever is live, then install `stream`.

        Teardown completes before the new session is installed (and
        therefore before it can be opened).
        """
        await self.release_all()
        self.install_stream(stream, reassembler)

    # ------------------------------------------------------------------
    # Release
    # ------------------------------------------------------------------

    async def release_stream(self, run_id: int | None = None) -> bool:
        """
        Close the live session and drop its buffer.

        With run_id given, only a session of that run is released.
        Returns True if something was released.
        """
        stream = self._stream
        if stream is None:
            return False
        if run_id is not None and stream.run_id != run_id:
            return False

        self._stream = None
        reassembler = self._reassembler
        self._reassembler = None

        if reassembler is not None:
            reassembler.clear()
        await stream.close()
        return True

    def discard_fragments(self, run_id: int) -> None:
        reassembler = self.reassembler_for(run_id)
        if reassembler is not None:
            reassembler.clear()

    async def release_handle(self) -> bool:
        handle = self._handle
        if handle is None:
            return False
        self._handle = None
        await handle.release()
        return True

    async def release_all(self) -> None:
        """Handle first, then stream."""
        await self.release_handle()
        await self.release_stream()
