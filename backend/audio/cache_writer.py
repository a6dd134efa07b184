# backend/audio/cache_writer.py
"""
Playback cache writer.

Persists a reassembled payload to the single well-known cache file and
returns a path the decoder can open.

Known limitations:
- One fixed filename per app, not per track
- No atomic rename; a second write before the decoder opens the first
  file pre-empts it
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from audio.reassembly import ReassembledAudio
from observability.metrics import timed
from spec import CACHE_FILENAME


class CacheWriteError(Exception):
    """
    Raised when the reassembled payload cannot be written to the cache file.

    Playback must not start: the decoder would open a stale or partial file.
    """


class PlaybackCacheWriter:
    """
    Writes reassembled audio to `cache_dir / CACHE_FILENAME`.
    """

    def __init__(self, *, cache_dir: Path, filename: str = CACHE_FILENAME) -> None:
        self._cache_dir = Path(cache_dir)
        self._filename = filename

    @property
    def path(self) -> Path:
        """The fixed cache file path (overwritten per track)."""
        return self._cache_dir / self._filename

    async def persist(
        self,
        audio: ReassembledAudio,
        *,
        session_id: str | None = None,
    ) -> Path:
        """
        Write `audio.data` to the cache file, replacing any previous track.

        File I/O runs in a worker thread; the caller suspends until the
        write completes.

        Raises:
            CacheWriteError on any OS-level failure.
        """
        path = self.path

        with timed(
            "cache_write",
            session_id=session_id,
            details={"bytes": audio.byte_length, "track_key": audio.source_track.key},
        ):
            try:
                await asyncio.to_thread(self._write, path, audio.data)
            except OSError as e:
                raise CacheWriteError(f"failed to write {path}: {e}") from e

        return path

    def _write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
