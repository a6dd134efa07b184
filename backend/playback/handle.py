"""
Playback handle.

A PlaybackHandle binds one loaded decoder instance to one cache file and
the Track it represents. It is the only object allowed to drive the
decoder. How many handles may be alive at once is NOT this module's
concern; see session.session_guard.
"""

from __future__ import annotations

from pathlib import Path

from adapters.decoder.base import AudioDecoder, DecoderFactory, PlaybackStatus
from playback.track import Track


class PlaybackHandle:
    """
    Live decoded-audio instance for one track.

    Lifecycle:
    1. load() builds a decoder and opens the cache file (paused)
    2. play() / pause() / seek() mutate playback
    3. release() unloads the decoder; the handle is dead afterwards
    """

    def __init__(self, *, decoder: AudioDecoder, track: Track, path: Path) -> None:
        self._decoder = decoder
        self._track = track
        self._path = path
        self._released = False

    @classmethod
    async def load(
        cls,
        *,
        decoder_factory: DecoderFactory,
        track: Track,
        path: Path,
    ) -> PlaybackHandle:
        """
        Open `path` with a fresh decoder.

        Raises:
            DecoderError if the decoder cannot open the file.
        """
        decoder = decoder_factory()
        await decoder.load(path)
        return cls(decoder=decoder, track=track, path=path)

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def track(self) -> Track:
        return self._track

    @property
    def path(self) -> Path:
        return self._path

    @property
    def released(self) -> bool:
        return self._released

    # ------------------------------------------------------------------
    # Playback control
    # ------------------------------------------------------------------

    async def play(self) -> None:
        if not self._released:
            await self._decoder.play()

    async def pause(self) -> None:
        if not self._released:
            await self._decoder.pause()

    async def seek(self, position_ms: int) -> None:
        if not self._released:
            await self._decoder.seek(position_ms)

    async def status(self) -> PlaybackStatus:
        if self._released:
            return PlaybackStatus.unloaded()
        return await self._decoder.status()

    async def release(self) -> None:
        """
        Stop decoding and free the decoder. Idempotent.
        """
        if self._released:
            return
        self._released = True
        await self._decoder.unload()
