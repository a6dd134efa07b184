"""
mpv-backed audio decoder.

Plays the cache file through libmpv (python-mpv):
- One MPV instance per decoder (one loaded file)
- Loaded paused; play()/pause() toggle the mpv `pause` property
- keep-open so the file stays loaded after end-of-file and seek/play
  still work
- End-of-file is latched from the `eof-reached` observer and reported
  once through status().did_just_finish

libmpv calls block, so every call runs in a worker thread, and any
libmpv failure surfaces as DecoderError.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from threading import Lock
from typing import Any, Callable, TypeVar

from mpv import MPV

from adapters.decoder.base import AudioDecoder, DecoderError, PlaybackStatus
from observability.logger import log_event


_LOAD_TIMEOUT_S = 10.0

T = TypeVar("T")


class MpvDecoder(AudioDecoder):
    """A decoder wrapping one python-mpv player instance."""

    def __init__(self, *, device: str | None = None) -> None:
        self._device = device
        self._player: MPV | None = None

        self._eof_lock = Lock()
        self._eof_pending = False

    # -------------------------------------------------------------------------
    # AudioDecoder
    # -------------------------------------------------------------------------

    async def load(self, path: Path) -> None:
        try:
            await asyncio.to_thread(self._load_blocking, path)
        except DecoderError:
            await self.unload()
            raise
        except Exception as exc:  # pylint: disable=broad-exception-caught
            await self.unload()
            raise DecoderError(f"mpv failed to load {path}: {exc}") from exc

    async def play(self) -> None:
        player = self._require_player()
        await self._call("play", setattr, player, "pause", False)

    async def pause(self) -> None:
        player = self._require_player()
        await self._call("pause", setattr, player, "pause", True)

    async def seek(self, position_ms: int) -> None:
        player = self._require_player()
        seconds = max(position_ms, 0) / 1000.0
        await self._call("seek", player.seek, seconds, "absolute")

    async def status(self) -> PlaybackStatus:
        player = self._player
        if player is None:
            return PlaybackStatus.unloaded()

        time_pos, duration, paused = await self._call(
            "status", lambda: (player.time_pos, player.duration, player.pause)
        )

        with self._eof_lock:
            finished = self._eof_pending
            self._eof_pending = False

        return PlaybackStatus(
            is_loaded=True,
            is_playing=not paused and not finished,
            position_ms=int((time_pos or 0.0) * 1000),
            duration_ms=int((duration or 0.0) * 1000),
            did_just_finish=finished,
        )

    async def unload(self) -> None:
        player, self._player = self._player, None
        if player is None:
            return
        try:
            await asyncio.to_thread(player.terminate)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({"event_type": "MPV_TERMINATE_FAILED", "error": repr(exc)})

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @staticmethod
    async def _call(action: str, fn: Callable[..., T], *args: Any) -> T:
        """Run a blocking libmpv call in a worker thread; failures become DecoderError."""
        try:
            return await asyncio.to_thread(fn, *args)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            raise DecoderError(f"mpv {action} failed: {exc}") from exc

    def _load_blocking(self, path: Path) -> None:
        player = MPV(
            video=False,
            terminal=False,
            keep_open="yes",
            pause=True,
            log_handler=self._mpv_log,
        )
        if self._device:
            player["audio-device"] = self._device

        self._player = player
        player.observe_property("eof-reached", self._on_eof_reached)

        player.loadfile(str(path))
        player.wait_for_property("duration", lambda value: value is not None, timeout=_LOAD_TIMEOUT_S)

    def _on_eof_reached(self, _name: str, value: Any) -> None:
        if value:
            with self._eof_lock:
                self._eof_pending = True

    def _require_player(self) -> MPV:
        if self._player is None:
            raise DecoderError("decoder is not loaded")
        return self._player

    @staticmethod
    def _mpv_log(level: str, prefix: str, text: str) -> None:
        if level in ("fatal", "error", "warn"):
            log_event({
                "event_type": "MPV_LOG",
                "level": level,
                "prefix": prefix,
                "text": text.strip(),
            })
