"""
Audio decoder adapter contract.

This module defines the *interface only*: no reassembly, no cache policy,
no singleton discipline, no state machine decisions live here.

Key invariants:
- One decoder instance is bound to exactly one loaded file.
- The decoder never chooses what to play next; end-of-track is reported
  through status() and the orchestrator decides.
- unload() releases every platform resource and is idempotent.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable


class DecoderError(Exception):
    """
    Raised when the platform decoder cannot load or control a file.

    Load failures are terminal for the current session.
    """


@dataclass(frozen=True)
class PlaybackStatus:
    """
    Point-in-time status report of a decoder instance.

    did_just_finish:
        True exactly once, on the first status() call after playback
        reached the end of the file.
    """
    is_loaded: bool
    is_playing: bool
    position_ms: int
    duration_ms: int
    did_just_finish: bool = False

    @staticmethod
    def unloaded() -> PlaybackStatus:
        return PlaybackStatus(
            is_loaded=False,
            is_playing=False,
            position_ms=0,
            duration_ms=0,
        )


class AudioDecoder(ABC):
    """
    Abstract interface for the platform audio decoder / player.

    Implementations are responsible for:
    - Opening an encoded audio file (mp3 from the cache writer)
    - Starting, pausing and seeking playback
    - Reporting position, duration and end-of-track

    Non-responsibilities:
    - No knowledge of tracks, sessions or the now-playing mirror
    - No retries
    """

    @abstractmethod
    async def load(self, path: Path) -> None:
        """
        Open `path` paused at position 0.

        Raises:
            DecoderError if the file cannot be opened or decoded.
        """
        raise NotImplementedError

    @abstractmethod
    async def play(self) -> None:
        """Start or resume playback."""
        raise NotImplementedError

    @abstractmethod
    async def pause(self) -> None:
        """Pause playback, keeping the position."""
        raise NotImplementedError

    @abstractmethod
    async def seek(self, position_ms: int) -> None:
        """Move to an absolute position in milliseconds."""
        raise NotImplementedError

    @abstractmethod
    async def status(self) -> PlaybackStatus:
        """Return the current status report."""
        raise NotImplementedError

    @abstractmethod
    async def unload(self) -> None:
        """
        Stop playback and release the decoder.

        Contract:
        - MUST be idempotent.
        - After unload(), status() reports is_loaded=False.
        """
        raise NotImplementedError


# Builds a fresh, unloaded decoder per PlaybackHandle.
DecoderFactory = Callable[[], AudioDecoder]
