"""
Side-effect command definitions for the player orchestrator.

Rules:
- Commands are declarative requests for side effects.
- Commands are emitted by the reducer and executed by the runtime.
- No behavior, no async, no I/O, no clocks.
- Reducer logic remains pure and deterministic.
Invariant:
    - All concrete Command subclasses MUST be frozen dataclasses.
    - Commands are executed in emission order; a teardown command emitted
      before OpenStream completes before the new connection is opened.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from orchestrator.enums.direction import QueueDirection
from playback.track import Track

# =============================================================================
# Command Type Enumeration
# =============================================================================

class CommandType(str, Enum):
    """
    Canonical command types emitted by the reducer.

    These are stable discriminants used for logging and runtime dispatch.
    """

    # Stream session
    OPEN_STREAM = "OPEN_STREAM"
    CLOSE_STREAM = "CLOSE_STREAM"

    # Reassembly
    APPEND_FRAGMENT = "APPEND_FRAGMENT"
    DISCARD_FRAGMENTS = "DISCARD_FRAGMENTS"
    FINALIZE_AUDIO = "FINALIZE_AUDIO"

    # Playback handle
    RELEASE_PLAYBACK = "RELEASE_PLAYBACK"
    START_PLAYBACK = "START_PLAYBACK"
    PAUSE_PLAYBACK = "PAUSE_PLAYBACK"
    SEEK_PLAYBACK = "SEEK_PLAYBACK"
    START_STATUS_POLLING = "START_STATUS_POLLING"
    STOP_STATUS_POLLING = "STOP_STATUS_POLLING"

    # Now-playing mirror
    MIRROR_STATE = "MIRROR_STATE"

    # Play queue
    CHECK_QUEUE = "CHECK_QUEUE"
    MOVE_QUEUE = "MOVE_QUEUE"

    # User / client
    NOTIFY_USER = "NOTIFY_USER"

    # Observability
    LOG_EVENT = "LOG_EVENT"


# =============================================================================
# Base Command
# =============================================================================

class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType


# =============================================================================
# Stream Session Commands
# =============================================================================

@dataclass(frozen=True)
class OpenStream(Command):
    """
    Open a new stream session for `track` and send startStream.

    The runtime must reject this if another session is still live.
    """
    run_id: int
    track: Track
    command_type: CommandType = CommandType.OPEN_STREAM


@dataclass(frozen=True)
class CloseStream(Command):
    """Close the connection of stream run `run_id` (idempotent)."""
    run_id: int
    command_type: CommandType = CommandType.CLOSE_STREAM


# =============================================================================
# Reassembly Commands
# =============================================================================

@dataclass(frozen=True)
class AppendFragment(Command):
    """Validate and buffer one raw fragment for run `run_id`."""
    run_id: int
    fragment: Any
    command_type: CommandType = CommandType.APPEND_FRAGMENT


@dataclass(frozen=True)
class DiscardFragments(Command):
    """Drop every buffered fragment of run `run_id`."""
    run_id: int
    command_type: CommandType = CommandType.DISCARD_FRAGMENTS


@dataclass(frozen=True)
class FinalizeAudio(Command):
    """
    Reassemble, persist to the cache file and load the decoder.

    The runtime answers with exactly one AudioReady or AudioFailed.
    """
    run_id: int
    track: Track
    command_type: CommandType = CommandType.FINALIZE_AUDIO


# =============================================================================
# Playback Handle Commands
# =============================================================================

@dataclass(frozen=True)
class ReleasePlayback(Command):
    """Stop and unload the live PlaybackHandle, if any."""
    command_type: CommandType = CommandType.RELEASE_PLAYBACK


@dataclass(frozen=True)
class StartPlayback(Command):
    """Start or resume the live handle."""
    command_type: CommandType = CommandType.START_PLAYBACK


@dataclass(frozen=True)
class PausePlayback(Command):
    """Pause the live handle."""
    command_type: CommandType = CommandType.PAUSE_PLAYBACK


@dataclass(frozen=True)
class SeekPlayback(Command):
    """Seek the live handle to an absolute position."""
    position_ms: int
    command_type: CommandType = CommandType.SEEK_PLAYBACK


@dataclass(frozen=True)
class StartStatusPolling(Command):
    """Begin periodic status polling of the live handle for run `run_id`."""
    run_id: int
    command_type: CommandType = CommandType.START_STATUS_POLLING


@dataclass(frozen=True)
class StopStatusPolling(Command):
    """Stop status polling (idempotent)."""
    command_type: CommandType = CommandType.STOP_STATUS_POLLING


# =============================================================================
# Mirror Commands
# =============================================================================

@dataclass(frozen=True)
class MirrorState(Command):
    """Write the now-playing record."""
    track_name: str | None
    track_id: int | None
    is_playing: bool
    command_type: CommandType = CommandType.MIRROR_STATE


# =============================================================================
# Play Queue Commands
# =============================================================================

@dataclass(frozen=True)
class CheckQueue(Command):
    """Ask the queue service whether it holds a single song."""
    run_id: int
    command_type: CommandType = CommandType.CHECK_QUEUE


@dataclass(frozen=True)
class MoveQueue(Command):
    """
    Move the server-side queue and request playback of the new entry.
    """
    direction: QueueDirection
    command_type: CommandType = CommandType.MOVE_QUEUE


# =============================================================================
# User / Client Commands
# =============================================================================

@dataclass(frozen=True)
class NotifyUser(Command):
    """Surface a blocking alert to the user."""
    title: str
    message: str
    command_type: CommandType = CommandType.NOTIFY_USER


# =============================================================================
# Observability Commands
# =============================================================================

@dataclass(frozen=True)
class LogEvent(Command):
    """Request to emit a structured observability event."""
    event: dict[str, Any]
    command_type: CommandType = CommandType.LOG_EVENT
