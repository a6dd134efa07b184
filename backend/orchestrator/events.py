"""
Unified event definitions for the player reducer.

Rules:
- Events describe facts that have occurred.
- Events carry data only (no behavior).
- All reducer decisions are based on these events.
- No clocks, no timers, no async, no side effects.

Stream-scoped events carry the run_id of the stream session that produced
them so the reducer can drop events from superseded sessions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from orchestrator.enums.direction import QueueDirection
from playback.track import Track


# =============================================================================
# Event Type Enumeration
# =============================================================================

class EventType(str, Enum):
    """
    Canonical event types understood by the reducer.

    Every (state, event_type) pair must be explicitly handled
    or explicitly ignored by the reducer.
    """

    # ------------------------------------------------------------------
    # Playback requests
    # ------------------------------------------------------------------
    PLAY_REQUESTED = "PLAY_REQUESTED"

    # ------------------------------------------------------------------
    # Stream session
    # ------------------------------------------------------------------
    STREAM_CONNECTED = "STREAM_CONNECTED"
    FRAGMENT_RECEIVED = "FRAGMENT_RECEIVED"
    FRAGMENT_REJECTED = "FRAGMENT_REJECTED"
    STREAM_COMPLETED = "STREAM_COMPLETED"
    STREAM_FAILED = "STREAM_FAILED"

    # ------------------------------------------------------------------
    # Cache write / decoder
    # ------------------------------------------------------------------
    AUDIO_READY = "AUDIO_READY"
    AUDIO_FAILED = "AUDIO_FAILED"
    PLAYBACK_STATUS_UPDATED = "PLAYBACK_STATUS_UPDATED"

    # ------------------------------------------------------------------
    # User control
    # ------------------------------------------------------------------
    PLAY_PRESSED = "PLAY_PRESSED"
    PAUSE_PRESSED = "PAUSE_PRESSED"
    TOGGLE_PRESSED = "TOGGLE_PRESSED"
    SEEK_REQUESTED = "SEEK_REQUESTED"
    NEXT_REQUESTED = "NEXT_REQUESTED"
    PREVIOUS_REQUESTED = "PREVIOUS_REQUESTED"

    # ------------------------------------------------------------------
    # Play queue
    # ------------------------------------------------------------------
    QUEUE_INFO_RECEIVED = "QUEUE_INFO_RECEIVED"
    QUEUE_MOVE_FAILED = "QUEUE_MOVE_FAILED"


# =============================================================================
# Base Event
# =============================================================================

@dataclass(frozen=True)
class Event:
    """
    Base event type.

    All events must specify:
    - event_type: discriminant
    - ts_ms: timestamp provided by the source (or fake in tests)
    """

    event_type: EventType
    ts_ms: int


@dataclass(frozen=True)
class RunEvent(Event):
    """
    Base class for events scoped to one stream session.

    The reducer MUST ignore events whose run_id does not match the
    current stream run.
    """

    run_id: int


# =============================================================================
# Playback Requests
# =============================================================================

@dataclass(frozen=True)
class PlayRequested(Event):
    """A caller asked to play `track` (UI, queue move or deep link)."""
    track: Track


# =============================================================================
# Stream Session Events
# =============================================================================

@dataclass(frozen=True)
class StreamConnected(RunEvent):
    """Connection established and startStream sent."""


@dataclass(frozen=True)
class FragmentReceived(RunEvent):
    """
    One audioChunk arrived.

    fragment is the raw, unvalidated payload.
    """
    fragment: Any


@dataclass(frozen=True)
class FragmentRejected(RunEvent):
    """A received fragment failed validation and was not buffered."""
    reason: str


@dataclass(frozen=True)
class StreamCompleted(RunEvent):
    """Server signalled streamComplete."""


@dataclass(frozen=True)
class StreamFailed(RunEvent):
    """
    Transport error: connect failure, server error event, or connection
    lost before completion.
    """
    message: str | None = None


# =============================================================================
# Cache Write / Decoder Events
# =============================================================================

@dataclass(frozen=True)
class AudioReady(RunEvent):
    """Reassembled audio written and loaded by the decoder (paused)."""
    duration_ms: int = 0


@dataclass(frozen=True)
class AudioFailed(RunEvent):
    """
    Cache write or decoder load failed.

    stage: "write" | "decode"
    """
    stage: str
    message: str


@dataclass(frozen=True)
class PlaybackStatusUpdated(RunEvent):
    """Periodic decoder status report for the live handle."""
    position_ms: int
    duration_ms: int
    is_playing: bool
    did_just_finish: bool = False


# =============================================================================
# User Control Events
# =============================================================================

@dataclass(frozen=True)
class PlayPressed(Event):
    """User asked to start / resume playback."""


@dataclass(frozen=True)
class PausePressed(Event):
    """User asked to pause playback."""


@dataclass(frozen=True)
class TogglePressed(Event):
    """User pressed the play/pause toggle."""


@dataclass(frozen=True)
class SeekRequested(Event):
    """User moved the position slider."""
    position_ms: int


@dataclass(frozen=True)
class NextRequested(Event):
    """User asked for the next queue entry."""


@dataclass(frozen=True)
class PreviousRequested(Event):
    """User asked for the previous queue entry (or a restart)."""


# =============================================================================
# Play Queue Events
# =============================================================================

@dataclass(frozen=True)
class QueueInfoReceived(RunEvent):
    """Queue size known for the session's track."""
    single_item: bool


@dataclass(frozen=True)
class QueueMoveFailed(Event):
    """The queue service could not move in `direction`."""
    direction: QueueDirection
    message: str
