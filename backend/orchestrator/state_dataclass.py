"""
Authoritative player state container.

Rules:
- This dataclass is a pure data model.
- It contains ALL state the reducer may ever need.
- No behavior, no helpers, no derived logic.
"""
from __future__ import annotations

from dataclasses import dataclass

from orchestrator.enums.policy import InvalidFragmentPolicy
from orchestrator.enums.state import State
from playback.track import Track


@dataclass(frozen=True)
class PlayerState:
    """Immutable snapshot of all orchestrator-owned player state."""

    # ------------------------------------------------------------------
    # Control state
    # ------------------------------------------------------------------
    state: State = State.IDLE
    policy: InvalidFragmentPolicy = InvalidFragmentPolicy.DROP

    # ------------------------------------------------------------------
    # Stream run tracking
    # ------------------------------------------------------------------
    # Monotonic; bumped on every new stream session. Events carrying any
    # other run_id are stale.
    run_id: int = 0

    # Track of the current (or last) stream session.
    track: Track | None = None

    fragments_received: int = 0
    fragments_rejected: int = 0

    # ------------------------------------------------------------------
    # Playback handle
    # ------------------------------------------------------------------
    # True iff a PlaybackHandle for `track` is loaded.
    handle_ready: bool = False
    is_playing: bool = False
    position_ms: int = 0
    duration_ms: int = 0

    # ------------------------------------------------------------------
    # Play queue
    # ------------------------------------------------------------------
    single_item_queue: bool = False

    # ------------------------------------------------------------------
    # Error handling
    # ------------------------------------------------------------------
    last_error: str | None = None
