"""
Authoritative stream session state enumeration.

Rules:
- This enum defines ONLY the control-plane states.
- No behavior, no helper methods, no side effects.
- Transitions are defined exclusively in the reducer.
"""

from __future__ import annotations

from enum import Enum


class State(str, Enum):
    """
    Process-wide control states of the streaming playback core.

    These states represent the lifecycle of the current stream session,
    NOT connection status and NOT decoder playback (play/pause).
    """

    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    STREAMING = "STREAMING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"
