"""
Connection status tracking for stream sessions.

Connection lifecycle is tracked separately from the reducer state:
connection_status: DOWN | CONNECTING | UP

This is pure data owned by StreamSession, not by orchestrator state.
"""
from enum import Enum

class ConnectionStatus(Enum):
    """
    Connection lifecycle status of one stream WebSocket.

    Independent of the reducer State enum: a COMPLETE session is DOWN once
    its connection has been closed.
    """
    DOWN = "DOWN"           # Not connected / closed
    CONNECTING = "CONNECTING"  # Handshake in progress (no retry)
    UP = "UP"              # startStream sent, receiving
