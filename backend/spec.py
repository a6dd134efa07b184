"""
PLAYER CONSTANTS
----------------
Single source of truth for all behavioral invariants of the player core.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from typing import Final

# =============================================================================
# Stream wire protocol (JSON envelope over WebSocket)
# =============================================================================

# Client -> Server
EVENT_START_STREAM: Final[str] = "startStream"

# Server -> Client
EVENT_AUDIO_CHUNK: Final[str] = "audioChunk"
EVENT_STREAM_COMPLETE: Final[str] = "streamComplete"
EVENT_STREAM_ERROR: Final[str] = "error"

STREAM_ENVELOPE_EVENT_KEY: Final[str] = "event"
STREAM_ENVELOPE_DATA_KEY: Final[str] = "data"

# Payload field names inside startStream / audioChunk
START_STREAM_SONG_ID_KEY: Final[str] = "songId"
START_STREAM_SONG_NAME_KEY: Final[str] = "songName"
AUDIO_CHUNK_DATA_KEY: Final[str] = "data"
STREAM_ERROR_MESSAGE_KEY: Final[str] = "message"

# =============================================================================
# Fragment validation
# =============================================================================

# Alphabet accepted for a single fragment (standard base64, optional padding)
FRAGMENT_BASE64_PATTERN: Final[str] = r"^[A-Za-z0-9+/]+={0,2}$"

# =============================================================================
# Cache file
# =============================================================================

# One fixed filename per app, overwritten per track.
CACHE_FILENAME: Final[str] = "audio.mp3"

# =============================================================================
# Persisted now-playing store
# =============================================================================

STORE_KEY_LAST_SONG: Final[str] = "lastSong"
STORE_KEY_LAST_SONG_ID: Final[str] = "lastSongId"
STORE_KEY_IS_PLAYING: Final[str] = "isPlaying"

STORE_TRUE: Final[str] = "true"
STORE_FALSE: Final[str] = "false"

# =============================================================================
# Playback status polling / queue navigation
# =============================================================================

STATUS_POLL_INTERVAL_MS_DEFAULT: Final[int] = 500

# "previous" restarts the current track once playback is past this fraction
# of its duration; otherwise it moves to the previous queue entry.
PREVIOUS_RESTART_THRESHOLD: Final[float] = 0.2

# =============================================================================
# Timeouts
# =============================================================================

# Handshake only; CONNECTING/STREAMING have no overall timeout.
STREAM_OPEN_TIMEOUT_S_DEFAULT: Final[float] = 10.0
QUEUE_HTTP_TIMEOUT_S_DEFAULT: Final[float] = 10.0

# =============================================================================
# User-facing alert text
# =============================================================================

ALERT_TITLE_ERROR: Final[str] = "Error"
ALERT_CONNECTION_ERROR: Final[str] = "Connection error"
ALERT_AUDIO_PROCESSING_FAILED: Final[str] = "Could not process the audio"
ALERT_INVALID_FRAGMENT: Final[str] = "Received corrupted audio data"
ALERT_NEXT_FAILED: Final[str] = "Could not advance to the next song"
ALERT_PREVIOUS_FAILED: Final[str] = "Could not go back to the previous song"
