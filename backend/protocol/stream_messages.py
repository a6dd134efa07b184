# backend/protocol/stream_messages.py
"""
JSON envelope codec for the playback stream WebSocket.

Every WebSocket text frame is one JSON object:

    {"event": "<name>", "data": {...}}

- Client -> Server:
    startStream     {"songId": 12, "songName": "Song A"}   (absent fields omitted)

- Server -> Client:
    audioChunk      {"data": "<base64 fragment>"}
    streamComplete  {} or no data
    error           {"message": "..."}

Usage example:

    await ws.send(encode_start_stream(track))

    msg = decode_server_message(text)
    if msg.kind is ServerMessageKind.AUDIO_CHUNK:
        reassembler.on_fragment(msg.fragment)
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

from playback.track import Track
from spec import (
    AUDIO_CHUNK_DATA_KEY,
    EVENT_AUDIO_CHUNK,
    EVENT_START_STREAM,
    EVENT_STREAM_COMPLETE,
    EVENT_STREAM_ERROR,
    START_STREAM_SONG_ID_KEY,
    START_STREAM_SONG_NAME_KEY,
    STREAM_ENVELOPE_DATA_KEY,
    STREAM_ENVELOPE_EVENT_KEY,
    STREAM_ERROR_MESSAGE_KEY,
)


# -------------------------
# Exceptions
# -------------------------

class StreamProtocolError(Exception):
    """Base class for stream envelope errors."""


class MalformedMessage(StreamProtocolError):
    """
    Raised when a frame is not a JSON object with a string event name.

    The frame cannot be attributed to any event and must be dropped.
    """


class UnknownEvent(StreamProtocolError):
    """
    Raised when the envelope names an event this client does not handle.
    """


# -------------------------
# Decoded message
# -------------------------

class ServerMessageKind(str, Enum):
    """Server -> client events understood by the stream session."""
    AUDIO_CHUNK = "AUDIO_CHUNK"
    STREAM_COMPLETE = "STREAM_COMPLETE"
    ERROR = "ERROR"


@dataclass(frozen=True)
class ServerMessage:
    """
    One decoded server -> client event.

    fragment:
        Raw (unvalidated) fragment for AUDIO_CHUNK, else None.
        Validation is the reassembler's job, not the codec's.

    error_message:
        Server-provided message for ERROR (may be None).
    """
    kind: ServerMessageKind
    fragment: Any = None
    error_message: str | None = None


# -------------------------
# Client -> Server
# -------------------------

def encode_start_stream(track: Track) -> str:
    """
    Encode the single `startStream` request sent right after connecting.
    """
    data: dict[str, Any] = {}
    if track.track_id is not None:
        data[START_STREAM_SONG_ID_KEY] = track.track_id
    if track.name:
        data[START_STREAM_SONG_NAME_KEY] = track.name

    return json.dumps(
        {
            STREAM_ENVELOPE_EVENT_KEY: EVENT_START_STREAM,
            STREAM_ENVELOPE_DATA_KEY: data,
        },
        ensure_ascii=False,
        separators=(",", ":"),
    )


# -------------------------
# Server -> Client
# -------------------------

def decode_server_message(payload: str | bytes) -> ServerMessage:
    """
    Decode one server frame.

    Raises:
        MalformedMessage for non-JSON / non-object frames or a missing event.
        UnknownEvent for event names outside this protocol.
    """
    try:
        obj = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedMessage(f"invalid JSON: {e}") from e

    if not isinstance(obj, dict):
        raise MalformedMessage(f"envelope must be an object, got {type(obj).__name__}")

    event = obj.get(STREAM_ENVELOPE_EVENT_KEY)
    if not isinstance(event, str):
        raise MalformedMessage("envelope missing event name")

    data = obj.get(STREAM_ENVELOPE_DATA_KEY)

    if event == EVENT_AUDIO_CHUNK:
        fragment = data.get(AUDIO_CHUNK_DATA_KEY) if isinstance(data, dict) else None
        return ServerMessage(kind=ServerMessageKind.AUDIO_CHUNK, fragment=fragment)

    if event == EVENT_STREAM_COMPLETE:
        return ServerMessage(kind=ServerMessageKind.STREAM_COMPLETE)

    if event == EVENT_STREAM_ERROR:
        message = None
        if isinstance(data, dict):
            raw_message = data.get(STREAM_ERROR_MESSAGE_KEY)
            message = str(raw_message) if raw_message else None
        elif isinstance(data, str) and data:
            message = data
        return ServerMessage(kind=ServerMessageKind.ERROR, error_message=message)

    raise UnknownEvent(f"unknown stream event: {event}")


def encode_server_message(event: str, data: dict[str, Any] | None = None) -> str:
    """
    Encode a server -> client envelope (used by fake servers in tests).
    """
    obj: dict[str, Any] = {STREAM_ENVELOPE_EVENT_KEY: event}
    if data is not None:
        obj[STREAM_ENVELOPE_DATA_KEY] = data
    return json.dumps(obj, separators=(",", ":"))
