# backend/protocol/fragments.py
"""
Fragment encoding helpers for streamed audio.

Each `audioChunk` carries one fragment: a text string in the standard
base64 alphabet. Fragments carry no sequence number; ordering is the
arrival order of the transport.

Usage example:

    try:
        text = validate_fragment(raw)
    except InvalidFragment as e:
        log_event({"event_type": "FRAGMENT_REJECTED", "error": str(e)})
    else:
        chunks.append(text)

    pcm = decode_fragment(text)
"""

from __future__ import annotations

import base64
import binascii
import re

from spec import FRAGMENT_BASE64_PATTERN


# -------------------------
# Exceptions
# -------------------------

class FragmentError(Exception):
    """Base class for fragment encoding errors."""


class InvalidFragment(FragmentError):
    """
    Raised when a fragment is not valid base64 text.

    The fragment is unsafe to append: it would corrupt the reassembled
    payload at an unknown offset.
    """


_FRAGMENT_RE = re.compile(FRAGMENT_BASE64_PATTERN)


# -------------------------
# Validation / decoding
# -------------------------

def validate_fragment(raw: object) -> str:
    """
    Normalize and validate a raw fragment.

    Returns the trimmed fragment text.

    Raises:
        InvalidFragment if the fragment is not a string, is empty after
        trimming, uses characters outside the base64 alphabet, or does not
        decode (bad padding / length).
    """
    if not isinstance(raw, str):
        raise InvalidFragment(f"fragment must be str, got {type(raw).__name__}")

    text = raw.strip()
    if not _FRAGMENT_RE.match(text):
        raise InvalidFragment(f"fragment outside base64 alphabet (len={len(text)})")

    try:
        base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidFragment(f"fragment does not decode: {e}") from e

    return text


def decode_fragment(text: str) -> bytes:
    """
    Decode a previously validated fragment into raw bytes.
    """
    return base64.b64decode(text, validate=True)


def encode_fragment(data: bytes) -> str:
    """
    Encode raw bytes as a fragment (used by test servers and fixtures).
    """
    return base64.b64encode(data).decode("ascii")
