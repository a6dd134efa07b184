# backend/audio/reassembly.py
"""
Chunk reassembly for streamed audio.

Requirements:
- Fragments buffered strictly in arrival order (append-only)
- Invalid fragments rejected, never appended
- No reordering, no deduplication, no sequence checks
- Payload materialized only on completion, byte-exact concatenation
- Buffer cleared after completion or discard
"""

from __future__ import annotations

from dataclasses import dataclass

from playback.track import Track
from protocol.fragments import InvalidFragment, decode_fragment, validate_fragment


@dataclass(frozen=True)
class ReassembledAudio:
    """
    Single contiguous payload built from one completed stream session.

    data:
        Concatenation of every accepted fragment's decoded bytes, in
        arrival order.

    source_track:
        Track the session was opened for.

    fragment_count / dropped_count:
        Accepted and rejected fragment counts (observability only).
    """
    data: bytes
    source_track: Track
    fragment_count: int = 0
    dropped_count: int = 0

    @property
    def byte_length(self) -> int:
        return len(self.data)


class ChunkReassembler:
    """
    Append-only fragment buffer for one stream session.

    The reassembler trusts transport ordering completely; whatever order
    on_fragment() is called in is the order of the final payload.
    """

    def __init__(self, *, track: Track) -> None:
        self._track = track
        self._chunks: list[str] = []
        self.rejected: int = 0

    @property
    def track(self) -> Track:
        return self._track

    # -------------------------
    # Core operations
    # -------------------------

    def on_fragment(self, raw: object) -> None:
        """
        Validate and buffer one fragment.

        Raises:
            InvalidFragment if validation fails. The fragment is not
            appended and the rejection is counted.
        """
        try:
            text = validate_fragment(raw)
        except InvalidFragment:
            self.rejected += 1
            raise

        self._chunks.append(text)

    def on_complete(self) -> ReassembledAudio:
        """
        Decode and concatenate all buffered fragments, then clear the buffer.
        """
        data = b"".join(decode_fragment(chunk) for chunk in self._chunks)

        audio = ReassembledAudio(
            data=data,
            source_track=self._track,
            fragment_count=len(self._chunks),
            dropped_count=self.rejected,
        )

        self.clear()
        return audio

    def clear(self) -> None:
        """
        Drop all buffered fragments.

        Used on completion and on session teardown / failure.
        """
        self._chunks.clear()
        self.rejected = 0

    # -------------------------
    # Introspection helpers
    # -------------------------

    def __len__(self) -> int:
        return len(self._chunks)

    def is_empty(self) -> bool:
        """Check if no fragment is buffered."""
        return not self._chunks

    def snapshot(self) -> dict[str, int | str]:
        """
        Lightweight snapshot for logging.
        """
        return {
            "track_key": self._track.key,
            "fragments": len(self._chunks),
            "rejected": self.rejected,
        }
