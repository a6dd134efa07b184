"""
Track primitives.

Pure data containers only.
No behavior beyond identity derivation.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Track:
    """
    Identity of a song requested for playback.

    track_id:
        Server-side song id. Optional: some entry points only know the
        display name.

    name:
        Display name shown to the user and mirrored as `lastSong`.
    """
    name: str
    track_id: int | None = None

    @property
    def key(self) -> str:
        """
        Opaque identifier used for singleton comparison.

        The id wins when present; two requests for the same id with a
        different display name are the same track. Id keys and name keys
        never collide, so a track named "2" is not the track with id 2.
        """
        if self.track_id is not None:
            return f"id:{self.track_id}"
        return f"name:{self.name}"

    def log_fields(self) -> dict[str, object]:
        """Standard logging fields for this track."""
        return {"track_key": self.key, "track_name": self.name, "track_id": self.track_id}
