"""
Playback state mirror.

Publishes the "currently playing" record to the persisted key-value store
so readers outside the player core can render a now-playing affordance and
deep-link back into the player without sharing memory with it.

Keys (string values):
- lastSong    track display name
- lastSongId  string-encoded integer id
- isPlaying   "true" / "false"

Consistency: single writer (the runtime), eventual for readers. A reader
may see the previous record between a transition and its mirror write.
"""

from __future__ import annotations

from dataclasses import dataclass

from playback.store import KeyValueStore
from playback.track import Track
from spec import (
    STORE_FALSE,
    STORE_KEY_IS_PLAYING,
    STORE_KEY_LAST_SONG,
    STORE_KEY_LAST_SONG_ID,
    STORE_TRUE,
)


@dataclass(frozen=True)
class PlaybackStateRecord:
    """
    Parsed now-playing record.

    last_track_id is None when the stored value is missing or not an
    integer; is_playing is True only for the exact string "true".
    """
    last_track_name: str | None
    last_track_id: int | None
    is_playing: bool

    @property
    def has_track(self) -> bool:
        return bool(self.last_track_name)

    def resume_target(self) -> Track | None:
        """
        Track to reopen the player with, or None when the record cannot
        identify one (no name or no valid id).
        """
        if not self.last_track_name or self.last_track_id is None:
            return None
        return Track(name=self.last_track_name, track_id=self.last_track_id)

    def to_dict(self) -> dict[str, object]:
        return {
            "last_track_name": self.last_track_name,
            "last_track_id": self.last_track_id,
            "is_playing": self.is_playing,
        }


def _parse_int(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


class PlaybackStateMirror:
    """Writes and reads the now-playing record."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def sync(self, track_name: str | None, track_id: int | None, is_playing: bool) -> None:
        """
        Persist one transition of the active playback.

        With track_name None only isPlaying is written. A named track without
        an id clears lastSongId so the record never pairs a name with
        another track's id.
        """
        items: dict[str, str] = {
            STORE_KEY_IS_PLAYING: STORE_TRUE if is_playing else STORE_FALSE,
        }
        remove: tuple[str, ...] = ()

        if track_name:
            items[STORE_KEY_LAST_SONG] = track_name
            if track_id is not None:
                items[STORE_KEY_LAST_SONG_ID] = str(track_id)
            else:
                remove = (STORE_KEY_LAST_SONG_ID,)

        self._store.set_many(items, remove=remove)

    def read(self) -> PlaybackStateRecord:
        values = self._store.get_many(
            STORE_KEY_LAST_SONG,
            STORE_KEY_LAST_SONG_ID,
            STORE_KEY_IS_PLAYING,
        )
        return PlaybackStateRecord(
            last_track_name=values[STORE_KEY_LAST_SONG] or None,
            last_track_id=_parse_int(values[STORE_KEY_LAST_SONG_ID]),
            is_playing=values[STORE_KEY_IS_PLAYING] == STORE_TRUE,
        )
