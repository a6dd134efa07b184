# pylint: disable=missing-module-docstring,missing-function-docstring
import asyncio
from pathlib import Path

import pytest

from adapters.decoder.base import AudioDecoder, PlaybackStatus
from audio.reassembly import ChunkReassembler
from playback.handle import PlaybackHandle
from playback.track import Track
from protocol.fragments import encode_fragment
from session.session_guard import SessionGuard, SessionGuardError


SONG_A = Track(name="Song A", track_id=1)
SONG_B = Track(name="Song B", track_id=2)


class FakeStream:
    def __init__(self, run_id: int, track: Track, journal: list[str]) -> None:
        self.run_id = run_id
        self.track = track
        self._journal = journal

    async def open(self) -> None:
        self._journal.append(f"open:{self.run_id}")

    async def close(self) -> None:
        self._journal.append(f"close:{self.run_id}")


class NullDecoder(AudioDecoder):
    def __init__(self, journal: list[str]) -> None:
        self._journal = journal

    async def load(self, path: Path) -> None:
        return None

    async def play(self) -> None:
        return None

    async def pause(self) -> None:
        return None

    async def seek(self, position_ms: int) -> None:
        return None

    async def status(self) -> PlaybackStatus:
        return PlaybackStatus.unloaded()

    async def unload(self) -> None:
        self._journal.append("unload")


def _handle(track: Track, journal: list[str]) -> PlaybackHandle:
    return PlaybackHandle(decoder=NullDecoder(journal), track=track, path=Path("/tmp/audio.mp3"))


def test_install_while_live_raises() -> None:
    journal: list[str] = []
    guard = SessionGuard()
    guard.install_stream(FakeStream(1, SONG_A, journal), ChunkReassembler(track=SONG_A))

    with pytest.raises(SessionGuardError):
        guard.install_stream(FakeStream(2, SONG_B, journal), ChunkReassembler(track=SONG_B))

    guard.install_handle(_handle(SONG_A, journal))
    with pytest.raises(SessionGuardError):
        guard.install_handle(_handle(SONG_B, journal))


def test_replace_tears_down_handle_and_stream_first() -> None:
    journal: list[str] = []
    guard = SessionGuard()
    old_buffer = ChunkReassembler(track=SONG_A)
    old_buffer.on_fragment(encode_fragment(b"abc"))

    guard.install_stream(FakeStream(1, SONG_A, journal), old_buffer)
    guard.install_handle(_handle(SONG_A, journal))

    asyncio.run(guard.replace(FakeStream(2, SONG_B, journal), ChunkReassembler(track=SONG_B)))

    assert journal == ["unload", "close:1"]
    assert old_buffer.is_empty()
    assert guard.handle is None
    assert guard.stream_run_id == 2


def test_release_stream_only_for_matching_run() -> None:
    journal: list[str] = []
    guard = SessionGuard()
    guard.install_stream(FakeStream(5, SONG_A, journal), ChunkReassembler(track=SONG_A))

    assert asyncio.run(guard.release_stream(4)) is False
    assert guard.stream is not None

    assert asyncio.run(guard.release_stream(5)) is True
    assert guard.stream is None
    assert journal == ["close:5"]


def test_reassembler_for_checks_run() -> None:
    guard = SessionGuard()
    buffer = ChunkReassembler(track=SONG_A)
    guard.install_stream(FakeStream(1, SONG_A, []), buffer)

    assert guard.reassembler_for(1) is buffer
    assert guard.reassembler_for(2) is None


def test_matches_by_track_key() -> None:
    guard = SessionGuard()
    guard.install_handle(_handle(SONG_A, []))

    assert guard.matches(Track(name="other display name", track_id=1))
    assert not guard.matches(SONG_B)
    assert not guard.matches(Track(name="1"))
