"""
Runtime execution shell for the player core.

Responsibilities:
- Own player state
- Call pure reducer
- Execute commands with side effects (stream sessions, reassembly, cache
  file, decoder, mirror, play queue)
- Poll decoder status and convert it into events
- Publish alerts and state snapshots to the control channel
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import TYPE_CHECKING, Any

from adapters.decoder.base import DecoderError
from adapters.queue.rest_queue import QueueError
from audio.cache_writer import CacheWriteError
from audio.reassembly import ChunkReassembler
from observability.logger import log_event, now_ms
from observability.metrics import discard_timer, start_timer, stop_timer, timed
from orchestrator.commands import (
    AppendFragment,
    CheckQueue,
    CloseStream,
    Command,
    DiscardFragments,
    FinalizeAudio,
    LogEvent,
    MirrorState,
    MoveQueue,
    NotifyUser,
    OpenStream,
    PausePlayback,
    ReleasePlayback,
    SeekPlayback,
    StartPlayback,
    StartStatusPolling,
    StopStatusPolling,
)
from orchestrator.events import (
    AudioFailed,
    AudioReady,
    Event,
    EventType,
    FragmentRejected,
    PlaybackStatusUpdated,
    PlayRequested,
    QueueInfoReceived,
    QueueMoveFailed,
    StreamConnected,
    StreamFailed,
)
from orchestrator.reducer import reduce
from orchestrator.state_dataclass import PlayerState
from playback.handle import PlaybackHandle
from protocol.fragments import InvalidFragment
from session.session_guard import SessionGuard
from session.stream_session import StreamOpenError

if TYPE_CHECKING:
    from orchestrator.runtime_context import RuntimeExecutionContext


class Runtime:
    """
    Runtime execution boundary for the player core.

    Responsibilities:
    - Own the authoritative player state
    - Act as the universal event sink (gateway requests, stream sessions,
      status polling)
    - Invoke the pure reducer deterministically
    - Execute emitted commands with side effects

    Guarantees:
    - Events are processed one at a time, under a lock
    - Reducer is called exactly once per event
    - Commands are executed in reducer-emitted order; a command's
      follow-up event is queued and processed after the remaining commands
      of the current event, in the same pass
    - At most one stream session and one playback handle are live
      (enforced by SessionGuard)
    """

    def __init__(
        self,
        *,
        initial_state: PlayerState,
        context: RuntimeExecutionContext,
    ) -> None:
        self._state = initial_state
        self._ctx = context
        self._guard = SessionGuard()
        self._lock = asyncio.Lock()
        self._poll_task: asyncio.Task[None] | None = None
        self._stream_timers: dict[int, str] = {}
        self._published: dict[str, Any] | None = None

    @property
    def state(self) -> PlayerState:
        """
        Return the current immutable player state.

        State is only replaced internally by Runtime via the reducer.
        """
        return self._state

    @property
    def guard(self) -> SessionGuard:
        return self._guard

    def snapshot(self) -> dict[str, Any]:
        """JSON-safe view of the player state for the client surface."""
        s = self._state
        return {
            "state": s.state.value,
            "run_id": s.run_id,
            "track": (
                {"name": s.track.name, "id": s.track.track_id}
                if s.track is not None
                else None
            ),
            "is_playing": s.is_playing,
            "handle_ready": s.handle_ready,
            "position_ms": s.position_ms,
            "duration_ms": s.duration_ms,
            "single_item_queue": s.single_item_queue,
            "last_error": s.last_error,
        }

    async def handle_event(self, event: Event) -> None:
        """
        Process one event and every follow-up event it causes.

        This method is the *only* entry point for events affecting player
        state. All event sources converge here:
        - Gateway (play requests, user controls)
        - Stream sessions (fragments, completion, errors)
        - Status polling

        Safe to call concurrently; callers are serialized by the lock.
        """
        async with self._lock:
            pending: deque[Event] = deque([event])
            while pending:
                current = pending.popleft()
                self._state, commands = reduce(self._state, current)

                for cmd in commands:
                    follow_up = await self._execute_command(cmd)
                    if follow_up is not None:
                        pending.append(follow_up)

            self._publish_state()

    async def shutdown(self) -> None:
        """
        Clean shutdown of the runtime.

        Stops polling, closes the live stream session and releases the
        playback handle. The mirror is left reporting "not playing".
        """
        async with self._lock:
            await self._stop_status_polling()

            was_playing = self._guard.handle is not None and self._state.is_playing
            await self._guard.release_all()

            for timer_id in self._stream_timers.values():
                discard_timer(timer_id)
            self._stream_timers.clear()

            if was_playing:
                await self._sync_mirror(None, None, False)

            self._log("RUNTIME_SHUTDOWN")

    # ------------------------------------------------------------------
    # Command execution (side effects)
    # ------------------------------------------------------------------

    async def _execute_command(self, cmd: Command) -> Event | None:
        """Execute a single command; returns an optional follow-up event."""

        if isinstance(cmd, LogEvent):
            log_event({
                **cmd.event,
                "session_id": self._ctx.session_id,
            })

        # ------------------------------------------------------------
        # Stream session
        # ------------------------------------------------------------

        elif isinstance(cmd, OpenStream):
            return await self._open_stream(cmd)

        elif isinstance(cmd, CloseStream):
            timer_id = self._stream_timers.pop(cmd.run_id, None)
            if timer_id is not None:
                discard_timer(timer_id)
            await self._guard.release_stream(cmd.run_id)

        # ------------------------------------------------------------
        # Reassembly
        # ------------------------------------------------------------

        elif isinstance(cmd, AppendFragment):
            reassembler = self._guard.reassembler_for(cmd.run_id)
            if reassembler is None:
                return None
            try:
                reassembler.on_fragment(cmd.fragment)
            except InvalidFragment as e:
                self._log("FRAGMENT_REJECTED", {"reason": str(e)}, run_id=cmd.run_id)
                return FragmentRejected(
                    event_type=EventType.FRAGMENT_REJECTED,
                    ts_ms=now_ms(),
                    run_id=cmd.run_id,
                    reason=str(e),
                )

        elif isinstance(cmd, DiscardFragments):
            self._guard.discard_fragments(cmd.run_id)

        elif isinstance(cmd, FinalizeAudio):
            return await self._finalize_audio(cmd)

        # ------------------------------------------------------------
        # Playback handle
        # ------------------------------------------------------------

        elif isinstance(cmd, ReleasePlayback):
            if await self._guard.release_handle():
                self._log("PLAYBACK_RELEASED")

        elif isinstance(cmd, StartPlayback):
            await self._control_handle("play")

        elif isinstance(cmd, PausePlayback):
            await self._control_handle("pause")

        elif isinstance(cmd, SeekPlayback):
            await self._control_handle("seek", cmd.position_ms)

        elif isinstance(cmd, StartStatusPolling):
            await self._stop_status_polling()
            self._poll_task = asyncio.create_task(self._poll_status(cmd.run_id))

        elif isinstance(cmd, StopStatusPolling):
            await self._stop_status_polling()

        # ------------------------------------------------------------
        # Mirror / control channel
        # ------------------------------------------------------------

        elif isinstance(cmd, MirrorState):
            await self._sync_mirror(cmd.track_name, cmd.track_id, cmd.is_playing)

        elif isinstance(cmd, NotifyUser):
            self._ctx.enqueue_control({
                "type": "ALERT",
                "title": cmd.title,
                "message": cmd.message,
                "ts_ms": now_ms(),
            })

        # ------------------------------------------------------------
        # Play queue
        # ------------------------------------------------------------

        elif isinstance(cmd, CheckQueue):
            return await self._check_queue(cmd)

        elif isinstance(cmd, MoveQueue):
            return await self._move_queue(cmd)

        else:
            raise TypeError(f"Unhandled command: {cmd!r}")

        return None

    # ------------------------------------------------------------------
    # Stream / audio pipeline
    # ------------------------------------------------------------------

    async def _open_stream(self, cmd: OpenStream) -> Event:
        stream = self._ctx.stream_factory(
            run_id=cmd.run_id,
            track=cmd.track,
            emit_event=self.handle_event,
        )
        await self._guard.replace(stream, ChunkReassembler(track=cmd.track))
        self._stream_timers[cmd.run_id] = start_timer("stream_open_to_complete")

        try:
            await stream.open()
        except StreamOpenError as e:
            self._log("STREAM_OPEN_FAILED", {"error": str(e)}, run_id=cmd.run_id)
            return StreamFailed(
                event_type=EventType.STREAM_FAILED,
                ts_ms=now_ms(),
                run_id=cmd.run_id,
                message=None,
            )

        return StreamConnected(
            event_type=EventType.STREAM_CONNECTED,
            ts_ms=now_ms(),
            run_id=cmd.run_id,
        )

    async def _finalize_audio(self, cmd: FinalizeAudio) -> Event | None:
        reassembler = self._guard.reassembler_for(cmd.run_id)
        if reassembler is None:
            return self._audio_failed(cmd.run_id, "reassemble", "no live buffer")

        audio = reassembler.on_complete()

        timer_id = self._stream_timers.pop(cmd.run_id, None)
        if timer_id is not None:
            stop_timer(
                timer_id,
                session_id=self._ctx.session_id,
                run_id=cmd.run_id,
                details={"bytes": audio.byte_length, "fragments": audio.fragment_count},
            )

        self._log(
            "AUDIO_REASSEMBLED",
            {
                "bytes": audio.byte_length,
                "fragments": audio.fragment_count,
                "dropped": audio.dropped_count,
            },
            run_id=cmd.run_id,
        )

        try:
            path = await self._ctx.cache_writer.persist(audio, session_id=self._ctx.session_id)
        except CacheWriteError as e:
            return self._audio_failed(cmd.run_id, "write", str(e))

        try:
            with timed("decoder_load", session_id=self._ctx.session_id, run_id=cmd.run_id):
                handle = await PlaybackHandle.load(
                    decoder_factory=self._ctx.decoder_factory,
                    track=cmd.track,
                    path=path,
                )
        except DecoderError as e:
            return self._audio_failed(cmd.run_id, "decode", str(e))

        try:
            status = await handle.status()
        except DecoderError as e:
            await handle.release()
            return self._audio_failed(cmd.run_id, "decode", str(e))

        self._guard.install_handle(handle)

        return AudioReady(
            event_type=EventType.AUDIO_READY,
            ts_ms=now_ms(),
            run_id=cmd.run_id,
            duration_ms=status.duration_ms,
        )

    def _audio_failed(self, run_id: int, stage: str, message: str) -> AudioFailed:
        self._log("AUDIO_FAILED", {"stage": stage, "error": message}, run_id=run_id)
        return AudioFailed(
            event_type=EventType.AUDIO_FAILED,
            ts_ms=now_ms(),
            run_id=run_id,
            stage=stage,
            message=message,
        )

    async def _control_handle(self, action: str, position_ms: int = 0) -> None:
        handle = self._guard.handle
        if handle is None:
            self._log("PLAYBACK_CONTROL_SKIPPED", {"action": action})
            return

        try:
            if action == "play":
                await handle.play()
            elif action == "pause":
                await handle.pause()
            else:
                await handle.seek(position_ms)
        except DecoderError as e:
            self._log("PLAYBACK_CONTROL_FAILED", {"action": action, "error": str(e)})

    # ------------------------------------------------------------------
    # Status polling
    # ------------------------------------------------------------------

    async def _poll_status(self, run_id: int) -> None:
        interval_s = self._ctx.status_poll_interval_ms / 1000

        while self._poll_task is asyncio.current_task():
            await asyncio.sleep(interval_s)

            handle = self._guard.handle
            if handle is None:
                return

            try:
                status = await handle.status()
            except DecoderError as e:
                self._log("STATUS_POLL_FAILED", {"error": str(e)}, run_id=run_id)
                continue

            await self.handle_event(
                PlaybackStatusUpdated(
                    event_type=EventType.PLAYBACK_STATUS_UPDATED,
                    ts_ms=now_ms(),
                    run_id=run_id,
                    position_ms=status.position_ms,
                    duration_ms=status.duration_ms,
                    is_playing=status.is_playing,
                    did_just_finish=status.did_just_finish,
                )
            )

    async def _stop_status_polling(self) -> None:
        """
        Stop the poll task. When called from inside the poll task itself
        the loop is only detached; it exits after the current event.
        """
        task = self._poll_task
        self._poll_task = None
        if task is None or task is asyncio.current_task() or task.done():
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    # ------------------------------------------------------------------
    # Play queue
    # ------------------------------------------------------------------

    async def _check_queue(self, cmd: CheckQueue) -> Event | None:
        client = self._ctx.queue_client
        if client is None:
            return None

        try:
            single = await asyncio.to_thread(client.is_single_item)
        except QueueError as e:
            self._log("QUEUE_CHECK_FAILED", {"error": str(e)}, run_id=cmd.run_id)
            return None

        return QueueInfoReceived(
            event_type=EventType.QUEUE_INFO_RECEIVED,
            ts_ms=now_ms(),
            run_id=cmd.run_id,
            single_item=single,
        )

    async def _move_queue(self, cmd: MoveQueue) -> Event | None:
        client = self._ctx.queue_client
        if client is None:
            self._log("QUEUE_UNAVAILABLE", {"direction": cmd.direction.value})
            return None

        try:
            track = await asyncio.to_thread(client.step, cmd.direction)
        except QueueError as e:
            return QueueMoveFailed(
                event_type=EventType.QUEUE_MOVE_FAILED,
                ts_ms=now_ms(),
                direction=cmd.direction,
                message=str(e),
            )

        self._log("QUEUE_MOVED", {"direction": cmd.direction.value, **track.log_fields()})
        return PlayRequested(
            event_type=EventType.PLAY_REQUESTED,
            ts_ms=now_ms(),
            track=track,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _sync_mirror(
        self, track_name: str | None, track_id: int | None, is_playing: bool
    ) -> None:
        """Write the now-playing record off the event loop; awaited, so it lands before the event completes."""
        try:
            await asyncio.to_thread(self._ctx.mirror.sync, track_name, track_id, is_playing)
        except OSError as e:
            self._log("MIRROR_WRITE_FAILED", {"error": str(e)})

    def _publish_state(self) -> None:
        """Push a STATE control message when the user-visible state changed."""
        snapshot = self.snapshot()
        visible = {k: v for k, v in snapshot.items() if k != "position_ms"}
        if visible == self._published:
            return
        self._published = visible
        self._ctx.enqueue_control({"type": "STATE", "ts_ms": now_ms(), **snapshot})

    def _log(
        self,
        event: str,
        details: dict[str, Any] | None = None,
        *,
        run_id: int | None = None,
    ) -> None:
        log_event({
            "ts_ms": now_ms(),
            "event_type": event,
            "session_id": self._ctx.session_id,
            "run_id": run_id if run_id is not None else self._state.run_id,
            "details": details or {},
        })
