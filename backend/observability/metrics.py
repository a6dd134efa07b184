"""
Metrics and timing helpers for observability.

Responsibilities:
- Measure durations using monotonic time (immune to clock changes)
- Emit metrics as JSONL events via observability.logger
- Never aggregate: one metric = one log event
- Provide safe APIs that prevent timer leaks

Metrics emitted by the player core:
- stream_open_to_complete: connect -> streamComplete for one session
- cache_write: reassembled payload -> cache file
- decoder_load: cache file -> loaded PlaybackHandle
"""

from __future__ import annotations

import time
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

from observability import logger


# -----------------------------------------------------------------------------
# Internal timer storage
# -----------------------------------------------------------------------------
# timer_id -> (metric_name, start_time_ns)
_active_timers: dict[str, tuple[str, int]] = {}


# -----------------------------------------------------------------------------
# Public API
# -----------------------------------------------------------------------------

def start_timer(name: str) -> str:
    """
    Start a monotonic timer.

    Returns:
        timer_id (str): Opaque ID required to stop the timer later.

    Callers MUST call stop_timer() (or discard_timer()) eventually unless
    using the `timed()` context manager. Timers that span several events,
    such as a whole stream session, cannot use `timed()`.
    """
    timer_id = f"timer_{uuid.uuid4().hex[:12]}"
    _active_timers[timer_id] = (name, time.monotonic_ns())
    return timer_id


def stop_timer(
    timer_id: str,
    *,
    session_id: str | None = None,
    run_id: int | None = None,
    details: dict[str, Any] | None = None,
) -> int | None:
    """
    Stop a previously started timer and emit a metric event.

    Returns:
        duration_ms if the timer existed, else None
    """
    entry = _active_timers.pop(timer_id, None)
    if entry is None:
        return None

    name, start_ns = entry
    duration_ms = (time.monotonic_ns() - start_ns) // 1_000_000

    logger.log_event({
        "ts_ms": logger.now_ms(),
        "event_type": "METRIC_TIMER",
        "metric": name,
        "value_ms": duration_ms,
        "session_id": session_id,
        "run_id": run_id,
        "details": details or {},
    })

    return duration_ms


def discard_timer(timer_id: str) -> None:
    """
    Forget a timer without emitting a metric (session superseded or failed).

    Idempotent.
    """
    _active_timers.pop(timer_id, None)


def active_timer_count() -> int:
    """Number of timers started and not yet stopped or discarded."""
    return len(_active_timers)


# -----------------------------------------------------------------------------
# Safe API: context manager
# -----------------------------------------------------------------------------

@contextmanager
def timed(
    name: str,
    *,
    session_id: str | None = None,
    run_id: int | None = None,
    details: dict[str, Any] | None = None,
) -> Iterator[None]:
    """
    Context manager for measuring durations safely.

    Guarantees:
    - Timer is ALWAYS stopped (no leaks)
    - Metric is emitted exactly once
    - Exceptions inside the block do NOT suppress timing

    Usage:
        with timed("decoder_load", session_id=session_id, run_id=run_id):
            handle = await PlaybackHandle.load(...)
    """
    timer_id = start_timer(name)
    try:
        yield
    finally:
        stop_timer(
            timer_id,
            session_id=session_id,
            run_id=run_id,
            details=details,
        )
