# pylint: disable=missing-module-docstring,missing-function-docstring

import json
from typing import Any

import pytest

from observability import logger


def test_log_event_emits_valid_jsonl(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    captured: list[str] = []
    monkeypatch.setattr(logger, "_print", captured.append)

    payload: dict[str, Any] = {
        "ts_ms": 42,
        "event_type": "TEST",
        "value": 123,
    }

    logger.log_event(payload)

    assert len(captured) == 1
    assert "\n" not in captured[0]
    assert json.loads(captured[0]) == payload


def test_log_event_stamps_missing_timestamp(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    captured: list[str] = []
    monkeypatch.setattr(logger, "_print", captured.append)
    monkeypatch.setattr(logger, "now_ms", lambda: 1_700_000_000_000)

    payload = {"event_type": "TEST"}
    logger.log_event(payload)

    assert json.loads(captured[0])["ts_ms"] == 1_700_000_000_000
    # caller's mapping is left untouched
    assert "ts_ms" not in payload


def test_unserializable_payload_falls_back(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    captured: list[str] = []
    monkeypatch.setattr(logger, "_print", captured.append)

    logger.log_event({"ts_ms": 7, "event_type": "TEST", "blob": object()})

    decoded = json.loads(captured[0])
    assert decoded["event_type"] == "LOGGER_SERIALIZATION_ERROR"
    assert decoded["ts_ms"] == 7
    assert "TEST" in decoded["original_event_repr"]
