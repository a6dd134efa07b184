# pylint: disable=missing-module-docstring,missing-function-docstring

from pathlib import Path

import pytest

from config import AppConfig
from orchestrator.enums.policy import InvalidFragmentPolicy

_VARS = (
    "ENV",
    "LOG_LEVEL",
    "STREAM_URL",
    "API_BASE_URL",
    "USER_EMAIL",
    "CACHE_DIR",
    "STORE_PATH",
    "INVALID_FRAGMENT_POLICY",
    "STATUS_POLL_INTERVAL_MS",
    "STREAM_OPEN_TIMEOUT_S",
    "QUEUE_HTTP_TIMEOUT_S",
    "MPV_AUDIO_DEVICE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CACHE_DIR", str(tmp_path))

    config = AppConfig.load_from_env()

    assert config.env == "dev"
    assert config.user_email is None
    assert config.cache_dir == tmp_path
    assert config.store_path == tmp_path / "now_playing.json"
    assert config.invalid_fragment_policy is InvalidFragmentPolicy.DROP
    assert config.status_poll_interval_ms == 500
    assert config.mpv_audio_device is None


def test_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("USER_EMAIL", "ana@example.com")
    monkeypatch.setenv("STORE_PATH", str(tmp_path / "store.json"))
    monkeypatch.setenv("INVALID_FRAGMENT_POLICY", "abort")
    monkeypatch.setenv("STATUS_POLL_INTERVAL_MS", "250")
    monkeypatch.setenv("STREAM_OPEN_TIMEOUT_S", "3.5")

    config = AppConfig.load_from_env()

    assert config.user_email == "ana@example.com"
    assert config.store_path == tmp_path / "store.json"
    assert config.invalid_fragment_policy is InvalidFragmentPolicy.ABORT
    assert config.status_poll_interval_ms == 250
    assert config.stream_open_timeout_s == 3.5


def test_empty_email_means_no_queue(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("USER_EMAIL", "")
    assert AppConfig.load_from_env().user_email is None


def test_bad_policy_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INVALID_FRAGMENT_POLICY", "retry")
    with pytest.raises(ValueError):
        AppConfig.load_from_env()
