"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No orchestration logic
- No protocol constants
- No runtime mutation
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from orchestrator.enums.policy import InvalidFragmentPolicy
from spec import (
    QUEUE_HTTP_TIMEOUT_S_DEFAULT,
    STATUS_POLL_INTERVAL_MS_DEFAULT,
    STREAM_OPEN_TIMEOUT_S_DEFAULT,
)


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    Passed downward to the player session / runtime bootstrap code.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str
    log_level: str

    # ------------------------------------------------------------------
    # Remote service
    # ------------------------------------------------------------------

    stream_url: str
    api_base_url: str
    user_email: str | None

    # ------------------------------------------------------------------
    # Local storage
    # ------------------------------------------------------------------

    cache_dir: Path
    store_path: Path

    # ------------------------------------------------------------------
    # Playback policy
    # ------------------------------------------------------------------

    invalid_fragment_policy: InvalidFragmentPolicy
    status_poll_interval_ms: int

    # ------------------------------------------------------------------
    # Timeouts
    # ------------------------------------------------------------------

    stream_open_timeout_s: float
    queue_http_timeout_s: float

    # ------------------------------------------------------------------
    # Decoder
    # ------------------------------------------------------------------

    mpv_audio_device: str | None

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Raises:
            ValueError if a policy or numeric variable is malformed.
        """
        cache_dir = Path(
            os.environ.get(
                "CACHE_DIR",
                os.path.join(tempfile.gettempdir(), "echobeat"),
            )
        )

        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),

            stream_url=os.environ.get("STREAM_URL", "wss://echobeatapi.duckdns.org/stream"),
            api_base_url=os.environ.get("API_BASE_URL", "https://echobeatapi.duckdns.org"),
            user_email=os.environ.get("USER_EMAIL") or None,

            cache_dir=cache_dir,
            store_path=Path(
                os.environ.get("STORE_PATH", str(cache_dir / "now_playing.json"))
            ),

            invalid_fragment_policy=InvalidFragmentPolicy(
                os.environ.get("INVALID_FRAGMENT_POLICY", InvalidFragmentPolicy.DROP.value)
            ),
            status_poll_interval_ms=int(
                os.environ.get("STATUS_POLL_INTERVAL_MS", STATUS_POLL_INTERVAL_MS_DEFAULT)
            ),

            stream_open_timeout_s=float(
                os.environ.get("STREAM_OPEN_TIMEOUT_S", STREAM_OPEN_TIMEOUT_S_DEFAULT)
            ),
            queue_http_timeout_s=float(
                os.environ.get("QUEUE_HTTP_TIMEOUT_S", QUEUE_HTTP_TIMEOUT_S_DEFAULT)
            ),

            mpv_audio_device=os.environ.get("MPV_AUDIO_DEVICE") or None,
        )
