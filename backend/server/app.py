"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware
- Initialize shared resources (player session, queue client)
- Register routes
- Shut the player down with the process
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adapters.decoder.base import AudioDecoder, DecoderFactory
from adapters.queue.rest_queue import PlayQueueClient
from config import AppConfig
from observability.logger import log_event
from orchestrator.runtime_context import QueueClientProtocol, StreamFactory
from server.routes import register_routes
from session.player_session import build_player_session


def create_app(
    config: AppConfig | None = None,
    *,
    decoder_factory: DecoderFactory | None = None,
    stream_factory: StreamFactory | None = None,
    queue_client: QueueClientProtocol | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    This is the app factory pattern that allows:
    - Testing with fake decoders / streams / queues
    - Environment-specific setup
    - ASGI server compatibility
    """
    if config is None:
        config = AppConfig.load_from_env()

    owned_queue_client: PlayQueueClient | None = None
    if queue_client is None and config.user_email:
        owned_queue_client = build_queue_client(config)
        queue_client = owned_queue_client

    session = build_player_session(
        config,
        decoder_factory=decoder_factory or build_decoder_factory(config),
        stream_factory=stream_factory,
        queue_client=queue_client,
    )

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        log_event({"event_type": "APP_STARTED", "session_id": session.session_id, "env": config.env})
        yield
        if session.runtime is not None:
            await session.runtime.shutdown()
        if owned_queue_client is not None:
            owned_queue_client.close()

    app = FastAPI(title="EchoBeat Player API", lifespan=lifespan)

    app.state.config = config
    app.state.player_session = session

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes
    register_routes(app)

    return app


def build_decoder_factory(config: AppConfig) -> DecoderFactory:
    """Decoder factory backed by libmpv, imported on first use."""

    def factory() -> AudioDecoder:
        from adapters.decoder.mpv_decoder import MpvDecoder  # pylint: disable=import-outside-toplevel

        return MpvDecoder(device=config.mpv_audio_device)

    return factory


def build_queue_client(config: AppConfig) -> PlayQueueClient:
    """Build the play queue client for the configured user."""
    assert config.user_email is not None, "USER_EMAIL missing"
    return PlayQueueClient(
        base_url=config.api_base_url,
        user_email=config.user_email,
        timeout_s=config.queue_http_timeout_s,
    )
