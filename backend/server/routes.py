"""
Route registration for the player API.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Wire a gateway to each WebSocket lifecycle
- Push queued control messages (alerts, state) without waiting for input
- Pull dependencies from app.state
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from observability.logger import log_event
from session.gateway import GatewayResult, PlayerGateway
from session.player_session import PlayerSession


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""

    @app.get("/health")
    async def health() -> dict[str, str]:  # pyright: ignore[reportUnusedFunction]
        return {"status": "ok"}

    @app.get("/now-playing")
    async def now_playing() -> dict[str, Any]:  # pyright: ignore[reportUnusedFunction]
        session: PlayerSession = app.state.player_session
        assert session.mirror is not None, "mirror missing"

        record = session.mirror.read()
        target = record.resume_target()
        return {
            **record.to_dict(),
            "has_track": record.has_track,
            "resume_target": (
                {"name": target.name, "id": target.track_id} if target is not None else None
            ),
        }

    @app.get("/player/status")
    async def player_status() -> dict[str, Any]:  # pyright: ignore[reportUnusedFunction]
        session: PlayerSession = app.state.player_session
        assert session.runtime is not None, "runtime missing"
        return session.runtime.snapshot()

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket) -> None:  # pyright: ignore[reportUnusedFunction]
        await ws.accept()

        gateway = PlayerGateway(session=app.state.player_session)
        send_lock = asyncio.Lock()
        push_task: asyncio.Task[None] | None = None

        try:
            result = await gateway.on_ws_connect()
            await _flush_gateway_result(ws, result, send_lock)

            push_task = asyncio.create_task(_push_control(ws, gateway, send_lock))

            while True:
                text = await ws.receive_text()
                result = await gateway.on_json_message(text)
                await _flush_gateway_result(ws, result, send_lock)

        except WebSocketDisconnect:
            await gateway.on_ws_disconnect(reason="client_disconnect")

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "WS_FATAL_ERROR",
                "client_id": gateway.client_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            await gateway.on_ws_disconnect(reason="server_error")

        finally:
            if push_task is not None:
                push_task.cancel()
                await asyncio.gather(push_task, return_exceptions=True)


async def _push_control(
    ws: WebSocket,
    gateway: PlayerGateway,
    send_lock: asyncio.Lock,
) -> None:
    """Deliver alerts and state changes as soon as the runtime queues them."""
    while True:
        result = await gateway.next_pushed()
        await _flush_gateway_result(ws, result, send_lock)


async def _flush_gateway_result(
    ws: WebSocket,
    result: GatewayResult,
    send_lock: asyncio.Lock,
) -> None:
    if not result.outbound_json:
        return
    async with send_lock:
        for msg in result.outbound_json:
            await ws.send_text(json.dumps(msg))
