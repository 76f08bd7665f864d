"""
Route registration for the workbench API.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Wire gateway to WebSocket lifecycle
- Pull dependencies from app.state
"""

from __future__ import annotations

import asyncio
import json

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from observability.logger import log_event
from session.gateway import BrainGateway, GatewayResult
from spec import USER_ID_HEADER, USER_ID_QUERY_PARAM


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""
    @app.get("/health")
    async def health() -> dict[str, str]: # pyright: ignore[reportUnusedFunction]
        return {"status": "ok"}

    @app.websocket("/brain/ws")
    async def brain_ws(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        await ws.accept()

        # Text messages run as tasks; sends are serialized
        send_lock = asyncio.Lock()
        tasks: set[asyncio.Task[None]] = set()

        async def push(result: GatewayResult) -> None:
            async with send_lock:
                await _flush_gateway_result(ws, result)

        gateway = BrainGateway(
            persistence=app.state.persistence,
            llm=app.state.llm,
            applier=app.state.applier,
            call_provider_factory=app.state.call_provider_factory,
            user_id=_resolve_user_id(ws),
            push=push,
        )

        async def handle_text(text: str) -> None:
            await push(await gateway.on_json_message(text))

        try:
            await push(await gateway.on_ws_connect())

            while True:
                msg = await ws.receive()

                if msg.get("type") == "websocket.disconnect":
                    raise WebSocketDisconnect(code=msg.get("code", 1000))

                if msg.get("text") is not None:
                    task = asyncio.create_task(handle_text(msg["text"]))
                    tasks.add(task)
                    task.add_done_callback(tasks.discard)

                elif msg.get("bytes") is not None:
                    await push(await gateway.on_binary_message(msg["bytes"]))

        except WebSocketDisconnect:
            await _cancel_tasks(tasks)
            await gateway.on_ws_disconnect(reason="client_disconnect")

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "WS_FATAL_ERROR",
                "workbench_id": gateway.session.workbench_id if gateway.session else None,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            await _cancel_tasks(tasks)
            await gateway.on_ws_disconnect(reason="server_error")


def _resolve_user_id(ws: WebSocket) -> str | None:
    """Current user handle set by the upstream identity provider."""
    user_id = ws.headers.get(USER_ID_HEADER) or ws.query_params.get(USER_ID_QUERY_PARAM)
    return user_id or None


async def _cancel_tasks(tasks: set[asyncio.Task[None]]) -> None:
    for task in list(tasks):
        task.cancel()
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)


async def _flush_gateway_result(
    ws: WebSocket,
    result: GatewayResult,
) -> None:
    for msg in result.outbound_json:
        await ws.send_text(json.dumps(msg))

    for frame in result.outbound_binary:
        await ws.send_bytes(frame)
