"""
Retell call provider.

Session creation (HTTPS):
    POST {base}/v2/create-web-call
    Authorization: Bearer <api key>
    {"agent_id": "..."}  ->  {"access_token": "...", "call_id": "..."}

Realtime leg (WebSocket):
- One socket per call, opened by start() with the access token, sample
  rate and update flag as query parameters.
- Binary frames are PCM16 agent audio, handed to the audio sink.
- Text frames are JSON control messages; `call_started` / `call_ended`
  (or the `conversation_*` spellings) map to provider events.
- Socket closed cleanly -> ENDED. Socket failed -> ERROR.
- ENDED/ERROR is emitted at most once per call.
- A terminal message or a dropped socket closes the socket before ENDED/ERROR
  is emitted, so the provider is ready for the next start().

Design constraints:
- Provider must not own session state beyond its socket.
- Provider must not call the reducer; it only emits lifecycle events.
"""

from __future__ import annotations

import asyncio
import json
import urllib.parse
from typing import Any

import httpx
from websockets.asyncio.client import ClientConnection, connect as ws_connect
from websockets.exceptions import ConnectionClosedOK, WebSocketException

from adapters.calls.base import (
    AudioSink,
    CallProvider,
    CallProviderEvent,
    CallSessionToken,
    CallStartParams,
)
from errors import ProviderError
from observability.logger import log_event
from spec import CALL_STOP_TIMEOUT_S, HTTP_TIMEOUT_S, RETELL_CREATE_WEB_CALL_PATH


_STARTED_MESSAGES = frozenset({"call_started", "conversation_started"})
_ENDED_MESSAGES = frozenset({"call_ended", "conversation_ended"})


class RetellCallProvider(CallProvider):
    """
    Retell web-call provider.

    One instance is owned by one CallSessionController and drives at most
    one call at a time.
    """

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        realtime_url: str,
        http_client: httpx.AsyncClient | None = None,
        audio_sink: AudioSink | None = None,
    ) -> None:
        super().__init__()
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._realtime_url = realtime_url
        self._http = http_client
        self._audio_sink = audio_sink

        self._ws: ClientConnection | None = None
        self._recv_task: asyncio.Task[None] | None = None
        self._call_id: str | None = None
        self._terminal_emitted: bool = False

    # ------------------------------------------------------------------
    # Session creation
    # ------------------------------------------------------------------

    async def create_session(self, agent_id: str) -> CallSessionToken:
        url = self._base_url + RETELL_CREATE_WEB_CALL_PATH
        try:
            if self._http is not None:
                response = await self._post(self._http, url, agent_id)
            else:
                async with httpx.AsyncClient(timeout=HTTP_TIMEOUT_S) as client:
                    response = await self._post(client, url, agent_id)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise ProviderError(
                f"HTTP error! status: {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ProviderError(f"Session creation failed: {exc}") from exc

        token = data.get("access_token") if isinstance(data, dict) else None
        call_id = data.get("call_id") if isinstance(data, dict) else None
        if not isinstance(token, str) or not isinstance(call_id, str):
            raise ProviderError("Session creation response missing access_token/call_id")

        return CallSessionToken(token=token, session_id=call_id)

    async def _post(self, client: httpx.AsyncClient, url: str, agent_id: str) -> httpx.Response:
        return await client.post(
            url,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            json={"agent_id": agent_id},
        )

    # ------------------------------------------------------------------
    # Realtime leg
    # ------------------------------------------------------------------

    async def start(self, params: CallStartParams) -> None:
        if self._ws is not None:
            raise ProviderError("A call is already running on this provider")

        url = self._build_url(params)
        try:
            ws = await ws_connect(url, max_size=2**22)
        except (OSError, WebSocketException) as exc:
            raise ProviderError(f"Realtime connect failed: {exc!r}") from exc

        self._ws = ws
        self._call_id = params.session_id
        self._terminal_emitted = False
        self._recv_task = asyncio.create_task(self._recv_loop(ws))

    async def stop(self) -> None:
        ws = self._ws
        if ws is None:
            return

        self._ws = None
        try:
            await asyncio.wait_for(ws.close(), timeout=CALL_STOP_TIMEOUT_S)
        except (asyncio.TimeoutError, OSError, WebSocketException) as exc:
            raise ProviderError(f"Realtime close failed: {exc!r}") from exc
        finally:
            task = self._recv_task
            self._recv_task = None
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        await self._emit_terminal(CallProviderEvent.ENDED)

    async def send_audio(self, pcm_bytes: bytes) -> None:
        """Forward caller audio into the running call. Dropped when idle."""
        ws = self._ws
        if ws is None:
            return
        try:
            await ws.send(pcm_bytes)
        except WebSocketException as exc:
            log_event({
                "event_type": "CALL_AUDIO_SEND_FAILED",
                "call_id": self._call_id,
                "error": repr(exc),
            })

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _build_url(self, params: CallStartParams) -> str:
        base = self._realtime_url.format(call_id=urllib.parse.quote(params.session_id))
        qs = urllib.parse.urlencode({
            "access_token": params.token,
            "sample_rate": str(params.sample_rate),
            "enable_update": "true" if params.enable_update else "false",
        })
        return f"{base}?{qs}"

    async def _recv_loop(self, ws: ClientConnection) -> None:
        terminal: tuple[CallProviderEvent, str | None] = (CallProviderEvent.ENDED, None)
        try:
            async for raw in ws:
                if isinstance(raw, bytes):
                    if self._audio_sink is not None:
                        await self._audio_sink(raw)
                    continue
                outcome = await self._handle_message(raw)
                if outcome is not None:
                    terminal = outcome
                    break
        except asyncio.CancelledError:
            return
        except ConnectionClosedOK:
            pass
        except WebSocketException as exc:
            terminal = (CallProviderEvent.ERROR, repr(exc))

        if self._ws is not ws:
            # stop() took the socket and reports ENDED itself
            return

        # Socket is released before listeners run
        self._ws = None
        self._recv_task = None
        await self._close_quietly(ws)
        await self._emit_terminal(*terminal)

    async def _handle_message(self, raw: str) -> tuple[CallProviderEvent, str | None] | None:
        """
        Dispatch one control message.

        Returns the terminal event when the message ends the call;
        STARTED is emitted here directly.
        """
        try:
            data: Any = json.loads(raw)
        except json.JSONDecodeError:
            log_event({
                "event_type": "CALL_MESSAGE_UNPARSEABLE",
                "call_id": self._call_id,
                "preview": raw[:100],
            })
            return None

        if not isinstance(data, dict):
            return None

        msg_type = data.get("event_type") or data.get("type")
        if msg_type in _STARTED_MESSAGES:
            await self._emit(CallProviderEvent.STARTED)
        elif msg_type in _ENDED_MESSAGES:
            return (CallProviderEvent.ENDED, None)
        elif msg_type == "error":
            return (
                CallProviderEvent.ERROR,
                str(data.get("message") or data.get("error") or "provider_error"),
            )
        return None

    async def _close_quietly(self, ws: ClientConnection) -> None:
        try:
            await asyncio.wait_for(ws.close(), timeout=CALL_STOP_TIMEOUT_S)
        except (asyncio.TimeoutError, OSError, WebSocketException) as exc:
            log_event({
                "event_type": "CALL_SOCKET_CLOSE_FAILED",
                "call_id": self._call_id,
                "error": repr(exc),
            })

    async def _emit_terminal(self, event: CallProviderEvent, detail: str | None = None) -> None:
        if self._terminal_emitted:
            return
        self._terminal_emitted = True
        await self._emit(event, detail)
