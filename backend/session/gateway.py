"""
Brain gateway.

Responsibilities:
- Owns WorkbenchSession lifecycle
- Routes inbound JSON control messages -> controller operations
- Routes inbound binary audio -> the running call
- Loads the AgentConfig for the selected Mode
- Builds every reply: a STATE snapshot followed by NOTIFICATION messages
- Pushes STATE on provider call events, and agent audio as it arrives

NOT responsible for:
- Workflow or call state decisions (controllers + reducers)
- Vendor I/O (adapters)
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable
from uuid import uuid4

from adapters.apply.base import AgentApplier
from adapters.calls.base import AudioSink, CallProvider
from adapters.llm.base import LLMClient
from adapters.persistence.base import PersistenceGateway
from calls.controller import CallSessionController
from domain.commands import error_notification
from domain.mode import DEFAULT_MODE, Mode
from domain.records import AgentConfig
from errors import PersistenceError
from mutation.controller import PromptMutationController
from observability.logger import log_event
from session.workbench import WorkbenchSession

CallProviderFactory = Callable[[AudioSink], CallProvider]

# Sends a reply to the client outside the request/response flow
PushSink = Callable[["GatewayResult"], Awaitable[None]]


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _new_workbench_id() -> str:
    return f"wb_{uuid4().hex[:12]}"


# ------------------------------------------------------------------
# Gateway result
# ------------------------------------------------------------------

@dataclass(frozen=True)
class GatewayResult:
    """
    Return value for gateway boundary methods.

    outbound_json:
        JSON messages to send to client

    outbound_binary:
        Binary frames to send to client (agent audio)
    """
    outbound_json: tuple[dict[str, Any], ...] = ()
    outbound_binary: tuple[bytes, ...] = ()


# ------------------------------------------------------------------
# BrainGateway
# ------------------------------------------------------------------

class BrainGateway:
    """One gateway == one workbench connection."""

    def __init__(
        self,
        *,
        persistence: PersistenceGateway,
        llm: LLMClient,
        applier: AgentApplier,
        call_provider_factory: CallProviderFactory,
        user_id: str | None,
        push: PushSink | None = None,
    ) -> None:
        self._persistence = persistence
        self._llm = llm
        self._applier = applier
        self._call_provider_factory = call_provider_factory
        self._user_id = user_id
        self._push = push
        self.session: WorkbenchSession | None = None

        # Bumped by every Mode switch; a load finishing under an older
        # value is discarded
        self._mode_seq = 0
        self._connected = False

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def on_ws_connect(self) -> GatewayResult:
        """Called when a WebSocket connection is established."""
        session = WorkbenchSession(workbench_id=_new_workbench_id(), user_id=self._user_id)
        self.session = session

        session.attach_mutation(
            PromptMutationController(
                persistence=self._persistence,
                llm=self._llm,
                applier=self._applier,
                current_user=session.current_user,
                mode=session.mode,
                workbench_id=session.workbench_id,
            )
        )
        session.attach_calls(
            CallSessionController(
                provider=self._call_provider_factory(self._on_agent_audio),
                agent_config=session.current_agent_config,
                workbench_id=session.workbench_id,
                on_provider_event=self._push_update,
            )
        )

        session.agent_config = await self._load_agent_config(session.mode, seq=self._mode_seq)
        self._connected = True

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "WS_CONNECTED",
            **session.log_context(),
        })

        init_msg: dict[str, Any] = {
            "type": "SESSION_INIT",
            "workbench_id": session.workbench_id,
            "modes": [m.value for m in Mode],
            "default_mode": DEFAULT_MODE.value,
        }
        return self._reply(prefix=(init_msg,))

    async def on_ws_disconnect(self, reason: str | None = None) -> GatewayResult:
        """Called when the WebSocket disconnects. Stops any running call."""
        if self.session is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "WS_DISCONNECT_WITHOUT_SESSION",
                "reason": reason,
            })
            return GatewayResult()

        self._connected = False
        if self.session.calls is not None:
            await self.session.calls.close()

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "WS_DISCONNECTED",
            "reason": reason,
            **self.session.log_context(),
        })
        return GatewayResult()

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def on_json_message(self, payload: str) -> GatewayResult:
        """Route inbound JSON to controller operations."""
        session = self.session
        if session is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "MESSAGE_WITHOUT_SESSION",
                "payload_preview": payload[:100],
            })
            return GatewayResult()

        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "JSON_DECODE_ERROR",
                "workbench_id": session.workbench_id,
                "error": str(e),
                "payload_preview": payload[:100],
            })
            return GatewayResult()

        if not isinstance(data, dict):
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "MESSAGE_NOT_OBJECT",
                "workbench_id": session.workbench_id,
            })
            return GatewayResult()

        assert session.mutation is not None and session.calls is not None

        msg_type = data.get("type")

        if msg_type == "SELECT_MODE":
            await self._select_mode(data.get("mode"))
        elif msg_type == "SUBMIT":
            text = data.get("text")
            await session.mutation.submit(text if isinstance(text, str) else "")
        elif msg_type == "CONFIRM":
            await session.mutation.confirm(data.get("accepted") is True)
        elif msg_type == "TOGGLE_CALL":
            await session.calls.toggle()
        elif msg_type == "GET_STATE":
            pass
        else:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "UNKNOWN_MESSAGE_TYPE",
                "msg_type": msg_type,
                "workbench_id": session.workbench_id,
            })
            return GatewayResult()

        return self._reply()

    async def on_binary_message(self, payload: bytes) -> GatewayResult:
        """Forward caller audio to the running call; return queued agent audio."""
        session = self.session
        if session is None or session.calls is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "BINARY_WITHOUT_SESSION",
                "payload_len": len(payload),
            })
            return GatewayResult()

        await session.calls.provider.send_audio(payload)
        return GatewayResult(outbound_binary=session.drain_audio())

    # ------------------------------------------------------------------
    # Mode selection
    # ------------------------------------------------------------------

    async def _select_mode(self, raw_mode: Any) -> None:
        session = self.session
        assert session is not None and session.mutation is not None

        try:
            mode = Mode(raw_mode)
        except ValueError:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "UNKNOWN_MODE",
                "workbench_id": session.workbench_id,
                "mode": repr(raw_mode),
            })
            session.notify(error_notification(f"Unknown mode: {raw_mode}"))
            return

        self._mode_seq += 1
        seq = self._mode_seq

        # Session and mutation workflow switch Mode together
        session.mode = mode
        session.agent_config = None
        await session.mutation.select_mode(mode)

        agent_config = await self._load_agent_config(mode, seq=seq)
        if seq != self._mode_seq:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "AGENT_CONFIG_SUPERSEDED",
                "load_mode": mode.value,
                **session.log_context(),
            })
            return
        session.agent_config = agent_config

    async def _load_agent_config(self, mode: Mode, *, seq: int) -> AgentConfig | None:
        session = self.session
        assert session is not None

        if session.user_id is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "AGENT_CONFIG_SKIPPED",
                "reason": "unauthenticated",
                "load_mode": mode.value,
                **session.log_context(),
            })
            return None

        try:
            mode_config = await self._persistence.load_mode_config(session.user_id, mode)
        except PersistenceError as exc:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "AGENT_CONFIG_LOAD_FAILED",
                "error_kind": exc.kind,
                "error": str(exc),
                "load_mode": mode.value,
                **session.log_context(),
            })
            if seq == self._mode_seq:
                session.notify(error_notification(str(exc), title="Could not load agent"))
            return None

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "AGENT_CONFIG_LOADED",
            "agent_loaded": mode_config.agent is not None,
            "load_mode": mode.value,
            **session.log_context(),
        })
        return mode_config.agent

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------

    async def _push_update(self) -> None:
        """Send the current STATE (and queued notifications) unprompted."""
        if self._can_push():
            await self._send_push(self._reply())

    async def _on_agent_audio(self, pcm_bytes: bytes) -> None:
        """Audio sink handed to the call provider."""
        session = self.session
        assert session is not None
        await session.enqueue_audio(pcm_bytes)
        if self._can_push():
            await self._send_push(GatewayResult(outbound_binary=session.drain_audio()))

    def _can_push(self) -> bool:
        return self._push is not None and self._connected and self.session is not None

    async def _send_push(self, result: GatewayResult) -> None:
        assert self._push is not None and self.session is not None
        try:
            await self._push(result)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "PUSH_FAILED",
                "error": repr(exc),
                **self.session.log_context(),
            })

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    def _reply(self, prefix: tuple[dict[str, Any], ...] = ()) -> GatewayResult:
        session = self.session
        assert session is not None

        messages: list[dict[str, Any]] = list(prefix)
        messages.append({"type": "STATE", **session.snapshot()})
        messages.extend(
            {"type": "NOTIFICATION", **n.to_dict()}
            for n in session.drain_notifications()
        )
        return GatewayResult(
            outbound_json=tuple(messages),
            outbound_binary=session.drain_audio(),
        )
