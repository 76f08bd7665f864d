"""
Call session controller.

Responsibilities:
- Own the call session state (immutable reducer pattern)
- Own the CallProvider and its three lifecycle listeners
- Convert user actions and provider notifications into events
- Execute StartCallSession / StopCallSession against the provider
- Queue notifications for the transport

Non-responsibilities:
- Session state decisions (calls.reducer)
- Loading AgentConfig (read through the injected accessor)
"""

from __future__ import annotations

import time
from collections import deque
from typing import Any, Awaitable, Callable

from adapters.calls.base import (
    CallProvider,
    CallProviderEvent,
    CallStartParams,
    ProviderListener,
)
from calls.commands import StartCallSession, StopCallSession
from calls.events import (
    CallEvent,
    CallEventType,
    ProviderEnded,
    ProviderErrored,
    ProviderStarted,
    SessionStartFailed,
    SessionStartSucceeded,
    SessionStopCompleted,
    StopRequested,
    ToggleRequested,
)
from calls.enums.state import CallSessionState
from calls.reducer import reduce
from calls.state_dataclass import CallState
from domain.commands import Command, LogEvent, Notification, Notify
from domain.records import AgentConfig
from observability.logger import log_event
from observability.metrics import timed


AgentConfigAccessor = Callable[[], AgentConfig | None]

# Called after a provider lifecycle event has been reduced
ProviderEventHook = Callable[[], Awaitable[None]]


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class CallSessionController:
    """
    Runtime boundary for the voice-test session.

    Guarantees:
    - Reducer is called exactly once per event
    - State is swapped in before any command executes
    - Provider listeners are registered once here and removed once in close()
    """

    def __init__(
        self,
        *,
        provider: CallProvider,
        agent_config: AgentConfigAccessor,
        workbench_id: str,
        on_provider_event: ProviderEventHook | None = None,
    ) -> None:
        self._provider = provider
        self._agent_config = agent_config
        self._workbench_id = workbench_id
        self._on_provider_event = on_provider_event

        self._state = CallState()
        self._notifications: deque[Notification] = deque()
        self._closed = False

        self._listeners: tuple[tuple[CallProviderEvent, ProviderListener], ...] = (
            (CallProviderEvent.STARTED, self._on_provider_started),
            (CallProviderEvent.ENDED, self._on_provider_ended),
            (CallProviderEvent.ERROR, self._on_provider_error),
        )
        for event, listener in self._listeners:
            self._provider.on(event, listener)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> CallState:
        return self._state

    @property
    def provider(self) -> CallProvider:
        return self._provider

    def snapshot(self) -> dict[str, Any]:
        """Transport-facing view of the session."""
        return {
            "status": self._state.status.value,
            "busy": self._state.start_in_flight or self._state.stop_in_flight,
            "call_id": self._state.call_id,
            "last_error": self._state.last_error,
        }

    def drain_notifications(self) -> tuple[Notification, ...]:
        if not self._notifications:
            return ()
        out = tuple(self._notifications)
        self._notifications.clear()
        return out

    # ------------------------------------------------------------------
    # User operations
    # ------------------------------------------------------------------

    async def toggle(self) -> None:
        """Start a call when idle, stop it when active."""
        config = self._agent_config()
        await self.handle_event(
            ToggleRequested(
                event_type=CallEventType.TOGGLE_REQUESTED,
                ts_ms=_now_ms(),
                agent_id=config.agent_id if config is not None else None,
            )
        )

    async def stop(self) -> None:
        """Stop an active call. No-op otherwise."""
        await self.handle_event(
            StopRequested(event_type=CallEventType.STOP_REQUESTED, ts_ms=_now_ms())
        )

    async def close(self) -> None:
        """
        Tear down: stop any active call and deregister provider listeners.

        When no call is active (a start still in flight, or a call already
        ended) the provider is still stopped best-effort, so no socket
        outlives the controller.

        Safe to call more than once.
        """
        if self._closed:
            return
        self._closed = True

        if self._state.status is CallSessionState.ACTIVE:
            await self.stop()
        else:
            await self._release_provider()

        for event, listener in self._listeners:
            self._provider.off(event, listener)

        log_event({
            "event_type": "CALL_CONTROLLER_CLOSED",
            "workbench_id": self._workbench_id,
            "state": self._state.status.value,
        })

    # ------------------------------------------------------------------
    # Event pipeline
    # ------------------------------------------------------------------

    async def handle_event(self, event: CallEvent) -> None:
        """Single entry point for every event affecting call state."""
        new_state, commands = reduce(self._state, event)
        self._state = new_state

        for cmd in commands:
            await self._execute_command(cmd)

    async def _execute_command(self, cmd: Command) -> None:
        if isinstance(cmd, LogEvent):
            log_event({**cmd.event, "workbench_id": self._workbench_id})

        elif isinstance(cmd, Notify):
            self._notifications.append(cmd.notification)

        elif isinstance(cmd, StartCallSession):
            await self._start_session(cmd)

        elif isinstance(cmd, StopCallSession):
            await self._stop_session(cmd)

        else:
            raise RuntimeError(f"Unhandled call command: {type(cmd).__name__}")

    async def _start_session(self, cmd: StartCallSession) -> None:
        try:
            with timed(
                "call_session_start",
                workbench_id=self._workbench_id,
                details={"attempt_id": cmd.attempt_id},
            ):
                token = await self._provider.create_session(cmd.agent_id)
                await self._provider.start(
                    CallStartParams(
                        token=token.token,
                        session_id=token.session_id,
                        sample_rate=cmd.sample_rate,
                        enable_update=cmd.enable_update,
                    )
                )
        except Exception as exc:  # pylint: disable=broad-exception-caught
            await self.handle_event(
                SessionStartFailed(
                    event_type=CallEventType.SESSION_START_FAILED,
                    ts_ms=_now_ms(),
                    attempt_id=cmd.attempt_id,
                    reason=str(exc) or type(exc).__name__,
                )
            )
            return

        await self.handle_event(
            SessionStartSucceeded(
                event_type=CallEventType.SESSION_START_SUCCEEDED,
                ts_ms=_now_ms(),
                attempt_id=cmd.attempt_id,
                call_id=token.session_id,
            )
        )

    async def _stop_session(self, cmd: StopCallSession) -> None:
        error: str | None = None
        try:
            await self._provider.stop()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            error = str(exc) or type(exc).__name__

        if error is not None:
            log_event({
                "event_type": "CALL_STOP_FAILED",
                "workbench_id": self._workbench_id,
                "attempt_id": cmd.attempt_id,
                "error": error,
            })

        await self.handle_event(
            SessionStopCompleted(
                event_type=CallEventType.SESSION_STOP_COMPLETED,
                ts_ms=_now_ms(),
                error=error,
            )
        )

    async def _release_provider(self) -> None:
        try:
            await self._provider.stop()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "CALL_RELEASE_FAILED",
                "workbench_id": self._workbench_id,
                "state": self._state.status.value,
                "error": str(exc) or type(exc).__name__,
            })

    # ------------------------------------------------------------------
    # Provider listeners
    # ------------------------------------------------------------------

    async def _on_provider_started(self, _detail: str | None) -> None:
        await self._handle_provider_event(
            ProviderStarted(event_type=CallEventType.PROVIDER_STARTED, ts_ms=_now_ms())
        )

    async def _on_provider_ended(self, _detail: str | None) -> None:
        await self._handle_provider_event(
            ProviderEnded(event_type=CallEventType.PROVIDER_ENDED, ts_ms=_now_ms())
        )

    async def _on_provider_error(self, detail: str | None) -> None:
        await self._handle_provider_event(
            ProviderErrored(
                event_type=CallEventType.PROVIDER_ERROR,
                ts_ms=_now_ms(),
                reason=detail,
            )
        )

    async def _handle_provider_event(self, event: CallEvent) -> None:
        await self.handle_event(event)
        if self._on_provider_event is not None:
            await self._on_provider_event()
