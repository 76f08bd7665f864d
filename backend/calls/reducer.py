"""
Pure call session reducer.

(state, event) -> (new_state, commands)

Rules:
- Pure: no side effects, no IO, no clocks.
- Deterministic: output depends only on inputs.
- Total: every (state, event) pair is handled or explicitly ignored (logged).

Provider notifications are authoritative: they override whatever the
controller assumed optimistically.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from calls.commands import StartCallSession, StopCallSession
from calls.enums.state import CallSessionState
from calls.events import (
    CallEvent,
    ProviderEnded,
    ProviderErrored,
    ProviderStarted,
    SessionStartFailed,
    SessionStartSucceeded,
    SessionStopCompleted,
    StopRequested,
    ToggleRequested,
)
from calls.state_dataclass import CallState
from domain.commands import Command, LogEvent, Notify, error_notification
from spec import CALL_ENABLE_UPDATE, CALL_SAMPLE_RATE_HZ


# =============================================================================
# Small helpers
# =============================================================================

def _log(
    state: CallState,
    event: CallEvent,
    decision: str,
    details: dict[str, Any] | None = None,
) -> LogEvent:
    return LogEvent(
        event={
            "ts_ms": event.ts_ms,
            "component": "call_session",
            "state": state.status.value,
            "event_type": event.event_type.value,
            "decision": decision,
            "attempt_id": state.attempt_id,
            "call_id": state.call_id,
            "details": details or {},
        }
    )


def _transition_log(
    old: CallState,
    new: CallState,
    event: CallEvent,
    decision: str,
    details: dict[str, Any] | None = None,
) -> LogEvent:
    return _log(
        new,
        event,
        decision,
        {
            "from_state": old.status.value,
            "to_state": new.status.value,
            **(details or {}),
        },
    )


def _ignore(state: CallState, event: CallEvent, reason: str) -> tuple[CallState, tuple[Command, ...]]:
    return state, (_log(state, event, "ignore", {"reason": reason}),)


def _request_stop(state: CallState, event: CallEvent) -> tuple[CallState, tuple[Command, ...]]:
    new_state = replace(state, stop_in_flight=True)
    return new_state, (
        _log(new_state, event, "stop_requested"),
        StopCallSession(attempt_id=state.attempt_id),
    )


# =============================================================================
# Event handlers
# =============================================================================

def _on_toggle(state: CallState, event: ToggleRequested) -> tuple[CallState, tuple[Command, ...]]:
    if state.start_in_flight:
        return _ignore(state, event, "start_in_flight")
    if state.stop_in_flight:
        return _ignore(state, event, "stop_in_flight")

    if state.status is CallSessionState.ACTIVE:
        return _request_stop(state, event)

    if event.agent_id is None:
        return state, (_log(state, event, "agent_not_loaded"),)

    attempt_id = state.attempt_id + 1
    new_state = replace(
        state,
        attempt_id=attempt_id,
        start_in_flight=True,
        ended_during_start=False,
        last_error=None,
    )
    return new_state, (
        _log(new_state, event, "start_requested", {"agent_id": event.agent_id}),
        StartCallSession(
            attempt_id=attempt_id,
            agent_id=event.agent_id,
            sample_rate=CALL_SAMPLE_RATE_HZ,
            enable_update=CALL_ENABLE_UPDATE,
        ),
    )


def _on_stop(state: CallState, event: StopRequested) -> tuple[CallState, tuple[Command, ...]]:
    if state.stop_in_flight:
        return _ignore(state, event, "stop_in_flight")
    if state.status is not CallSessionState.ACTIVE:
        return _ignore(state, event, "not_active")
    return _request_stop(state, event)


def _on_start_succeeded(
    state: CallState,
    event: SessionStartSucceeded,
) -> tuple[CallState, tuple[Command, ...]]:
    if event.attempt_id != state.attempt_id or not state.start_in_flight:
        return _ignore(state, event, "stale_attempt")

    if state.ended_during_start:
        new_state = replace(state, start_in_flight=False, ended_during_start=False)
        return new_state, (
            _log(new_state, event, "start_superseded_by_provider", {"call_id": event.call_id}),
        )

    new_state = replace(
        state,
        status=CallSessionState.ACTIVE,
        start_in_flight=False,
        call_id=event.call_id,
    )
    return new_state, (_transition_log(state, new_state, event, "session_started_optimistic"),)


def _on_start_failed(
    state: CallState,
    event: SessionStartFailed,
) -> tuple[CallState, tuple[Command, ...]]:
    if event.attempt_id != state.attempt_id or not state.start_in_flight:
        return _ignore(state, event, "stale_attempt")

    # Status is left exactly as it was before the attempt
    new_state = replace(
        state,
        start_in_flight=False,
        ended_during_start=False,
        last_error=event.reason,
    )
    return new_state, (
        Notify(error_notification(f"Could not start the test call: {event.reason}")),
        _log(new_state, event, "start_failed", {"reason": event.reason}),
    )


def _on_stop_completed(
    state: CallState,
    event: SessionStopCompleted,
) -> tuple[CallState, tuple[Command, ...]]:
    if not state.stop_in_flight:
        return _ignore(state, event, "no_stop_in_flight")

    # Stop is best-effort: the user's intent to end the call wins
    new_state = replace(
        state,
        status=CallSessionState.INACTIVE,
        stop_in_flight=False,
        call_id=None,
        last_error=event.error,
    )
    decision = "stop_failed_forced_inactive" if event.error else "session_stopped"
    return new_state, (
        _transition_log(state, new_state, event, decision, {"error": event.error}),
    )


def _on_provider_started(
    state: CallState,
    event: ProviderStarted,
) -> tuple[CallState, tuple[Command, ...]]:
    new_state = replace(state, status=CallSessionState.ACTIVE)
    return new_state, (_transition_log(state, new_state, event, "provider_started"),)


def _on_provider_terminal(
    state: CallState,
    event: CallEvent,
    decision: str,
    reason: str | None,
) -> tuple[CallState, tuple[Command, ...]]:
    new_state = replace(
        state,
        status=CallSessionState.INACTIVE,
        call_id=None,
        ended_during_start=state.start_in_flight,
        last_error=reason if reason is not None else state.last_error,
    )
    return new_state, (_transition_log(state, new_state, event, decision, {"reason": reason}),)


# =============================================================================
# Reducer
# =============================================================================

def reduce(state: CallState, event: CallEvent) -> tuple[CallState, tuple[Command, ...]]:
    """Apply one event to the call session state."""
    if isinstance(event, ToggleRequested):
        return _on_toggle(state, event)
    if isinstance(event, StopRequested):
        return _on_stop(state, event)
    if isinstance(event, SessionStartSucceeded):
        return _on_start_succeeded(state, event)
    if isinstance(event, SessionStartFailed):
        return _on_start_failed(state, event)
    if isinstance(event, SessionStopCompleted):
        return _on_stop_completed(state, event)
    if isinstance(event, ProviderStarted):
        return _on_provider_started(state, event)
    if isinstance(event, ProviderEnded):
        return _on_provider_terminal(state, event, "provider_ended", None)
    if isinstance(event, ProviderErrored):
        return _on_provider_terminal(state, event, "provider_error", event.reason or "unknown")

    return _ignore(state, event, "unhandled_event")
