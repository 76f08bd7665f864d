"""
Event definitions for the call session reducer.

Rules:
- Events describe facts that have occurred.
- Events carry data only (no behavior).
- No clocks, no timers, no async, no side effects.

Attempt ids gate start results the same way run ids gate service
events: a result for an older attempt is ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class CallEventType(str, Enum):
    """Canonical event types understood by the call reducer."""

    # ------------------------------------------------------------------
    # User control
    # ------------------------------------------------------------------
    TOGGLE_REQUESTED = "TOGGLE_REQUESTED"
    STOP_REQUESTED = "STOP_REQUESTED"

    # ------------------------------------------------------------------
    # Command outcomes
    # ------------------------------------------------------------------
    SESSION_START_SUCCEEDED = "SESSION_START_SUCCEEDED"
    SESSION_START_FAILED = "SESSION_START_FAILED"
    SESSION_STOP_COMPLETED = "SESSION_STOP_COMPLETED"

    # ------------------------------------------------------------------
    # Provider notifications (authoritative)
    # ------------------------------------------------------------------
    PROVIDER_STARTED = "PROVIDER_STARTED"
    PROVIDER_ENDED = "PROVIDER_ENDED"
    PROVIDER_ERROR = "PROVIDER_ERROR"


@dataclass(frozen=True)
class CallEvent:
    """
    Base event type.

    All events must specify:
    - event_type: discriminant
    - ts_ms: timestamp provided by the source (or fake in tests)
    """

    event_type: CallEventType
    ts_ms: int


# =============================================================================
# User control
# =============================================================================

@dataclass(frozen=True)
class ToggleRequested(CallEvent):
    """
    User clicked the call button.

    agent_id is the identifier from the AgentConfig loaded for the current
    Mode, or None when no config is loaded.
    """
    agent_id: str | None


@dataclass(frozen=True)
class StopRequested(CallEvent):
    """Explicit stop (teardown or transport disconnect)."""


# =============================================================================
# Command outcomes
# =============================================================================

@dataclass(frozen=True)
class SessionStartSucceeded(CallEvent):
    """Token retrieved and realtime session started."""
    attempt_id: int
    call_id: str


@dataclass(frozen=True)
class SessionStartFailed(CallEvent):
    """Token retrieval or realtime start failed."""
    attempt_id: int
    reason: str


@dataclass(frozen=True)
class SessionStopCompleted(CallEvent):
    """
    Stop finished. error is set when provider teardown failed; the
    session is considered over either way.
    """
    error: str | None = None


# =============================================================================
# Provider notifications
# =============================================================================

@dataclass(frozen=True)
class ProviderStarted(CallEvent):
    """Provider reports the conversation started."""


@dataclass(frozen=True)
class ProviderEnded(CallEvent):
    """Provider reports the conversation ended."""


@dataclass(frozen=True)
class ProviderErrored(CallEvent):
    """Provider reports an error."""
    reason: str | None = None
