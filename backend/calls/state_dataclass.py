"""
Call session state container.

Rules:
- Pure data model; no behavior.
- Replaced wholesale by the reducer on every transition.
"""
from __future__ import annotations

from dataclasses import dataclass

from calls.enums.state import CallSessionState


@dataclass(frozen=True)
class CallState:
    """Immutable snapshot of everything the call reducer owns."""

    status: CallSessionState = CallSessionState.NOT_STARTED

    # Monotonic; bumped on every start attempt
    attempt_id: int = 0

    # A create+start sequence is running
    start_in_flight: bool = False

    # A provider stop is running
    stop_in_flight: bool = False

    # Provider reported ENDED/ERROR while our start was still running;
    # the start's success must not resurrect the session
    ended_during_start: bool = False

    call_id: str | None = None
    last_error: str | None = None
