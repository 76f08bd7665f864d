"""
Call session state enumeration.

Rules:
- This enum defines ONLY the session states.
- No behavior, no helper methods, no side effects.
- Transitions are defined exclusively in calls.reducer.
"""

from __future__ import annotations

from enum import Enum


class CallSessionState(str, Enum):
    """
    Voice-test session state.

    NOT_STARTED:
        No call has been placed since the controller was created.

    ACTIVE:
        A call is running (optimistically after a successful start, or
        as reported by the provider).

    INACTIVE:
        The last call ended, errored or was stopped. A new call may be
        started from here.
    """

    NOT_STARTED = "not-started"
    ACTIVE = "active"
    INACTIVE = "inactive"
