"""
Side-effect commands shared by every reducer.

Rules:
- Commands are declarative requests for side effects.
- Commands are emitted by a reducer and executed by its controller.
- No behavior, no async, no I/O, no clocks.
Invariant:
    - All concrete Command subclasses MUST be frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

from spec import NOTIFY_ERROR_DURATION_MS, NOTIFY_SUCCESS_DURATION_MS


class CommandType(str, Enum):
    """
    Canonical command types.

    Stable discriminants used for logging and dispatch.
    """

    # Mutation workflow
    REQUEST_PROPOSAL = "REQUEST_PROPOSAL"
    COMMIT_PROPOSAL = "COMMIT_PROPOSAL"

    # Call session
    START_CALL_SESSION = "START_CALL_SESSION"
    STOP_CALL_SESSION = "STOP_CALL_SESSION"

    # User-facing
    NOTIFY = "NOTIFY"

    # Observability
    LOG_EVENT = "LOG_EVENT"


class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType


NotificationLevel = Literal["success", "info", "warning", "error"]


@dataclass(frozen=True)
class Notification:
    """Transient user-facing message (toast)."""
    level: NotificationLevel
    title: str
    description: str
    duration_ms: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "title": self.title,
            "description": self.description,
            "duration_ms": self.duration_ms,
        }


def error_notification(description: str, title: str = "Error") -> Notification:
    return Notification(
        level="error",
        title=title,
        description=description,
        duration_ms=NOTIFY_ERROR_DURATION_MS,
    )


def success_notification(description: str, title: str = "Success") -> Notification:
    return Notification(
        level="success",
        title=title,
        description=description,
        duration_ms=NOTIFY_SUCCESS_DURATION_MS,
    )


@dataclass(frozen=True)
class Notify(Command):
    """Queue a notification for the transport to deliver."""
    notification: Notification
    command_type: CommandType = CommandType.NOTIFY


@dataclass(frozen=True)
class LogEvent(Command):
    """Emit one structured log event."""
    event: dict[str, Any]
    command_type: CommandType = CommandType.LOG_EVENT
