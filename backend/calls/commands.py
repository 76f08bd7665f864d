"""
Call session commands.

Executed by CallSessionController against its CallProvider.
"""

from __future__ import annotations

from dataclasses import dataclass

from domain.commands import Command, CommandType


@dataclass(frozen=True)
class StartCallSession(Command):
    """Create a session token for agent_id, then start the realtime leg."""
    attempt_id: int
    agent_id: str
    sample_rate: int
    enable_update: bool
    command_type: CommandType = CommandType.START_CALL_SESSION


@dataclass(frozen=True)
class StopCallSession(Command):
    """Stop the running realtime session (best-effort)."""
    attempt_id: int
    command_type: CommandType = CommandType.STOP_CALL_SESSION
