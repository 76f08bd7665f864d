"""
Mutation workflow commands.

Executed by PromptMutationController against its injected adapters.
"""

from __future__ import annotations

from dataclasses import dataclass

from domain.commands import Command, CommandType
from domain.mode import Mode


@dataclass(frozen=True)
class RequestProposal(Command):
    """
    Load the persisted prompt for (user_id, mode), ask the model for a
    rewrite and extract a proposal.

    user_id is None when no user is signed in; execution fails with
    AuthError.
    """
    request_id: int
    user_id: str | None
    mode: Mode
    user_text: str
    command_type: CommandType = CommandType.REQUEST_PROPOSAL


@dataclass(frozen=True)
class CommitProposal(Command):
    """Write prompt to the Mode's prompt field, then apply it to the agent."""
    request_id: int
    user_id: str
    mode: Mode
    prompt: str
    command_type: CommandType = CommandType.COMMIT_PROPOSAL
