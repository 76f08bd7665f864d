"""
Mutation workflow state container.

Rules:
- Pure data model; no behavior.
- Replaced wholesale by the reducer on every transition.
"""
from __future__ import annotations

from dataclasses import dataclass

from context.transcript import EMPTY_TRANSCRIPT, Transcript
from domain.mode import DEFAULT_MODE, Mode
from domain.proposal import PromptChangeProposal
from mutation.enums.state import MutationState


@dataclass(frozen=True)
class MutationWorkflowState:
    """Immutable snapshot of everything the mutation reducer owns."""

    state: MutationState = MutationState.IDLE

    # Currently selected Mode
    mode: Mode = DEFAULT_MODE

    transcript: Transcript = EMPTY_TRANSCRIPT

    # The single live proposal, and the Mode/user it was drafted for
    pending: PromptChangeProposal | None = None
    pending_mode: Mode | None = None
    request_user_id: str | None = None

    # Monotonic; bumped on every accepted submission
    request_id: int = 0

    # A CommitProposal is executing
    commit_in_flight: bool = False

    last_error: str | None = None
