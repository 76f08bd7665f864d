"""
Mutation workflow state enumeration.

Rules:
- This enum defines ONLY the workflow states.
- Transitions are defined exclusively in mutation.reducer.
"""

from __future__ import annotations

from enum import Enum


class MutationState(str, Enum):
    """
    Prompt mutation workflow state.

    IDLE:
        No request in flight and no proposal pending. Submissions accepted.

    AWAITING_MODEL:
        A request is with the model. Submissions rejected.

    PROPOSAL_PENDING:
        A proposal awaits confirm/discard. Submissions rejected.
    """

    IDLE = "idle"
    AWAITING_MODEL = "awaiting-model"
    PROPOSAL_PENDING = "proposal-pending"
