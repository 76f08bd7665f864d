"""
Event definitions for the prompt mutation reducer.

Rules:
- Events describe facts that have occurred.
- Events carry data only (no behavior).
- No clocks, no timers, no async, no side effects.

Model and commit outcomes carry the request_id they belong to; outcomes
for anything but the current request are ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from domain.mode import Mode
from domain.proposal import PromptChangeProposal


class MutationEventType(str, Enum):
    """Canonical event types understood by the mutation reducer."""

    # ------------------------------------------------------------------
    # User control
    # ------------------------------------------------------------------
    SUBMIT_REQUESTED = "SUBMIT_REQUESTED"
    CONFIRM_REQUESTED = "CONFIRM_REQUESTED"
    MODE_CHANGED = "MODE_CHANGED"

    # ------------------------------------------------------------------
    # Command outcomes
    # ------------------------------------------------------------------
    PROPOSAL_READY = "PROPOSAL_READY"
    PROPOSAL_FAILED = "PROPOSAL_FAILED"
    COMMIT_SUCCEEDED = "COMMIT_SUCCEEDED"
    COMMIT_FAILED = "COMMIT_FAILED"


@dataclass(frozen=True)
class MutationEvent:
    """
    Base event type.

    All events must specify:
    - event_type: discriminant
    - ts_ms: timestamp provided by the source (or fake in tests)
    """

    event_type: MutationEventType
    ts_ms: int


# =============================================================================
# User control
# =============================================================================

@dataclass(frozen=True)
class SubmitRequested(MutationEvent):
    """
    Operator submitted a natural-language change request.

    user_id is the current user handle, or None when signed out.
    """
    text: str
    user_id: str | None


@dataclass(frozen=True)
class ConfirmRequested(MutationEvent):
    """Operator accepted (True) or discarded (False) the pending proposal."""
    accepted: bool
    user_id: str | None


@dataclass(frozen=True)
class ModeChanged(MutationEvent):
    """Operator selected a different Mode."""
    mode: Mode


# =============================================================================
# Command outcomes
# =============================================================================

@dataclass(frozen=True)
class ProposalReady(MutationEvent):
    """
    Model answered and a proposal was extracted.

    dropped_variables lists template tokens present in the current prompt
    but missing from the proposal.
    """
    request_id: int
    mode: Mode
    proposal: PromptChangeProposal
    dropped_variables: tuple[str, ...] = ()


@dataclass(frozen=True)
class ProposalFailed(MutationEvent):
    """Loading, the model call or extraction failed."""
    request_id: int
    reason: str
    error_kind: str


@dataclass(frozen=True)
class CommitSucceeded(MutationEvent):
    """Prompt written and applied to the live agent."""
    request_id: int


@dataclass(frozen=True)
class CommitFailed(MutationEvent):
    """Write or apply failed. Nothing is retried."""
    request_id: int
    reason: str
    error_kind: str
