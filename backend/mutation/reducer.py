"""
Pure prompt mutation reducer.

(state, event) -> (new_state, commands)

Rules:
- Pure: no side effects, no IO, no clocks.
- Deterministic: output depends only on inputs.
- Total: every (state, event) pair is handled or explicitly ignored (logged).

At most one request is in flight and at most one proposal is pending;
new submissions are rejected, never queued.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from context.transcript import EMPTY_TRANSCRIPT, append
from domain.commands import (
    Command,
    LogEvent,
    Notify,
    error_notification,
    success_notification,
)
from mutation.commands import CommitProposal, RequestProposal
from mutation.enums.state import MutationState
from mutation.events import (
    CommitFailed,
    CommitSucceeded,
    ConfirmRequested,
    ModeChanged,
    MutationEvent,
    ProposalFailed,
    ProposalReady,
    SubmitRequested,
)
from mutation.state_dataclass import MutationWorkflowState


Result = tuple[MutationWorkflowState, tuple[Command, ...]]


# =============================================================================
# User-facing text
# =============================================================================

def proposal_message(summary: str) -> str:
    return (
        "Here's what I understand you want to change:\n\n"
        f"{summary}\n\n"
        "Would you like me to apply these changes?"
    )


def failure_message(reason: str) -> str:
    return (
        f"I encountered an error: {reason}. "
        "Please try again with a different request."
    )


# =============================================================================
# Small helpers
# =============================================================================

def _log(
    state: MutationWorkflowState,
    event: MutationEvent,
    decision: str,
    details: dict[str, Any] | None = None,
) -> LogEvent:
    return LogEvent(
        event={
            "ts_ms": event.ts_ms,
            "component": "prompt_mutation",
            "state": state.state.value,
            "mode": state.mode.value,
            "event_type": event.event_type.value,
            "decision": decision,
            "request_id": state.request_id,
            "details": details or {},
        }
    )


def _ignore(state: MutationWorkflowState, event: MutationEvent, reason: str) -> Result:
    return state, (_log(state, event, "ignore", {"reason": reason}),)


def _reset(state: MutationWorkflowState, **overrides: Any) -> MutationWorkflowState:
    """Back to IDLE with no proposal and an empty transcript. Mode is kept."""
    return replace(
        state,
        state=MutationState.IDLE,
        transcript=EMPTY_TRANSCRIPT,
        pending=None,
        pending_mode=None,
        request_user_id=None,
        commit_in_flight=False,
        **overrides,
    )


# =============================================================================
# Event handlers
# =============================================================================

def _on_submit(state: MutationWorkflowState, event: SubmitRequested) -> Result:
    if not event.text.strip():
        return _ignore(state, event, "empty_text")
    if state.state is not MutationState.IDLE:
        return _ignore(state, event, f"busy:{state.state.value}")

    request_id = state.request_id + 1
    new_state = replace(
        state,
        state=MutationState.AWAITING_MODEL,
        transcript=append(state.transcript, "user", event.text),
        request_id=request_id,
        pending_mode=state.mode,
        request_user_id=event.user_id,
        last_error=None,
    )
    return new_state, (
        _log(new_state, event, "request_proposal", {"text_len": len(event.text)}),
        RequestProposal(
            request_id=request_id,
            user_id=event.user_id,
            mode=state.mode,
            user_text=event.text,
        ),
    )


def _on_proposal_ready(state: MutationWorkflowState, event: ProposalReady) -> Result:
    if state.state is not MutationState.AWAITING_MODEL or event.request_id != state.request_id:
        return _ignore(state, event, "stale_request")

    new_state = replace(
        state,
        state=MutationState.PROPOSAL_PENDING,
        transcript=append(state.transcript, "assistant", proposal_message(event.proposal.summary)),
        pending=event.proposal,
        pending_mode=event.mode,
    )

    commands: list[Command] = [
        _log(new_state, event, "proposal_pending", {"proposal_mode": event.mode.value}),
    ]
    if event.dropped_variables:
        commands.append(
            _log(
                new_state,
                event,
                "template_variables_dropped",
                {"level": "warning", "variables": sorted(event.dropped_variables)},
            )
        )
    return new_state, tuple(commands)


def _on_proposal_failed(state: MutationWorkflowState, event: ProposalFailed) -> Result:
    if state.state is not MutationState.AWAITING_MODEL or event.request_id != state.request_id:
        return _ignore(state, event, "stale_request")

    # The transcript is kept so the operator sees what failed
    new_state = replace(
        state,
        state=MutationState.IDLE,
        transcript=append(state.transcript, "assistant", failure_message(event.reason)),
        pending=None,
        pending_mode=None,
        request_user_id=None,
        last_error=event.reason,
    )
    return new_state, (
        _log(new_state, event, "proposal_failed", {"error_kind": event.error_kind, "reason": event.reason}),
        Notify(error_notification(event.reason or "Failed to process your request")),
    )


def _on_confirm(state: MutationWorkflowState, event: ConfirmRequested) -> Result:
    if event.user_id is None:
        return state, (
            _log(state, event, "auth_required", {"accepted": event.accepted}),
            Notify(error_notification("No authenticated user")),
        )
    if state.state is not MutationState.PROPOSAL_PENDING or state.pending is None:
        return _ignore(state, event, "no_pending_proposal")
    if state.commit_in_flight:
        return _ignore(state, event, "commit_in_flight")

    if not event.accepted:
        new_state = _reset(state)
        return new_state, (_log(new_state, event, "proposal_discarded"),)

    target_mode = state.pending_mode or state.mode
    target_user = state.request_user_id or event.user_id

    new_state = replace(state, commit_in_flight=True)
    commands: list[Command] = [
        _log(new_state, event, "commit_requested", {"target_mode": target_mode.value}),
    ]
    if target_mode is not state.mode:
        commands.append(
            _log(
                new_state,
                event,
                "mode_drift",
                {"level": "warning", "target_mode": target_mode.value, "selected_mode": state.mode.value},
            )
        )
    if target_user != event.user_id:
        commands.append(_log(new_state, event, "user_drift", {"level": "warning"}))

    commands.append(
        CommitProposal(
            request_id=state.request_id,
            user_id=target_user,
            mode=target_mode,
            prompt=state.pending.prompt,
        )
    )
    return new_state, tuple(commands)


def _on_commit_succeeded(state: MutationWorkflowState, event: CommitSucceeded) -> Result:
    if not state.commit_in_flight or event.request_id != state.request_id:
        return _ignore(state, event, "stale_commit")

    new_state = _reset(state, last_error=None)
    return new_state, (
        _log(new_state, event, "commit_succeeded"),
        Notify(success_notification("Prompt updated successfully")),
    )


def _on_commit_failed(state: MutationWorkflowState, event: CommitFailed) -> Result:
    if not state.commit_in_flight or event.request_id != state.request_id:
        return _ignore(state, event, "stale_commit")

    # No retry: the proposal is dropped along with the transcript
    new_state = _reset(state, last_error=event.reason)
    return new_state, (
        _log(new_state, event, "commit_failed", {"error_kind": event.error_kind, "reason": event.reason}),
        Notify(error_notification(event.reason or "Failed to update prompt")),
    )


def _on_mode_changed(state: MutationWorkflowState, event: ModeChanged) -> Result:
    if event.mode is state.mode:
        return _ignore(state, event, "same_mode")

    new_state = replace(state, mode=event.mode)
    return new_state, (
        _log(new_state, event, "mode_changed", {"from_mode": state.mode.value}),
    )


# =============================================================================
# Reducer
# =============================================================================

def reduce(state: MutationWorkflowState, event: MutationEvent) -> Result:
    """Apply one event to the mutation workflow state."""
    if isinstance(event, SubmitRequested):
        return _on_submit(state, event)
    if isinstance(event, ProposalReady):
        return _on_proposal_ready(state, event)
    if isinstance(event, ProposalFailed):
        return _on_proposal_failed(state, event)
    if isinstance(event, ConfirmRequested):
        return _on_confirm(state, event)
    if isinstance(event, CommitSucceeded):
        return _on_commit_succeeded(state, event)
    if isinstance(event, CommitFailed):
        return _on_commit_failed(state, event)
    if isinstance(event, ModeChanged):
        return _on_mode_changed(state, event)

    return _ignore(state, event, "unhandled_event")
