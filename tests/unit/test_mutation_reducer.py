# pylint: disable=missing-module-docstring,missing-function-docstring
from dataclasses import replace

from context.transcript import Message
from domain.commands import LogEvent, Notify
from domain.mode import Mode
from domain.proposal import PromptChangeProposal
from mutation.commands import CommitProposal, RequestProposal
from mutation.enums.state import MutationState
from mutation.events import (
    CommitFailed,
    CommitSucceeded,
    ConfirmRequested,
    ModeChanged,
    MutationEventType,
    ProposalFailed,
    ProposalReady,
    SubmitRequested,
)
from mutation.reducer import reduce
from mutation.state_dataclass import MutationWorkflowState


USER = "user_1"
PROPOSAL = PromptChangeProposal(prompt="Hi ${name}!", summary="Made greeting warmer")


# ---------------------------------------------------------------------
# Event helpers
# ---------------------------------------------------------------------

def submit(text: str = "make it friendlier", user_id: str | None = USER) -> SubmitRequested:
    return SubmitRequested(
        event_type=MutationEventType.SUBMIT_REQUESTED, ts_ms=0, text=text, user_id=user_id
    )


def ready(request_id: int, mode: Mode = Mode.CUSTOMER, dropped: tuple[str, ...] = ()) -> ProposalReady:
    return ProposalReady(
        event_type=MutationEventType.PROPOSAL_READY,
        ts_ms=0,
        request_id=request_id,
        mode=mode,
        proposal=PROPOSAL,
        dropped_variables=dropped,
    )


def failed(request_id: int, reason: str = "No valid JSON found in response") -> ProposalFailed:
    return ProposalFailed(
        event_type=MutationEventType.PROPOSAL_FAILED,
        ts_ms=0,
        request_id=request_id,
        reason=reason,
        error_kind="no_structured_data",
    )


def confirm(accepted: bool, user_id: str | None = USER) -> ConfirmRequested:
    return ConfirmRequested(
        event_type=MutationEventType.CONFIRM_REQUESTED, ts_ms=0, accepted=accepted, user_id=user_id
    )


def commit_ok(request_id: int) -> CommitSucceeded:
    return CommitSucceeded(event_type=MutationEventType.COMMIT_SUCCEEDED, ts_ms=0, request_id=request_id)


def commit_failed(request_id: int) -> CommitFailed:
    return CommitFailed(
        event_type=MutationEventType.COMMIT_FAILED,
        ts_ms=0,
        request_id=request_id,
        reason="write refused",
        error_kind="persistence_error",
    )


def mode_changed(mode: Mode) -> ModeChanged:
    return ModeChanged(event_type=MutationEventType.MODE_CHANGED, ts_ms=0, mode=mode)


def pending_state() -> MutationWorkflowState:
    state, _ = reduce(MutationWorkflowState(), submit())
    state, _ = reduce(state, ready(state.request_id))
    return state


def decisions(commands: tuple[object, ...]) -> list[str]:
    return [c.event["decision"] for c in commands if isinstance(c, LogEvent)]


# ---------------------------------------------------------------------
# Submit
# ---------------------------------------------------------------------

def test_submit_from_idle_requests_proposal() -> None:
    state, commands = reduce(MutationWorkflowState(), submit())

    assert state.state is MutationState.AWAITING_MODEL
    assert state.request_id == 1
    assert state.transcript == (Message(role="user", content="make it friendlier"),)
    requests = [c for c in commands if isinstance(c, RequestProposal)]
    assert requests == [
        RequestProposal(request_id=1, user_id=USER, mode=Mode.CUSTOMER, user_text="make it friendlier")
    ]


def test_whitespace_submit_is_rejected() -> None:
    initial = MutationWorkflowState()

    state, commands = reduce(initial, submit("   \n"))

    assert state == initial
    assert decisions(commands) == ["ignore"]


def test_submit_while_awaiting_model_is_rejected_without_side_effects() -> None:
    awaiting, _ = reduce(MutationWorkflowState(), submit())

    state, commands = reduce(awaiting, submit("another request"))

    assert state == awaiting
    assert not any(isinstance(c, RequestProposal) for c in commands)


def test_submit_while_proposal_pending_is_rejected() -> None:
    pending = pending_state()

    state, commands = reduce(pending, submit("another request"))

    assert state == pending
    assert not any(isinstance(c, RequestProposal) for c in commands)


def test_unauthenticated_submit_still_requests_and_records_user_message() -> None:
    state, commands = reduce(MutationWorkflowState(), submit(user_id=None))

    assert state.state is MutationState.AWAITING_MODEL
    assert len(state.transcript) == 1
    assert any(isinstance(c, RequestProposal) and c.user_id is None for c in commands)


# ---------------------------------------------------------------------
# Model results
# ---------------------------------------------------------------------

def test_proposal_ready_moves_to_pending_with_summary_message() -> None:
    state = pending_state()

    assert state.state is MutationState.PROPOSAL_PENDING
    assert state.pending == PROPOSAL
    assert state.pending_mode is Mode.CUSTOMER
    assert state.transcript[-1].role == "assistant"
    assert "Made greeting warmer" in state.transcript[-1].content
    assert state.transcript[-1].content.endswith("Would you like me to apply these changes?")


def test_stale_proposal_is_ignored() -> None:
    awaiting, _ = reduce(MutationWorkflowState(), submit())

    state, commands = reduce(awaiting, ready(request_id=awaiting.request_id - 1))

    assert state == awaiting
    assert decisions(commands) == ["ignore"]


def test_dropped_variables_are_logged_but_proposal_offered() -> None:
    awaiting, _ = reduce(MutationWorkflowState(), submit())

    state, commands = reduce(awaiting, ready(awaiting.request_id, dropped=("${name}",)))

    assert state.state is MutationState.PROPOSAL_PENDING
    warnings = [
        c.event for c in commands
        if isinstance(c, LogEvent) and c.event["decision"] == "template_variables_dropped"
    ]
    assert len(warnings) == 1
    assert warnings[0]["details"]["variables"] == ["${name}"]


def test_proposal_failure_returns_to_idle_with_error_message() -> None:
    awaiting, _ = reduce(MutationWorkflowState(), submit())

    state, commands = reduce(awaiting, failed(awaiting.request_id))

    assert state.state is MutationState.IDLE
    assert state.pending is None
    assert state.transcript[-1].role == "assistant"
    assert state.transcript[-1].content.startswith(
        "I encountered an error: No valid JSON found in response."
    )
    notes = [c.notification for c in commands if isinstance(c, Notify)]
    assert [n.level for n in notes] == ["error"]
    assert notes[0].duration_ms == 5000


def test_new_submit_accepted_after_failure() -> None:
    awaiting, _ = reduce(MutationWorkflowState(), submit())
    idle, _ = reduce(awaiting, failed(awaiting.request_id))

    state, commands = reduce(idle, submit("try again"))

    assert state.state is MutationState.AWAITING_MODEL
    assert state.request_id == 2
    assert any(isinstance(c, RequestProposal) for c in commands)


# ---------------------------------------------------------------------
# Confirm
# ---------------------------------------------------------------------

def test_confirm_true_commits_pending_prompt_to_origin_mode() -> None:
    pending = pending_state()

    state, commands = reduce(pending, confirm(True))

    assert state.commit_in_flight
    commits = [c for c in commands if isinstance(c, CommitProposal)]
    assert commits == [
        CommitProposal(request_id=1, user_id=USER, mode=Mode.CUSTOMER, prompt=PROPOSAL.prompt)
    ]


def test_confirm_false_discards_without_commit() -> None:
    pending = pending_state()

    state, commands = reduce(pending, confirm(False))

    assert state.state is MutationState.IDLE
    assert state.pending is None
    assert state.transcript == ()
    assert not any(isinstance(c, CommitProposal) for c in commands)


def test_confirm_without_user_is_rejected_and_notified() -> None:
    pending = pending_state()

    for accepted in (True, False):
        state, commands = reduce(pending, confirm(accepted, user_id=None))

        assert state == pending
        assert not any(isinstance(c, CommitProposal) for c in commands)
        assert any(isinstance(c, Notify) and c.notification.level == "error" for c in commands)


def test_confirm_without_pending_is_noop() -> None:
    initial = MutationWorkflowState()

    state, commands = reduce(initial, confirm(True))

    assert state == initial
    assert not any(isinstance(c, CommitProposal) for c in commands)


def test_double_confirm_commits_once() -> None:
    committing, _ = reduce(pending_state(), confirm(True))

    state, commands = reduce(committing, confirm(True))

    assert state == committing
    assert not any(isinstance(c, CommitProposal) for c in commands)


def test_commit_after_mode_switch_targets_origin_mode_and_logs_drift() -> None:
    pending = pending_state()
    switched, _ = reduce(pending, mode_changed(Mode.SUPPLIER))

    _, commands = reduce(switched, confirm(True))

    commits = [c for c in commands if isinstance(c, CommitProposal)]
    assert commits[0].mode is Mode.CUSTOMER
    assert "mode_drift" in decisions(commands)


def test_commit_success_resets_and_notifies() -> None:
    committing, _ = reduce(pending_state(), confirm(True))

    state, commands = reduce(committing, commit_ok(committing.request_id))

    assert state.state is MutationState.IDLE
    assert state.transcript == ()
    assert state.pending is None
    assert not state.commit_in_flight
    notes = [c.notification for c in commands if isinstance(c, Notify)]
    assert [(n.level, n.description, n.duration_ms) for n in notes] == [
        ("success", "Prompt updated successfully", 3000)
    ]


def test_commit_failure_clears_proposal_and_transcript() -> None:
    committing, _ = reduce(pending_state(), confirm(True))

    state, commands = reduce(committing, commit_failed(committing.request_id))

    assert state.state is MutationState.IDLE
    assert state.pending is None
    assert state.transcript == ()
    assert state.last_error == "write refused"
    assert any(isinstance(c, Notify) and c.notification.level == "error" for c in commands)


def test_commit_result_without_commit_in_flight_is_ignored() -> None:
    pending = pending_state()

    state, _ = reduce(pending, commit_ok(pending.request_id))

    assert state == pending


# ---------------------------------------------------------------------
# Mode
# ---------------------------------------------------------------------

def test_mode_change_does_not_cancel_in_flight_request() -> None:
    awaiting, _ = reduce(MutationWorkflowState(), submit())

    switched, _ = reduce(awaiting, mode_changed(Mode.SUPPLIER))
    state, _ = reduce(switched, ready(awaiting.request_id))

    assert switched.state is MutationState.AWAITING_MODEL
    assert state.state is MutationState.PROPOSAL_PENDING
    assert state.mode is Mode.SUPPLIER
    assert state.pending_mode is Mode.CUSTOMER


def test_same_mode_is_ignored() -> None:
    initial = replace(MutationWorkflowState(), mode=Mode.SUPPLIER)

    state, commands = reduce(initial, mode_changed(Mode.SUPPLIER))

    assert state == initial
    assert decisions(commands) == ["ignore"]


def test_every_command_batch_carries_a_log_event() -> None:
    state = MutationWorkflowState()
    for event in (submit(), ready(1), confirm(True), commit_ok(1)):
        state, commands = reduce(state, event)
        assert any(isinstance(c, LogEvent) for c in commands)
        for c in commands:
            if isinstance(c, LogEvent):
                assert {"ts_ms", "state", "mode", "event_type", "decision", "request_id"} <= c.event.keys()
