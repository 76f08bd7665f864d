"""
Prompt mutation controller.

Responsibilities:
- Own the mutation workflow state (immutable reducer pattern)
- Convert operator actions into events
- Execute RequestProposal / CommitProposal against injected adapters
- Convert adapter exceptions into ...Failed events
- Queue notifications for the transport

Non-responsibilities:
- Workflow decisions (mutation.reducer)
- Parsing model output (mutation.extraction)
"""

from __future__ import annotations

import time
from collections import deque
from typing import Any, Callable

from adapters.apply.base import AgentApplier
from adapters.llm.base import LLMClient
from adapters.llm.prompts import (
    build_mutation_system_prompt,
    find_template_variables,
    generate_default_prompt,
)
from adapters.persistence.base import PersistenceGateway
from context.transcript import serialize
from domain.commands import Command, LogEvent, Notification, Notify
from domain.mode import DEFAULT_MODE, Mode
from errors import AuthError
from mutation.commands import CommitProposal, RequestProposal
from mutation.enums.state import MutationState
from mutation.events import (
    CommitFailed,
    CommitSucceeded,
    ConfirmRequested,
    ModeChanged,
    MutationEvent,
    MutationEventType,
    ProposalFailed,
    ProposalReady,
    SubmitRequested,
)
from mutation.extraction import extract_proposal
from mutation.reducer import reduce
from mutation.state_dataclass import MutationWorkflowState
from observability.logger import log_event
from observability.metrics import timed


CurrentUser = Callable[[], str | None]


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _error_kind(exc: BaseException) -> str:
    return getattr(exc, "kind", "unexpected_error")


def _reason(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class PromptMutationController:
    """
    Runtime boundary for the prompt mutation workflow.

    Guarantees:
    - Reducer is called exactly once per event
    - State is swapped in before any command executes, so a second
      submit arriving while the model call is awaited is rejected
    - The persisted prompt is only written by a CommitProposal
    """

    def __init__(
        self,
        *,
        persistence: PersistenceGateway,
        llm: LLMClient,
        applier: AgentApplier,
        current_user: CurrentUser,
        mode: Mode = DEFAULT_MODE,
        workbench_id: str,
    ) -> None:
        self._persistence = persistence
        self._llm = llm
        self._applier = applier
        self._current_user = current_user
        self._workbench_id = workbench_id

        self._state = MutationWorkflowState(mode=mode)
        self._notifications: deque[Notification] = deque()

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> MutationWorkflowState:
        return self._state

    def snapshot(self) -> dict[str, Any]:
        """Transport-facing view of the workflow."""
        pending = self._state.pending
        return {
            "state": self._state.state.value,
            "mode": self._state.mode.value,
            "busy": self._state.state is not MutationState.IDLE,
            "transcript": serialize(self._state.transcript),
            "pending": (
                {**pending.to_dict(), "mode": (self._state.pending_mode or self._state.mode).value}
                if pending is not None
                else None
            ),
            "last_error": self._state.last_error,
        }

    def drain_notifications(self) -> tuple[Notification, ...]:
        if not self._notifications:
            return ()
        out = tuple(self._notifications)
        self._notifications.clear()
        return out

    # ------------------------------------------------------------------
    # Operator actions
    # ------------------------------------------------------------------

    async def submit(self, text: str) -> None:
        """Ask the model for a rewrite of the current Mode's prompt."""
        await self.handle_event(
            SubmitRequested(
                event_type=MutationEventType.SUBMIT_REQUESTED,
                ts_ms=_now_ms(),
                text=text,
                user_id=self._current_user(),
            )
        )

    async def confirm(self, accepted: bool) -> None:
        """Commit (True) or discard (False) the pending proposal."""
        await self.handle_event(
            ConfirmRequested(
                event_type=MutationEventType.CONFIRM_REQUESTED,
                ts_ms=_now_ms(),
                accepted=accepted,
                user_id=self._current_user(),
            )
        )

    async def select_mode(self, mode: Mode) -> None:
        await self.handle_event(
            ModeChanged(
                event_type=MutationEventType.MODE_CHANGED,
                ts_ms=_now_ms(),
                mode=mode,
            )
        )

    # ------------------------------------------------------------------
    # Event pipeline
    # ------------------------------------------------------------------

    async def handle_event(self, event: MutationEvent) -> None:
        """Single entry point for every event affecting workflow state."""
        new_state, commands = reduce(self._state, event)
        self._state = new_state

        for cmd in commands:
            await self._execute_command(cmd)

    async def _execute_command(self, cmd: Command) -> None:
        if isinstance(cmd, LogEvent):
            log_event({**cmd.event, "workbench_id": self._workbench_id})

        elif isinstance(cmd, Notify):
            self._notifications.append(cmd.notification)

        elif isinstance(cmd, RequestProposal):
            await self._request_proposal(cmd)

        elif isinstance(cmd, CommitProposal):
            await self._commit_proposal(cmd)

        else:
            raise RuntimeError(f"Unhandled mutation command: {type(cmd).__name__}")

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------

    async def _request_proposal(self, cmd: RequestProposal) -> None:
        try:
            if cmd.user_id is None:
                raise AuthError("No authenticated user")

            record = await self._persistence.load_record(cmd.user_id)
            current_prompt = record.general_prompt(cmd.mode)
            if current_prompt is None:
                current_prompt = generate_default_prompt(record.document, cmd.mode)
                log_event({
                    "event_type": "DEFAULT_PROMPT_GENERATED",
                    "workbench_id": self._workbench_id,
                    "mode": cmd.mode.value,
                    "request_id": cmd.request_id,
                })

            with timed(
                "model_completion",
                workbench_id=self._workbench_id,
                state=self._state.state.value,
                details={"request_id": cmd.request_id},
            ):
                text = await self._llm.complete(
                    system_text=build_mutation_system_prompt(current_prompt),
                    user_text=cmd.user_text,
                )

            proposal = extract_proposal(text)

        except Exception as exc:  # pylint: disable=broad-exception-caught
            await self.handle_event(
                ProposalFailed(
                    event_type=MutationEventType.PROPOSAL_FAILED,
                    ts_ms=_now_ms(),
                    request_id=cmd.request_id,
                    reason=_reason(exc),
                    error_kind=_error_kind(exc),
                )
            )
            return

        dropped = find_template_variables(current_prompt) - find_template_variables(proposal.prompt)
        await self.handle_event(
            ProposalReady(
                event_type=MutationEventType.PROPOSAL_READY,
                ts_ms=_now_ms(),
                request_id=cmd.request_id,
                mode=cmd.mode,
                proposal=proposal,
                dropped_variables=tuple(sorted(dropped)),
            )
        )

    async def _commit_proposal(self, cmd: CommitProposal) -> None:
        written = False
        try:
            with timed(
                "prompt_commit",
                workbench_id=self._workbench_id,
                state=self._state.state.value,
                details={"request_id": cmd.request_id, "mode": cmd.mode.value},
            ):
                await self._persistence.update(cmd.user_id, cmd.mode.prompt_field, cmd.prompt)
                written = True
                await self._applier.apply(user_id=cmd.user_id, mode=cmd.mode)

        except Exception as exc:  # pylint: disable=broad-exception-caught
            if written:
                # The store already holds the new prompt; the live agent does not
                log_event({
                    "event_type": "COMMIT_APPLY_FAILED_AFTER_WRITE",
                    "workbench_id": self._workbench_id,
                    "mode": cmd.mode.value,
                    "request_id": cmd.request_id,
                    "error": _reason(exc),
                })
            await self.handle_event(
                CommitFailed(
                    event_type=MutationEventType.COMMIT_FAILED,
                    ts_ms=_now_ms(),
                    request_id=cmd.request_id,
                    reason=_reason(exc),
                    error_kind=_error_kind(exc),
                )
            )
            return

        await self.handle_event(
            CommitSucceeded(
                event_type=MutationEventType.COMMIT_SUCCEEDED,
                ts_ms=_now_ms(),
                request_id=cmd.request_id,
            )
        )
