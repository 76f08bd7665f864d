# pylint: disable=missing-module-docstring,missing-function-docstring
import asyncio
import json
from typing import Any

import pytest

import mutation.controller as controller_mod
from domain.mode import Mode
from errors import AgentApplyError, ModelRequestError, PersistenceError
from mutation.controller import PromptMutationController
from mutation.enums.state import MutationState

from fakes import FakeApplier, FakeLLM, RecordingPersistence


USER = "user_1"
GREETING = "Hello ${name}, how can I help?"
WARMER = "Hi there ${name}! It's so lovely to hear from you. How can I help today?"


@pytest.fixture(name="logged")
def fixture_logged(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    emitted: list[dict[str, Any]] = []
    monkeypatch.setattr(controller_mod, "log_event", emitted.append)
    return emitted


def make_controller(
    llm: FakeLLM,
    *,
    persistence: RecordingPersistence | None = None,
    applier: FakeApplier | None = None,
    user: str | None = USER,
) -> tuple[PromptMutationController, RecordingPersistence, FakeApplier]:
    persistence = persistence or RecordingPersistence({
        USER: {
            "businessName": "Luigi's",
            "customerGeneralPrompt": GREETING,
            "supplierGeneralPrompt": "Supplier prompt",
            "customerAgentData": {"agent_id": "agent_c", "llm_id": "llm_c"},
        }
    })
    applier = applier or FakeApplier()
    controller = PromptMutationController(
        persistence=persistence,
        llm=llm,
        applier=applier,
        current_user=lambda: user,
        workbench_id="wb_test",
    )
    return controller, persistence, applier


def answer(prompt: str = WARMER, summary: str = "Made greeting warmer") -> str:
    return json.dumps({"prompt": prompt, "summary": summary})


# ---------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------

def test_friendlier_greeting_end_to_end(logged: list[dict[str, Any]]) -> None:
    _ = logged
    llm = FakeLLM(answer())
    controller, persistence, applier = make_controller(llm)

    async def run() -> None:
        await controller.submit("make it friendlier")

        assert controller.state.state is MutationState.PROPOSAL_PENDING
        last = controller.state.transcript[-1]
        assert last.role == "assistant"
        assert "Made greeting warmer" in last.content

        await controller.confirm(True)

    asyncio.run(run())

    assert persistence.updates == [(USER, "customerGeneralPrompt", WARMER)]
    assert "${name}" in persistence.updates[0][2]
    assert applier.calls == [(USER, Mode.CUSTOMER)]
    assert controller.state.state is MutationState.IDLE
    assert controller.state.transcript == ()
    notes = controller.drain_notifications()
    assert [n.description for n in notes] == ["Prompt updated successfully"]


def test_system_prompt_embeds_current_persisted_prompt(logged: list[dict[str, Any]]) -> None:
    _ = logged
    llm = FakeLLM(answer())
    controller, _, _ = make_controller(llm)

    asyncio.run(controller.submit("make it friendlier"))

    assert len(llm.calls) == 1
    assert llm.calls[0]["system_text"].endswith("Current prompt:\n" + GREETING)
    assert llm.calls[0]["user_text"] == "make it friendlier"


def test_plain_prose_answer_is_an_error(logged: list[dict[str, Any]]) -> None:
    _ = logged
    llm = FakeLLM("I would make the greeting warmer by adding a hello.")
    controller, persistence, _ = make_controller(llm)

    asyncio.run(controller.submit("make it friendlier"))

    state = controller.state
    assert state.state is MutationState.IDLE
    assert state.pending is None
    assert state.transcript[-1].role == "assistant"
    assert "No valid JSON found in response" in state.transcript[-1].content
    assert persistence.updates == []
    assert [n.level for n in controller.drain_notifications()] == ["error"]


def test_model_error_surfaces_upstream_message(logged: list[dict[str, Any]]) -> None:
    llm = FakeLLM(ModelRequestError("Model API error: invalid key", upstream_message="invalid key"))
    controller, _, _ = make_controller(llm)

    asyncio.run(controller.submit("make it friendlier"))

    assert "Model API error: invalid key" in controller.state.transcript[-1].content
    assert controller.state.last_error == "Model API error: invalid key"
    failures = [e for e in logged if e.get("decision") == "proposal_failed"]
    assert failures[0]["details"]["error_kind"] == "model_request_error"


def test_missing_user_fails_submit_with_auth_error(logged: list[dict[str, Any]]) -> None:
    llm = FakeLLM(answer())
    controller, _, _ = make_controller(llm, user=None)

    asyncio.run(controller.submit("make it friendlier"))

    assert llm.calls == []
    assert controller.state.state is MutationState.IDLE
    assert controller.state.transcript[0].content == "make it friendlier"
    failures = [e for e in logged if e.get("decision") == "proposal_failed"]
    assert failures[0]["details"]["error_kind"] == "auth_error"


def test_absent_prompt_uses_generated_default(logged: list[dict[str, Any]]) -> None:
    persistence = RecordingPersistence({USER: {"businessName": "Luigi's"}})
    llm = FakeLLM(answer())
    controller, _, _ = make_controller(llm, persistence=persistence)

    asyncio.run(controller.submit("make it friendlier"))

    assert "Luigi's" in llm.calls[0]["system_text"]
    assert any(e.get("event_type") == "DEFAULT_PROMPT_GENERATED" for e in logged)


# ---------------------------------------------------------------------
# Confirm / commit
# ---------------------------------------------------------------------

def test_discard_never_writes(logged: list[dict[str, Any]]) -> None:
    _ = logged
    controller, persistence, applier = make_controller(FakeLLM(answer()))

    async def run() -> None:
        await controller.submit("make it friendlier")
        await controller.confirm(False)

    asyncio.run(run())

    assert persistence.updates == []
    assert applier.calls == []
    assert controller.state.state is MutationState.IDLE
    assert controller.state.transcript == ()


def test_commit_writes_only_the_mode_field(logged: list[dict[str, Any]]) -> None:
    _ = logged
    controller, persistence, _ = make_controller(FakeLLM(answer()))

    async def run() -> dict[str, Any]:
        await controller.submit("make it friendlier")
        await controller.confirm(True)
        return dict(await persistence.get(USER))

    doc = asyncio.run(run())

    assert doc["customerGeneralPrompt"] == WARMER
    assert doc["supplierGeneralPrompt"] == "Supplier prompt"
    assert doc["customerAgentData"] == {"agent_id": "agent_c", "llm_id": "llm_c"}
    assert doc["businessName"] == "Luigi's"


def test_write_failure_clears_pending_and_does_not_apply(logged: list[dict[str, Any]]) -> None:
    _ = logged
    controller, persistence, applier = make_controller(FakeLLM(answer()))
    persistence.update_error = PersistenceError("disk full")

    async def run() -> None:
        await controller.submit("make it friendlier")
        await controller.confirm(True)

    asyncio.run(run())

    assert applier.calls == []
    assert controller.state.state is MutationState.IDLE
    assert controller.state.pending is None
    assert controller.state.transcript == ()
    notes = controller.drain_notifications()
    assert [(n.level, n.description) for n in notes] == [("error", "disk full")]


def test_apply_failure_after_write_is_reported(logged: list[dict[str, Any]]) -> None:
    controller, persistence, _ = make_controller(
        FakeLLM(answer()), applier=FakeApplier(error=AgentApplyError("Agent update failed: HTTP 500"))
    )

    async def run() -> None:
        await controller.submit("make it friendlier")
        await controller.confirm(True)

    asyncio.run(run())

    assert len(persistence.updates) == 1
    assert controller.state.state is MutationState.IDLE
    assert any(e.get("event_type") == "COMMIT_APPLY_FAILED_AFTER_WRITE" for e in logged)
    assert [n.level for n in controller.drain_notifications()] == ["error"]


def test_commit_after_mode_switch_writes_origin_mode(logged: list[dict[str, Any]]) -> None:
    controller, persistence, applier = make_controller(FakeLLM(answer()))

    async def run() -> None:
        await controller.submit("make it friendlier")
        await controller.select_mode(Mode.SUPPLIER)
        await controller.confirm(True)

    asyncio.run(run())

    assert persistence.updates == [(USER, "customerGeneralPrompt", WARMER)]
    assert applier.calls == [(USER, Mode.CUSTOMER)]
    assert any(e.get("decision") == "mode_drift" for e in logged)


# ---------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------

def test_second_submit_while_awaiting_model_is_rejected(logged: list[dict[str, Any]]) -> None:
    _ = logged

    async def run() -> tuple[FakeLLM, PromptMutationController]:
        gate = asyncio.Event()
        llm = FakeLLM(answer(), gate=gate)
        controller, _, _ = make_controller(llm)

        first = asyncio.create_task(controller.submit("make it friendlier"))
        await asyncio.sleep(0)
        assert controller.state.state is MutationState.AWAITING_MODEL

        await controller.submit("and shorter")
        gate.set()
        await first
        return llm, controller

    llm, controller = asyncio.run(run())

    assert len(llm.calls) == 1
    user_messages = [m for m in controller.state.transcript if m.role == "user"]
    assert [m.content for m in user_messages] == ["make it friendlier"]
    assert controller.state.state is MutationState.PROPOSAL_PENDING


def test_snapshot_exposes_pending_proposal(logged: list[dict[str, Any]]) -> None:
    _ = logged
    controller, _, _ = make_controller(FakeLLM(answer()))

    asyncio.run(controller.submit("make it friendlier"))
    snap = controller.snapshot()

    assert snap["state"] == "proposal-pending"
    assert snap["mode"] == "customer"
    assert snap["busy"] is True
    assert snap["pending"] == {"prompt": WARMER, "summary": "Made greeting warmer", "mode": "customer"}
    assert [m["role"] for m in snap["transcript"]] == ["user", "assistant"]
