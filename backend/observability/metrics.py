"""
Duration metrics for workbench side effects.

Measured operations:
- model_completion: one LLMClient.complete() call
- prompt_commit: persistence write + agent apply
- call_session_start: create_session + start on the call provider

Each measurement emits exactly one METRIC_TIMER event through
observability.logger, tagged with the outcome of the measured block.
Durations use the monotonic clock; ts_ms stays wall-clock for correlation.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Iterator

from observability.logger import log_event


def emit_duration(
    name: str,
    duration_ms: int,
    *,
    outcome: str,
    workbench_id: str | None = None,
    state: str | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """Emit one METRIC_TIMER event for an already measured duration."""
    log_event({
        "ts_ms": int(time.time() * 1000),
        "event_type": "METRIC_TIMER",
        "metric": name,
        "value_ms": duration_ms,
        "outcome": outcome,
        "workbench_id": workbench_id,
        "state": state,
        "details": details or {},
    })


@contextmanager
def timed(
    name: str,
    *,
    workbench_id: str | None = None,
    state: str | None = None,
    details: dict[str, Any] | None = None,
) -> Iterator[None]:
    """
    Time the enclosed block.

    The metric is emitted once, after the block exits. A raising block is
    recorded with outcome "error:<ExceptionClass>" and the exception
    propagates unchanged.

    Usage:
        with timed("model_completion", workbench_id=self._workbench_id):
            text = await self._llm.complete(...)
    """
    start_ns = time.monotonic_ns()
    outcome = "ok"
    try:
        yield
    except BaseException as exc:
        outcome = f"error:{type(exc).__name__}"
        raise
    finally:
        emit_duration(
            name,
            (time.monotonic_ns() - start_ns) // 1_000_000,
            outcome=outcome,
            workbench_id=workbench_id,
            state=state,
            details=details,
        )
