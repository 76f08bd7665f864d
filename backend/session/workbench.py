"""
Workbench session container.

- One instance per WebSocket connection
- Owns the selected Mode and the AgentConfig loaded for it
- Owns both controllers (attached by BrainGateway)
- Buffers outbound control messages and agent audio
- NOT a state machine; contains no workflow logic
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from calls.controller import CallSessionController
from domain.commands import Notification
from domain.mode import DEFAULT_MODE, Mode
from domain.records import AgentConfig
from mutation.controller import PromptMutationController


@dataclass
class WorkbenchSession:
    """Mutable runtime container for a single workbench connection."""

    # ------------------------------------------------------------------
    # Identity / lifecycle
    # ------------------------------------------------------------------

    workbench_id: str

    # Opaque handle from the upstream identity provider; None when signed out
    user_id: str | None = None
    created_at: float = field(default_factory=time.time)

    # ------------------------------------------------------------------
    # Selection (shared read-only with the call controller)
    # ------------------------------------------------------------------

    mode: Mode = DEFAULT_MODE
    agent_config: AgentConfig | None = None

    # ------------------------------------------------------------------
    # Controllers
    # ------------------------------------------------------------------

    mutation: PromptMutationController | None = None
    calls: CallSessionController | None = None

    def __post_init__(self) -> None:
        self._notifications: deque[Notification] = deque()
        self._audio_out: deque[bytes] = deque()

    # ------------------------------------------------------------------
    # Wiring helpers (called by BrainGateway)
    # ------------------------------------------------------------------

    def attach_mutation(self, controller: PromptMutationController) -> None:
        self.mutation = controller

    def attach_calls(self, controller: CallSessionController) -> None:
        self.calls = controller

    # ------------------------------------------------------------------
    # Accessors handed to controllers
    # ------------------------------------------------------------------

    def current_user(self) -> str | None:
        return self.user_id

    def current_agent_config(self) -> AgentConfig | None:
        return self.agent_config

    # ------------------------------------------------------------------
    # Outbound buffers
    # ------------------------------------------------------------------

    def notify(self, notification: Notification) -> None:
        """Queue a session-level notification (mode switch, load errors)."""
        self._notifications.append(notification)

    def drain_notifications(self) -> tuple[Notification, ...]:
        """
        Drain session, mutation and call notifications in that order.

        After this call every queue is empty.
        """
        out: list[Notification] = list(self._notifications)
        self._notifications.clear()
        if self.mutation is not None:
            out.extend(self.mutation.drain_notifications())
        if self.calls is not None:
            out.extend(self.calls.drain_notifications())
        return tuple(out)

    async def enqueue_audio(self, pcm_bytes: bytes) -> None:
        """Audio sink for the call provider (agent speech)."""
        self._audio_out.append(pcm_bytes)

    def drain_audio(self) -> tuple[bytes, ...]:
        if not self._audio_out:
            return ()
        out = tuple(self._audio_out)
        self._audio_out.clear()
        return out

    # ------------------------------------------------------------------
    # Observability helpers (read-only)
    # ------------------------------------------------------------------

    def log_context(self) -> dict[str, Any]:
        return {
            "workbench_id": self.workbench_id,
            "mode": self.mode.value,
            "authenticated": self.user_id is not None,
        }

    def snapshot(self) -> dict[str, Any]:
        """STATE message body."""
        return {
            "workbench_id": self.workbench_id,
            "mode": self.mode.value,
            "authenticated": self.user_id is not None,
            "agent_loaded": self.agent_config is not None,
            "mutation": self.mutation.snapshot() if self.mutation is not None else None,
            "call": self.calls.snapshot() if self.calls is not None else None,
        }
