"""
Agent applier contract.

After a prompt is committed, the live agent must pick it up. The applier
performs that refresh, keyed by user id and Mode.

Rules:
- Called only after the persisted write succeeded.
- Must NOT retry internally.
- Raises AgentApplyError (or PersistenceError while re-reading the
  record) on failure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from domain.mode import Mode


class AgentApplier(ABC):
    """Abstract base class for live-agent refresh."""

    @abstractmethod
    async def apply(self, *, user_id: str, mode: Mode) -> None:
        """Push the currently persisted configuration for a Mode live."""
        raise NotImplementedError


class NoopAgentApplier(AgentApplier):
    """Applier for deployments where the agent reads the store directly."""

    async def apply(self, *, user_id: str, mode: Mode) -> None:
        return None
