"""Prompt change proposal produced by the model."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PromptChangeProposal:
    """Candidate prompt rewrite plus a human-readable summary."""
    prompt: str
    summary: str

    def to_dict(self) -> dict[str, str]:
        return {"prompt": self.prompt, "summary": self.summary}
