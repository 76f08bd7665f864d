"""
LLM client contract.

Purpose:
- Define the interface for single-shot structured completions.
- Keep workflow, parsing and error presentation OUT of the client.

Rules:
- This file contains NO logic.
- No retries.
- No parsing of the model's answer.
- No knowledge of transcripts, proposals or the state machine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class LLMClient(ABC):
    """
    Abstract base class for completion clients.

    The client is a *dumb pipe*:
    (system text, user text) -> vendor -> model text.

    Controller responsibilities (NOT here):
    - When to call
    - What the system instruction contains
    - How the answer is interpreted
    - What the user sees on failure
    """

    @abstractmethod
    async def complete(self, *, system_text: str, user_text: str) -> str:
        """
        Run one completion and return the model's raw text.

        Contract:
        - Sends exactly one request; must NOT retry internally.
        - Requests JSON-object output with bounded length.
        - Raises ModelRequestError on transport failure, non-success
          status, or a response without message content. The error's
          upstream_message carries the provider's message when present.
        """
        raise NotImplementedError
