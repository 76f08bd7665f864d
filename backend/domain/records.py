"""
Typed views over a user's configuration record.

Raw documents are loosely typed mappings. They are validated here, at the
persistence boundary, into per-Mode records so that a missing or malformed
field is a typed error rather than a None flowing downstream.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from domain.mode import Mode
from errors import InvalidRecordError
from spec import AGENT_ID_KEY, AGENT_LLM_ID_KEY


@dataclass(frozen=True)
class AgentConfig:
    """
    Agent data for one Mode.

    agent_id is required to start a voice session; llm_id is the
    provider-side LLM that receives committed prompts (optional).
    """
    mode: Mode
    agent_id: str
    llm_id: str | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ModeConfig:
    """Validated slice of a user record for a single Mode."""
    mode: Mode
    general_prompt: str | None
    agent: AgentConfig | None


@dataclass(frozen=True)
class UserRecord:
    """
    A user's configuration document plus its validated per-Mode views.

    document is kept whole because the default prompt generator reads
    fields outside any Mode.
    """
    user_id: str
    document: Mapping[str, Any]

    def for_mode(self, mode: Mode) -> ModeConfig:
        """
        Validate and return the slice for a Mode.

        Raises:
            InvalidRecordError if a present field has the wrong shape.
        """
        return ModeConfig(
            mode=mode,
            general_prompt=_parse_prompt(self.document, mode),
            agent=_parse_agent(self.document, mode),
        )

    def general_prompt(self, mode: Mode) -> str | None:
        """Validated prompt text for a Mode; agent data is not checked."""
        return _parse_prompt(self.document, mode)


def _parse_prompt(document: Mapping[str, Any], mode: Mode) -> str | None:
    value = document.get(mode.prompt_field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidRecordError(
            f"{mode.prompt_field} must be text, got {type(value).__name__}"
        )
    # An empty prompt is treated as absent
    return value or None


def _parse_agent(document: Mapping[str, Any], mode: Mode) -> AgentConfig | None:
    raw = document.get(mode.agent_data_field)
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raise InvalidRecordError(
            f"{mode.agent_data_field} must be an object, got {type(raw).__name__}"
        )

    agent_id = raw.get(AGENT_ID_KEY)
    if not isinstance(agent_id, str) or not agent_id:
        raise InvalidRecordError(f"{mode.agent_data_field}.{AGENT_ID_KEY} is missing")

    llm_id = raw.get(AGENT_LLM_ID_KEY)
    if llm_id is not None and not isinstance(llm_id, str):
        raise InvalidRecordError(f"{mode.agent_data_field}.{AGENT_LLM_ID_KEY} must be text")

    return AgentConfig(
        mode=mode,
        agent_id=agent_id,
        llm_id=llm_id or None,
        extra={k: v for k, v in raw.items() if k not in (AGENT_ID_KEY, AGENT_LLM_ID_KEY)},
    )
