"""
Prompt text used by the mutation workflow.

- The prompt-engineer system instruction sent with every request
- The default agent prompt used when a Mode has none persisted
- Template variable detection
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from domain.mode import Mode
from spec import TEMPLATE_VARIABLE_PATTERN


PROMPT_ENGINEER_SYSTEM_PROMPT_V1: str = """
You are a prompt engineering expert. Your task is to modify the provided prompt according to the user's request.

Rules:
- Preserve every templated variable exactly as written, including its delimiters. Variables look like {{name}} or ${name}.
- Do not add, remove, or rename variables.
- Change only what the request asks for.

Format your response as a JSON object with exactly these fields:
{
  "prompt": "the modified prompt",
  "summary": "a brief summary of the changes made"
}

Output the JSON object only.

Current prompt:
""".lstrip()


def build_mutation_system_prompt(current_prompt: str) -> str:
    """Embed the current persisted prompt into the system instruction."""
    return PROMPT_ENGINEER_SYSTEM_PROMPT_V1 + current_prompt


# Fields copied into the default prompt when present on the record
_PROFILE_FIELDS: tuple[tuple[str, str], ...] = (
    ("businessName", "Business name"),
    ("businessDescription", "About the business"),
    ("address", "Address"),
    ("phone", "Phone"),
    ("hours", "Opening hours"),
    ("website", "Website"),
)


def generate_default_prompt(document: Mapping[str, Any], mode: Mode) -> str:
    """
    Build a starting prompt from the full user record for a Mode.

    Used when `<mode>GeneralPrompt` is absent so the first edit has
    something to work from.
    """
    business = document.get("businessName") or "the business"

    lines = [
        f"You are a friendly phone assistant for {business}, speaking with {mode.value} callers.",
        "Keep responses short and conversational, as if talking on the phone.",
        "If you do not know an answer, say so and offer to take a message.",
    ]

    facts = [
        f"- {label}: {document[key]}"
        for key, label in _PROFILE_FIELDS
        if isinstance(document.get(key), str) and document[key]
    ]
    if facts:
        lines.append("")
        lines.append("Business details:")
        lines.extend(facts)

    return "\n".join(lines)


_TEMPLATE_VARIABLE_RE = re.compile(TEMPLATE_VARIABLE_PATTERN)


def find_template_variables(text: str) -> set[str]:
    """Return the set of templated variable tokens in text, verbatim."""
    return set(_TEMPLATE_VARIABLE_RE.findall(text))
