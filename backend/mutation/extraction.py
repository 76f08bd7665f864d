"""
Tolerant proposal extraction from model output.

The model is asked for a bare JSON object, but occasionally wraps it in
prose or a code fence. Extraction is two-stage:

1. Parse the whole text. A JSON object with text `prompt` and `summary`
   fields is returned as-is.
2. Otherwise take the first balanced object literal, scanning left to
   right, and parse it. Later candidates are never consulted.

Failures are always typed:
- StructureError: an object was recovered but a required field is
  missing or not text
- NoStructuredDataError: no balanced object was found, or the first one
  does not decode to a JSON object

The scanner tracks brace depth and skips braces inside JSON string
literals, so `{"prompt": "use {name} here", ...}` is matched whole and
stray braces in surrounding prose cannot swallow the payload.

This module is pure: no I/O, no logging.
"""

from __future__ import annotations

import json
from typing import Any, Iterator

from domain.proposal import PromptChangeProposal
from errors import NoStructuredDataError, StructureError
from spec import PROPOSAL_REQUIRED_FIELDS


def extract_proposal(text: str) -> PromptChangeProposal:
    """
    Recover a PromptChangeProposal from raw model text.

    Raises:
        StructureError, NoStructuredDataError
    """
    direct = _try_parse(text)
    if isinstance(direct, dict):
        proposal = _to_proposal(direct)
        if proposal is not None:
            return proposal

    candidate = next(iter_balanced_objects(text), None)
    parsed = _try_parse(candidate) if candidate is not None else None
    if not isinstance(parsed, dict):
        raise NoStructuredDataError("No valid JSON found in response")

    proposal = _to_proposal(parsed)
    if proposal is None:
        missing = _missing_fields(parsed)
        raise StructureError(
            f"Invalid JSON structure in response (missing or non-text: {', '.join(missing)})"
        )
    return proposal


def iter_balanced_objects(text: str) -> Iterator[str]:
    """
    Yield balanced `{...}` substrings in order of their opening brace.

    An opening brace with no matching close is skipped. Nested objects are
    yielded after their enclosing object.
    """
    start = text.find("{")
    while start != -1:
        end = _match_closing_brace(text, start)
        if end is not None:
            yield text[start:end + 1]
        start = text.find("{", start + 1)


# ------------------------------------------------------------------
# Internal helpers
# ------------------------------------------------------------------

def _match_closing_brace(text: str, start: int) -> int | None:
    """Index of the brace closing text[start], or None if unbalanced."""
    depth = 0
    in_string = False
    escaped = False

    for i in range(start, len(text)):
        ch = text[i]

        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i

    return None


def _try_parse(text: str) -> Any:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None


def _missing_fields(obj: dict[str, Any]) -> list[str]:
    return [
        name for name in PROPOSAL_REQUIRED_FIELDS
        if not isinstance(obj.get(name), str)
    ]


def _to_proposal(obj: dict[str, Any]) -> PromptChangeProposal | None:
    if _missing_fields(obj):
        return None
    return PromptChangeProposal(prompt=obj["prompt"], summary=obj["summary"])
