"""
Mutation transcript.

Responsibilities:
- Define the Message value type
- Provide pure append/serialize helpers over an immutable tuple

The transcript is append-only while a mutation session is open and is
cleared as a whole on discard or after a successful commit. It lives in the
reducer's frozen state, so every helper returns a new tuple.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


Role = Literal["user", "assistant", "system"]

Transcript = tuple["Message", ...]

EMPTY_TRANSCRIPT: Transcript = ()


@dataclass(frozen=True)
class Message:
    """Single transcript entry."""
    role: Role
    content: str


def append(transcript: Transcript, role: Role, content: str) -> Transcript:
    """Return a new transcript with one message appended."""
    return transcript + (Message(role=role, content=content),)


def serialize(transcript: Transcript) -> list[dict[str, str]]:
    """
    Serialize messages into a role/content structure.

    Output format:
    [
      {"role": "user", "content": "..."},
      {"role": "assistant", "content": "..."},
    ]
    """
    return [
        {"role": m.role, "content": m.content}
        for m in transcript
    ]
