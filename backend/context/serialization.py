"""
Message serialization for model consumption.

Responsibilities:
- Convert the system instruction + current user request into the
  two-message format the completion endpoint takes.

Non-responsibilities:
- No transcript storage
- No logging
- No workflow decisions
"""

from __future__ import annotations


def serialize_for_llm(
    *,
    system_prompt: str,
    user_text: str,
) -> list[dict[str, str]]:
    """
    Serialize a single mutation request into model message format.

    Output format:
    [
        {"role": "system", "content": "..."},
        {"role": "user", "content": "<current user request>"},
    ]

    Only the current request is sent; earlier transcript turns are not
    replayed.
    """
    return [
        {
            "role": "system",
            "content": system_prompt,
        },
        {
            "role": "user",
            "content": user_text,
        },
    ]
