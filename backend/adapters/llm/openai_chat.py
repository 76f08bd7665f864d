"""OpenAI-compatible chat completion client."""
from __future__ import annotations

from typing import Any

import openai

from adapters.llm.base import LLMClient
from context.serialization import serialize_for_llm
from errors import ModelRequestError
from spec import MODEL_MAX_TOKENS, MODEL_RESPONSE_FORMAT, MODEL_TEMPERATURE


class OpenAIChatClient(LLMClient):
    """
    Concrete completion client over the `openai` SDK.

    Design notes:
    - One client instance serves every request of a process.
    - The vendor client is injected (AsyncOpenAI pointed at OpenAI or Groq).
    - Vendor exceptions are translated to ModelRequestError here and
      nowhere else.
    """

    def __init__(
        self,
        *,
        client: Any,  # Type: openai.AsyncOpenAI
        model: str,
        temperature: float = MODEL_TEMPERATURE,
        max_tokens: int = MODEL_MAX_TOKENS,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def complete(self, *, system_text: str, user_text: str) -> str:
        """Call the chat completions API and return message content."""
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=serialize_for_llm(system_prompt=system_text, user_text=user_text),
                temperature=self._temperature,
                max_tokens=self._max_tokens,
                response_format=MODEL_RESPONSE_FORMAT,
            )
        except openai.APIStatusError as exc:
            upstream = self._upstream_message(exc)
            raise ModelRequestError(
                f"Model API error: {upstream or 'Unknown error'}",
                upstream_message=upstream,
            ) from exc
        except openai.APIError as exc:
            # Connection failures, timeouts, undecodable bodies
            raise ModelRequestError(
                f"Model API error: {exc.message}",
                upstream_message=exc.message,
            ) from exc

        content = self._extract_content(response)
        if not content:
            raise ModelRequestError("Invalid response format from model")
        return content

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_content(response: Any) -> str:
        """
        Read choices[0].message.content (OpenAI format).
        """
        try:
            return response.choices[0].message.content or ""
        except (AttributeError, IndexError, TypeError):
            return ""

    @staticmethod
    def _upstream_message(exc: openai.APIStatusError) -> str | None:
        """Prefer body.error.message, fall back to the SDK's message."""
        body = exc.body
        if isinstance(body, dict):
            error = body.get("error", body)
            if isinstance(error, dict) and isinstance(error.get("message"), str):
                return error["message"]
        return exc.message or None
