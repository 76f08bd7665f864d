"""
Retell agent applier.

Re-reads the committed prompt and pushes it to the provider-side LLM
that backs the Mode's agent:

    PATCH {base}/update-retell-llm/{llm_id}
    {"general_prompt": "<prompt>"}

The prompt is read back from the store rather than passed in, so the live
agent always mirrors what was persisted.
"""

from __future__ import annotations

import httpx

from adapters.apply.base import AgentApplier
from adapters.llm.prompts import generate_default_prompt
from adapters.persistence.base import PersistenceGateway
from domain.mode import Mode
from errors import AgentApplyError
from spec import HTTP_TIMEOUT_S, RETELL_UPDATE_LLM_PATH


class RetellAgentApplier(AgentApplier):
    """Pushes general prompts to Retell LLM objects."""

    def __init__(
        self,
        *,
        persistence: PersistenceGateway,
        api_key: str,
        base_url: str,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._persistence = persistence
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._http = http_client

    async def apply(self, *, user_id: str, mode: Mode) -> None:
        record = await self._persistence.load_record(user_id)
        mode_config = record.for_mode(mode)

        if mode_config.agent is None:
            raise AgentApplyError(f"No {mode.agent_data_field} on record; agent not created yet")
        if mode_config.agent.llm_id is None:
            raise AgentApplyError(f"{mode.agent_data_field} has no llm_id")

        prompt = mode_config.general_prompt or generate_default_prompt(record.document, mode)
        url = self._base_url + RETELL_UPDATE_LLM_PATH.format(llm_id=mode_config.agent.llm_id)

        try:
            if self._http is not None:
                response = await self._patch(self._http, url, prompt)
            else:
                async with httpx.AsyncClient(timeout=HTTP_TIMEOUT_S) as client:
                    response = await self._patch(client, url, prompt)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise AgentApplyError(
                f"Agent update failed: HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise AgentApplyError(f"Agent update failed: {exc}") from exc

    async def _patch(self, client: httpx.AsyncClient, url: str, prompt: str) -> httpx.Response:
        return await client.patch(
            url,
            headers={"Authorization": f"Bearer {self._api_key}"},
            json={"general_prompt": prompt},
        )
