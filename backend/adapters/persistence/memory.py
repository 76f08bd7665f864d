"""In-memory configuration store."""

from __future__ import annotations

import copy
from typing import Any, Mapping

from adapters.persistence.base import PersistenceGateway
from errors import RecordNotFoundError


class InMemoryPersistenceGateway(PersistenceGateway):
    """
    Dict-backed gateway.

    Documents are deep-copied on the way in and out so callers can never
    mutate stored state by accident.
    """

    def __init__(self, documents: Mapping[str, Mapping[str, Any]] | None = None) -> None:
        self._documents: dict[str, dict[str, Any]] = {
            user_id: copy.deepcopy(dict(doc))
            for user_id, doc in (documents or {}).items()
        }

    async def get(self, user_id: str) -> Mapping[str, Any]:
        doc = self._documents.get(user_id)
        if doc is None:
            raise RecordNotFoundError(f"User document not found: {user_id}")
        return copy.deepcopy(doc)

    async def update(self, user_id: str, field_path: str, value: Any) -> None:
        doc = self._documents.get(user_id)
        if doc is None:
            raise RecordNotFoundError(f"User document not found: {user_id}")
        doc[field_path] = copy.deepcopy(value)
