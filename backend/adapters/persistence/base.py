"""
Persistence gateway contract.

Purpose:
- Read and partially update a user's configuration record.
- Validate raw documents into typed per-Mode views at this boundary.

Rules:
- Concrete gateways implement only fetch/update of raw documents.
- update() touches exactly one field; sibling fields are never rewritten.
- Vendor/storage exceptions are translated to PersistenceError subclasses.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping

from domain.mode import Mode
from domain.records import ModeConfig, UserRecord


class PersistenceGateway(ABC):
    """
    Abstract base class for configuration stores.

    Concrete implementations:
    - InMemoryPersistenceGateway (tests, local development)
    - JsonFilePersistenceGateway (single-node durable storage)
    """

    # ------------------------------------------------------------------
    # Storage primitives (implemented by subclasses)
    # ------------------------------------------------------------------

    @abstractmethod
    async def get(self, user_id: str) -> Mapping[str, Any]:
        """
        Return the raw configuration document for a user.

        Raises:
            RecordNotFoundError if the user has no record.
            PersistenceError on any storage failure.
        """
        raise NotImplementedError

    @abstractmethod
    async def update(self, user_id: str, field_path: str, value: Any) -> None:
        """
        Set a single top-level field on an existing record.

        Contract:
        - All other fields are left exactly as they were.
        - The write is all-or-nothing.

        Raises:
            RecordNotFoundError if the user has no record.
            PersistenceError on any storage failure.
        """
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Typed views (shared)
    # ------------------------------------------------------------------

    async def load_record(self, user_id: str) -> UserRecord:
        """Fetch the raw document and wrap it as a UserRecord."""
        document = await self.get(user_id)
        return UserRecord(user_id=user_id, document=dict(document))

    async def load_mode_config(self, user_id: str, mode: Mode) -> ModeConfig:
        """
        Fetch and validate the slice of a record for one Mode.

        Raises:
            RecordNotFoundError, InvalidRecordError, PersistenceError
        """
        record = await self.load_record(user_id)
        return record.for_mode(mode)
