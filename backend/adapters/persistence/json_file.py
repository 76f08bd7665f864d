"""
JSON-file configuration store.

Layout: one JSON object mapping user_id -> document.

Writes go to a sibling temp file which then replaces the original with
os.replace, so a crash mid-write leaves the previous file intact. File I/O
runs in a worker thread (asyncio.to_thread); an asyncio.Lock serializes
read-modify-write cycles within the process.
"""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Any, Mapping

from adapters.persistence.base import PersistenceGateway
from errors import PersistenceError, RecordNotFoundError


class JsonFilePersistenceGateway(PersistenceGateway):
    """Durable single-node gateway backed by a JSON file."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    async def get(self, user_id: str) -> Mapping[str, Any]:
        async with self._lock:
            documents = await asyncio.to_thread(self._read_all)
        doc = documents.get(user_id)
        if not isinstance(doc, dict):
            raise RecordNotFoundError(f"User document not found: {user_id}")
        return doc

    async def update(self, user_id: str, field_path: str, value: Any) -> None:
        async with self._lock:
            documents = await asyncio.to_thread(self._read_all)
            doc = documents.get(user_id)
            if not isinstance(doc, dict):
                raise RecordNotFoundError(f"User document not found: {user_id}")
            doc[field_path] = value
            await asyncio.to_thread(self._write_all, documents)

    # ------------------------------------------------------------------
    # File I/O
    # ------------------------------------------------------------------

    def _read_all(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"Cannot read store {self._path}: {exc}") from exc
        if not isinstance(data, dict):
            raise PersistenceError(f"Store {self._path} is not a JSON object")
        return data

    def _write_all(self, documents: dict[str, Any]) -> None:
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(
                json.dumps(documents, ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
            os.replace(tmp, self._path)
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceError(f"Cannot write store {self._path}: {exc}") from exc
