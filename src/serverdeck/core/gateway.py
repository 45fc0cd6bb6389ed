"""
Persistence gateway interface.

The inventory store only talks to this protocol, so any backend with
fetch-all/create/update/delete/batch-upsert semantics can sit behind it.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Iterable, Protocol

from pydantic import ValidationError as PydanticValidationError

from serverdeck.core.errors import NotFoundError, ValidationError
from serverdeck.schemas.history import HistoryEntry
from serverdeck.schemas.server import ServerCreate, ServerRecord, ServerUpdate


class PersistenceGateway(Protocol):
    """Durable CRUD boundary for server records and their history."""

    async def fetch_all(self) -> list[ServerRecord]:
        """Return every stored server."""

    async def fetch_one(self, server_id: str) -> ServerRecord:
        """Return one stored server or raise NotFoundError."""

    async def create(self, draft: ServerCreate) -> ServerRecord:
        """Store a new server, assigning id and timestamps when absent."""

    async def update(self, server_id: str, patch: ServerUpdate) -> ServerRecord:
        """Apply a partial update and return the stored result."""

    async def delete(self, server_id: str) -> None:
        """Remove a server and its history."""

    async def batch_upsert(self, records: list[ServerRecord]) -> int:
        """Insert or replace the given servers, returning how many were written."""

    async def fetch_history(self, server_id: str) -> list[HistoryEntry]:
        """Return the stored history entries of one server."""

    async def batch_upsert_history(self, entries: list[HistoryEntry]) -> int:
        """Insert or replace history entries, returning how many were written."""


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def complete_draft(draft: ServerCreate, now: datetime | None = None) -> ServerRecord:
    """Fill id and timestamps of a draft and validate it as a stored record."""
    now = now or utcnow()
    data = draft.model_dump()
    data["id"] = data.get("id") or new_id()
    data["created_at"] = data.get("created_at") or now
    data["updated_at"] = data.get("updated_at") or data["created_at"]
    try:
        return ServerRecord.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(str(e)) from e


def apply_patch(record: ServerRecord, patch: ServerUpdate) -> ServerRecord:
    """Return a validated copy of ``record`` with the patch applied."""
    data = record.model_dump()
    data.update(patch.changes())
    try:
        return ServerRecord.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(str(e)) from e


class InMemoryGateway:
    """
    Gateway keeping everything in process memory.

    Useful for dev, tests and small demos. Records are stored as validated
    pydantic objects, so the same enum and IP checks apply as with the
    database backend.
    """

    def __init__(self, records: Iterable[ServerRecord] = ()) -> None:
        self._servers: dict[str, ServerRecord] = {r.id: r for r in records}
        self._history: dict[str, HistoryEntry] = {}

    async def fetch_all(self) -> list[ServerRecord]:
        return list(self._servers.values())

    async def fetch_one(self, server_id: str) -> ServerRecord:
        record = self._servers.get(server_id)
        if record is None:
            raise NotFoundError(f"Server not found: {server_id}")
        return record

    async def create(self, draft: ServerCreate) -> ServerRecord:
        record = complete_draft(draft)
        if record.id in self._servers:
            raise ValidationError(f"Server id already exists: {record.id}")
        self._servers[record.id] = record
        return record

    async def update(self, server_id: str, patch: ServerUpdate) -> ServerRecord:
        current = self._servers.get(server_id)
        if current is None:
            raise NotFoundError(f"Server not found: {server_id}")
        updated = apply_patch(current, patch)
        self._servers[server_id] = updated
        return updated

    async def delete(self, server_id: str) -> None:
        if self._servers.pop(server_id, None) is None:
            raise NotFoundError(f"Server not found: {server_id}")
        self._history = {k: e for k, e in self._history.items() if e.server_id != server_id}

    async def batch_upsert(self, records: list[ServerRecord]) -> int:
        for record in records:
            self._servers[record.id] = record
        return len(records)

    async def fetch_history(self, server_id: str) -> list[HistoryEntry]:
        entries = [e for e in self._history.values() if e.server_id == server_id]
        return sorted(entries, key=lambda e: e.timestamp)

    async def batch_upsert_history(self, entries: list[HistoryEntry]) -> int:
        for entry in entries:
            self._history[entry.id] = entry
        return len(entries)
