"""Server history schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from serverdeck.schemas.server import Timestamp


class HistoryEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    server_id: str
    field: str
    old_value: str
    new_value: str
    timestamp: Timestamp
    user: str


class HistoryImport(BaseModel):
    entries: list[HistoryEntry]
