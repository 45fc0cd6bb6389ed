"""Filter, sort and saved view schemas."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

ALL_FIELDS = "all"


class SortDirection(StrEnum):
    ASC = "asc"
    DESC = "desc"


class ServerFilter(BaseModel):
    """Case-insensitive substring predicate on one field, or ``all``."""

    model_config = ConfigDict(frozen=True)

    key: str
    value: str = ""


class SortKey(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    direction: SortDirection = SortDirection.ASC


class SavedView(BaseModel):
    """Named snapshot of filters, visible fields and sort order."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    owner_id: str
    filters: tuple[ServerFilter, ...] = ()
    visible_fields: tuple[str, ...] = ()
    sort_keys: tuple[SortKey, ...] = Field(default=(), max_length=3)
