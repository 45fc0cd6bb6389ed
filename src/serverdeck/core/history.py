"""Audit history: field-level diffs between a stored record and a patch."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from serverdeck.schemas.history import HistoryEntry
from serverdeck.schemas.server import ServerRecord

# Bookkeeping fields never produce history entries
UNTRACKED_FIELDS = frozenset({"updated_at", "updated_by"})


def stringify(value: Any) -> str:
    """Text form used for history old/new values."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(stringify(v) for v in value)
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def history_id(server_id: str, field: str, when: datetime) -> str:
    """
    Entry id derived from server, field and change time.

    A change recorded both by a client store and by the REST service ends
    up as one row.
    """
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"serverdeck:{server_id}:{field}:{when.isoformat()}"))


def diff_history(
    record: ServerRecord,
    changes: Mapping[str, Any],
    user: str,
    when: datetime,
) -> list[HistoryEntry]:
    """One entry per tracked field whose value really changes."""
    return [
        HistoryEntry(
            id=history_id(record.id, field, when),
            server_id=record.id,
            field=field,
            old_value=stringify(getattr(record, field)),
            new_value=stringify(value),
            timestamp=when,
            user=user,
        )
        for field, value in changes.items()
        if field not in UNTRACKED_FIELDS and getattr(record, field) != value
    ]
