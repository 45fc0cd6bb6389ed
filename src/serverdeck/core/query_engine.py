"""
Filtering, search and multi-key sorting over server records.

Both entry points are pure: they never mutate their input and never raise on
field names they do not know, so stale saved views keep working after a field
is removed.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from operator import attrgetter
from typing import Any, Callable, Iterable, Sequence

from serverdeck.schemas.server import SERVER_FIELDS, ServerRecord
from serverdeck.schemas.view import ALL_FIELDS, ServerFilter, SortDirection, SortKey

FIELD_ACCESSORS: dict[str, Callable[[ServerRecord], Any]] = {
    name: attrgetter(name) for name in SERVER_FIELDS
}


def _scalar_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _searchable_texts(value: Any) -> list[str]:
    """Lowercased text forms of a field value; lists contribute their string elements."""
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return [v.lower() for v in value if isinstance(v, str)]
    return [_scalar_text(value).lower()]


def _matches_filter(record: ServerRecord, flt: ServerFilter) -> bool:
    if flt.key == ALL_FIELDS:
        return True
    accessor = FIELD_ACCESSORS.get(flt.key)
    if accessor is None:
        return False
    needle = flt.value.lower()
    return any(needle in text for text in _searchable_texts(accessor(record)))


def _matches_search(record: ServerRecord, needle: str) -> bool:
    for accessor in FIELD_ACCESSORS.values():
        if any(needle in text for text in _searchable_texts(accessor(record))):
            return True
    return False


def apply_filters_and_search(
    records: Iterable[ServerRecord],
    filters: Sequence[ServerFilter],
    search_text: str,
) -> list[ServerRecord]:
    """Keep records matching every filter and, if given, the search text."""
    result = [r for r in records if all(_matches_filter(r, f) for f in filters)]
    if search_text:
        needle = search_text.lower()
        result = [r for r in result if _matches_search(r, needle)]
    return result


def _collation_key(text: str) -> tuple[str, str]:
    return (text.casefold(), text)


def _sort_key_for(key: str, numeric_aware: bool) -> Callable[[ServerRecord], Any]:
    accessor = FIELD_ACCESSORS.get(key)
    if accessor is None:
        return lambda record: 0

    def extract(record: ServerRecord) -> Any:
        value = accessor(record)
        if numeric_aware and isinstance(value, (int, float)) and not isinstance(value, bool):
            return (0, value)
        if isinstance(value, (list, tuple)):
            text = ",".join(_scalar_text(v) for v in value)
        else:
            text = _scalar_text(value)
        if numeric_aware:
            return (1, _collation_key(text))
        return _collation_key(text)

    return extract


def apply_sort(
    records: Iterable[ServerRecord],
    sort_keys: Sequence[SortKey],
    numeric_aware: bool = False,
) -> list[ServerRecord]:
    """
    Stable multi-key sort.

    Non-string fields compare by their text form unless numeric_aware is set,
    so by default "10" sorts before "2".
    """
    result = list(records)
    # Stable sorts applied from the least significant key up
    for sort_key in reversed(sort_keys):
        result.sort(
            key=_sort_key_for(sort_key.key, numeric_aware),
            reverse=sort_key.direction == SortDirection.DESC,
        )
    return result
