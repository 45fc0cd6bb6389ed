"""CSV and Excel export of server records."""

from __future__ import annotations

import csv
import io
import re
from datetime import datetime
from enum import Enum
from typing import Any, Sequence

from openpyxl import Workbook

from serverdeck.core.query_engine import FIELD_ACCESSORS
from serverdeck.schemas.server import ServerRecord

EXPORT_FORMATS = ("csv", "xlsx")

_TIMESTAMP_FIELDS = frozenset({"created_at", "updated_at"})
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def header_for(field: str) -> str:
    """serverName / server_name -> "Server Name"."""
    words = _CAMEL_BOUNDARY.sub(" ", field).replace("_", " ").split()
    return " ".join(w[:1].upper() + w[1:] for w in words)


def format_timestamp(value: datetime) -> str:
    return value.strftime("%d.%m.%Y %H:%M")


def cell_text(field: str, value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    if isinstance(value, datetime):
        if field in _TIMESTAMP_FIELDS:
            return format_timestamp(value)
        return value.isoformat()
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def _value(record: ServerRecord, field: str) -> Any:
    accessor = FIELD_ACCESSORS.get(field)
    return accessor(record) if accessor else None


def export_csv(records: Sequence[ServerRecord], fields: Sequence[str]) -> bytes:
    """Header line unquoted; every value quoted with inner quotes doubled."""
    buf = io.StringIO()
    csv.writer(buf, quoting=csv.QUOTE_MINIMAL, lineterminator="\n").writerow(
        header_for(f) for f in fields
    )
    rows = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for record in records:
        rows.writerow(cell_text(f, _value(record, f)) for f in fields)
    return buf.getvalue().encode("utf-8")


def export_xlsx(records: Sequence[ServerRecord], fields: Sequence[str]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Servers"
    ws.append([header_for(f) for f in fields])
    for record in records:
        row = []
        for field in fields:
            value = _value(record, field)
            # Numbers stay numeric cells
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                row.append(value)
            else:
                row.append(cell_text(field, value))
        ws.append(row)
    ws.freeze_panes = "A2"

    out = io.BytesIO()
    wb.save(out)
    return out.getvalue()


def export_records(records: Sequence[ServerRecord], visible_fields: Sequence[str], fmt: str) -> bytes:
    if fmt == "csv":
        return export_csv(records, visible_fields)
    if fmt == "xlsx":
        return export_xlsx(records, visible_fields)
    raise ValueError(f"Unsupported export format: {fmt!r} (expected one of {', '.join(EXPORT_FORMATS)})")


def export_filename(fmt: str, today: datetime) -> str:
    return f"server-export-{today.strftime('%d-%m-%Y')}.{fmt}"
