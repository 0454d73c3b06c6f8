"""JSON rendering of kernel log records in the layout of dmesg --json."""

from __future__ import annotations

import json
from typing import Iterable, Protocol

from .dmesg_time import raw

_INDENT = "   "


class _RecordLike(Protocol):
    priority_facility: int
    timestamp_us: int
    message: str


def _render_record(record: _RecordLike) -> str:
    fields = (
        ("pri", str(record.priority_facility)),
        ("time", raw(record.timestamp_us)),
        ("msg", json.dumps(record.message, ensure_ascii=False)),
    )
    body = ",\n".join(f'{_INDENT * 3}"{key}": {value}' for key, value in fields)
    return "{\n" + body + "\n" + _INDENT * 2 + "}"


def serialize_records(records: Iterable[_RecordLike]) -> str:
    """Serialize records as a ``{"dmesg": [...]}`` document.

    Times are written as seconds with six decimals, right-aligned, and
    consecutive records are joined as ``},{``.
    """
    items = [_render_record(record) for record in records]
    content = _INDENT * 2 + ",".join(items) if items else ""
    array = "[\n" + content + "\n" + _INDENT + "]"
    return "{\n" + _INDENT + '"dmesg": ' + array + "\n}"