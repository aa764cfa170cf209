"""
Read session logs.

A session log is a JSONL file written append-only by the agent: one JSON
object per line, discriminated by its ``type`` field. Only four kinds matter
here (see :data:`RECORD_TYPES`); anything else, and any line that is not
valid JSON, is skipped so that a log being written concurrently or produced
by a newer agent version can still be exported.
"""

from __future__ import annotations

import json
import math
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from dialog_export.session.models import (
    AssistantRecord,
    DialogRecord,
    SessionRecord,
    SnapshotRecord,
    SummaryRecord,
    UserRecord,
)

RECORD_TYPES = ("user", "assistant", "summary", "file-history-snapshot")


def _representable(ms: int) -> bool:
    try:
        datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
        datetime.fromtimestamp(ms / 1000)
    except (ValueError, OverflowError, OSError):
        return False
    return True


def _parse_timestamp(value: Any) -> int:
    """
    Normalise a log timestamp to epoch milliseconds.

    Absent, unparseable, non-finite and out-of-range values become 0.
    """
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return 0
        ms = int(value)
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            ms = int(parsed.timestamp() * 1000)
        except (ValueError, OverflowError, OSError):
            return 0
    else:
        return 0
    return ms if _representable(ms) else 0


def _message_content(data: dict[str, Any]) -> str | list[dict[str, Any]]:
    message = data.get("message")
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return [block for block in content if isinstance(block, dict)]
    return ""


def parse_record(line: str) -> SessionRecord:
    """
    Parse one log line into a typed record.

    Raises :class:`ValueError` (``json.JSONDecodeError`` included) when the
    line is not a JSON object of a known kind.
    """
    data = json.loads(line)
    if not isinstance(data, dict):
        raise ValueError("Session record is not a JSON object")

    record_type = data.get("type")
    common = {
        "id": str(data.get("uuid") or ""),
        "parent_id": data.get("parentUuid"),
        "timestamp": _parse_timestamp(data.get("timestamp")),
    }

    if record_type == "user":
        return UserRecord(content=_message_content(data), **common)
    if record_type == "assistant":
        return AssistantRecord(content=_message_content(data), **common)
    if record_type == "summary":
        return SummaryRecord(
            summary=str(data.get("summary") or ""),
            leaf_id=data.get("leafUuid"),
            **common,
        )
    if record_type == "file-history-snapshot":
        snapshot = data.get("snapshot")
        return SnapshotRecord(
            snapshot=snapshot if isinstance(snapshot, dict) else {},
            **common,
        )
    raise ValueError(f"Unknown session record type: {record_type!r}")


def parse_session(path: str | Path) -> list[SessionRecord]:
    """
    Read every record from the log at *path*, in file order.

    Malformed lines are silently skipped. :class:`OSError` propagates when
    the file itself cannot be read.
    """
    records: list[SessionRecord] = []
    with Path(path).open("r", encoding="utf-8", errors="replace") as fh:
        for line in fh:
            stripped = line.strip()
            if not stripped:
                continue
            try:
                records.append(parse_record(stripped))
            except (ValueError, OverflowError):
                continue
    return records


def extract_content(record: SessionRecord) -> str:
    """Plain text of a dialog record; non-text blocks are ignored."""
    content = getattr(record, "content", None)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "\n".join(
            block["text"]
            for block in content
            if block.get("type") == "text" and isinstance(block.get("text"), str) and block["text"]
        )
    return ""


def dialog_records(records: Iterable[SessionRecord]) -> list[DialogRecord]:
    """User and assistant records in original order."""
    return [r for r in records if isinstance(r, (UserRecord, AssistantRecord))]


def summary_texts(records: Iterable[SessionRecord]) -> list[str]:
    """Non-empty summary strings in original order."""
    return [r.summary for r in records if isinstance(r, SummaryRecord) and r.summary]
