"""Session log and export data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Literal

RecordType = Literal["user", "assistant", "summary", "file-history-snapshot"]

# Content is either plain text or a list of typed blocks ({"type": "text", ...})
RecordContent = str | list[dict[str, Any]]


@dataclass
class UserRecord:
    """A message typed by the user."""

    type: str = "user"
    id: str = ""
    parent_id: str | None = None
    timestamp: int = 0  # epoch milliseconds
    content: RecordContent = ""


@dataclass
class AssistantRecord:
    """A reply from the assistant."""

    type: str = "assistant"
    id: str = ""
    parent_id: str | None = None
    timestamp: int = 0
    content: RecordContent = ""


@dataclass
class SummaryRecord:
    """A summary line written into the log by the agent itself."""

    type: str = "summary"
    id: str = ""
    parent_id: str | None = None
    timestamp: int = 0
    summary: str = ""
    leaf_id: str | None = None


@dataclass
class SnapshotRecord:
    """File history snapshot. Carried for completeness, never rendered."""

    type: str = "file-history-snapshot"
    id: str = ""
    parent_id: str | None = None
    timestamp: int = 0
    snapshot: dict[str, Any] = field(default_factory=dict)


SessionRecord = UserRecord | AssistantRecord | SummaryRecord | SnapshotRecord

DialogRecord = UserRecord | AssistantRecord


@dataclass
class SessionInfo:
    """
    Describes one source log file.

    Recomputed on every listing call; nothing here is cached.
    """

    id: str
    filename: str
    project_name: str
    project_path: str  # mangled directory id, e.g. "-Users-alex-Code-App"
    date: str  # DD.MM.YYYY
    date_iso: str  # YYYY-MM-DD, drives the artifact filename
    size: str
    size_bytes: int
    summaries: list[str]
    message_count: int
    last_modified: datetime
    first_timestamp: int = 0
    source_path: Path | None = None

    @property
    def short_id(self) -> str:
        return self.id[:8]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "projectName": self.project_name,
            "projectPath": self.project_path,
            "date": self.date,
            "dateISO": self.date_iso,
            "size": self.size,
            "sizeBytes": self.size_bytes,
            "summaries": list(self.summaries),
            "messageCount": self.message_count,
            "lastModified": self.last_modified.isoformat(),
        }


@dataclass
class ExportedSession:
    """Result of exporting one session to Markdown."""

    id: str
    project_name: str
    date: str
    summaries: list[str]
    message_count: int
    filename: str
    markdown_path: Path
    exported_at: str
    is_public: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "projectName": self.project_name,
            "date": self.date,
            "summaries": list(self.summaries),
            "messageCount": self.message_count,
            "filename": self.filename,
            "markdownPath": str(self.markdown_path),
            "exportedAt": self.exported_at,
            "isPublic": self.is_public,
        }


@dataclass
class DialogInfo:
    """A Markdown artifact found in a project's dialog folder."""

    filename: str
    file_path: Path
    date: str
    session_id: str
    is_public: bool
    size: str
    size_bytes: int
    last_modified: datetime
    summary: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "filePath": str(self.file_path),
            "date": self.date,
            "sessionId": self.session_id,
            "isPublic": self.is_public,
            "size": self.size,
            "sizeBytes": self.size_bytes,
            "lastModified": self.last_modified.isoformat(),
            "summary": self.summary,
        }
