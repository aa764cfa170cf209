"""
Session log module.

Parses the agent's JSONL session logs into typed records and derives the
per-session descriptors that the exporter and the watcher work from.
"""

from dialog_export.session.models import (
    AssistantRecord,
    DialogInfo,
    DialogRecord,
    ExportedSession,
    RecordType,
    SessionInfo,
    SessionRecord,
    SnapshotRecord,
    SummaryRecord,
    UserRecord,
)
from dialog_export.session.projects import (
    describe_session,
    find_source_project_dir,
    get_all_sessions,
    get_project_full_path,
    get_project_name,
    get_project_sessions,
    is_source_log,
    list_source_files,
    mangle_project_path,
)
from dialog_export.session.reader import (
    dialog_records,
    extract_content,
    parse_record,
    parse_session,
    summary_texts,
)

__all__ = [
    # Models
    "AssistantRecord",
    "DialogInfo",
    "DialogRecord",
    "ExportedSession",
    "RecordType",
    "SessionInfo",
    "SessionRecord",
    "SnapshotRecord",
    "SummaryRecord",
    "UserRecord",
    # Projects
    "describe_session",
    "find_source_project_dir",
    "get_all_sessions",
    "get_project_full_path",
    "get_project_name",
    "get_project_sessions",
    "is_source_log",
    "list_source_files",
    "mangle_project_path",
    # Reader
    "dialog_records",
    "extract_content",
    "parse_record",
    "parse_session",
    "summary_texts",
]
