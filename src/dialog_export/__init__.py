"""
dialog-export - Export Claude Code session logs to Markdown dialogs.

Session logs (one JSONL file per session under ``~/.claude/projects``) are
rendered into ``<project>/dialog/`` as Markdown. New dialogs start private
(listed in the project's ``.gitignore``) and can be made public one by one.
A watcher keeps the dialog folder in sync while you work and asks the agent
CLI to annotate quiet or finished dialogs with a summary.

Example:
    from dialog_export import ExportConfig, SessionWatcher, export_new_sessions

    # One-off export
    exported = export_new_sessions("/path/to/project")

    # Keep exporting while the project is in use
    watcher = SessionWatcher("/path/to/project", ExportConfig(summaries_enabled=False))
    await watcher.start()
    ...
    await watcher.stop()
"""

from dialog_export.config import ExportConfig, load_config
from dialog_export.exporter import (
    artifact_filename,
    export_new_sessions,
    export_session,
    find_exported_path,
    get_exported_dialogs,
    is_session_exported,
    sync_current_session,
)
from dialog_export.logging import get_logger, setup_logging
from dialog_export.render import Author, get_git_author, to_markdown
from dialog_export.scheduler import DebouncedAction, DebounceScheduler
from dialog_export.session import (
    DialogInfo,
    ExportedSession,
    SessionInfo,
    get_all_sessions,
    get_project_sessions,
    parse_session,
)
from dialog_export.summary import SummaryRequester, SummaryResult, extract_summary, has_summary
from dialog_export.tracker import ChangeTracker
from dialog_export.visibility import is_public, set_visibility, toggle_visibility
from dialog_export.watcher import SessionWatcher, start_watcher

__version__ = "0.1.0"

__all__ = [
    # Config
    "ExportConfig",
    "load_config",
    # Logging
    "get_logger",
    "setup_logging",
    # Sessions
    "DialogInfo",
    "ExportedSession",
    "SessionInfo",
    "get_all_sessions",
    "get_project_sessions",
    "parse_session",
    # Rendering
    "Author",
    "get_git_author",
    "to_markdown",
    # Export
    "artifact_filename",
    "export_new_sessions",
    "export_session",
    "find_exported_path",
    "get_exported_dialogs",
    "is_session_exported",
    "sync_current_session",
    # Visibility
    "is_public",
    "set_visibility",
    "toggle_visibility",
    # Summaries
    "SummaryRequester",
    "SummaryResult",
    "extract_summary",
    "has_summary",
    # Watching
    "ChangeTracker",
    "DebouncedAction",
    "DebounceScheduler",
    "SessionWatcher",
    "start_watcher",
]
