"""
Export sessions to Markdown artifacts.

Artifacts live in ``<project>/dialog/`` and are named
``{YYYY-MM-DD}_session-{first 8 chars of the session id}.md``. Lookups by
session id are substring matches on ``session-{prefix}``, so there must
never be two artifacts with the same prefix in one folder:
:func:`export_session` removes a stale artifact whenever the canonical
filename of a session changes (for example when its date is recomputed in
another timezone).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from dialog_export.config import DIALOG_FOLDER, ExportConfig
from dialog_export.formatting import format_size
from dialog_export.logging import get_logger
from dialog_export.render import Author, to_markdown
from dialog_export.session.models import DialogInfo, ExportedSession, SessionInfo
from dialog_export.session.projects import get_project_sessions
from dialog_export.session.reader import parse_session
from dialog_export.summary import extract_annotations, extract_summary
from dialog_export.visibility import (
    add_to_gitignore,
    ensure_dialog_folder,
    get_dialog_files,
    get_dialog_folder,
    is_in_gitignore,
    is_public,
    remove_from_gitignore,
    replace_in_gitignore,
)

logger = get_logger("exporter")

ARTIFACT_PATTERN = re.compile(r"^(\d{4}-\d{2}-\d{2})_session-([a-f0-9]+)\.md$")
DIALOG_TIME_PATTERN = re.compile(r"^### .*?\*\((\d{2})\.(\d{2})\.(\d{4}),? (\d{2}):(\d{2})\)\*", re.M)
MESSAGES_PATTERN = re.compile(r"^\*\*Messages:\*\* (\d+)", re.M)


def artifact_filename(session: SessionInfo) -> str:
    """Canonical artifact filename for *session*."""
    return f"{session.date_iso}_session-{session.short_id}.md"


def source_path_for(session: SessionInfo, config: ExportConfig) -> Path:
    if session.source_path is not None:
        return Path(session.source_path)
    return config.projects_dir / session.project_path / session.filename


def _artifacts_for(folder: Path, session_id: str) -> list[Path]:
    if not folder.is_dir():
        return []
    marker = f"session-{session_id[:8]}"
    return sorted(p for p in folder.iterdir() if p.suffix == ".md" and marker in p.name)


def export_session(
    session: SessionInfo,
    target_project_path: str | Path,
    config: ExportConfig | None = None,
    author: Author | None = None,
) -> ExportedSession:
    """
    Export one session into ``<target_project_path>/<dialog folder>/``.

    A stale artifact for the same session is deleted and its visibility
    moves to the new filename. An existing canonical artifact keeps its
    visibility; a new one starts private. Summary annotations of the
    previous artifact are carried over.

    Raises:
        OSError: the source log cannot be read or the artifact written.
    """
    config = config or ExportConfig()
    project = Path(target_project_path)

    records = parse_session(source_path_for(session, config))
    exported_at = datetime.now()
    markdown = to_markdown(
        records,
        session,
        author=author,
        exported_at=exported_at.strftime("%d.%m.%Y, %H:%M:%S"),
    )

    folder = ensure_dialog_folder(project, config.dialog_folder)
    filename = artifact_filename(session)
    output_path = folder / filename

    existing = output_path.exists()
    annotations = extract_annotations(output_path.read_text(encoding="utf-8")) if existing else []

    stale_artifacts = [p for p in _artifacts_for(folder, session.id) if p.name != filename]
    if not annotations:
        for stale in stale_artifacts:
            annotations = extract_annotations(stale.read_text(encoding="utf-8"))
            if annotations:
                break

    if annotations:
        markdown = "\n".join(annotations) + "\n\n" + markdown

    # Stale artifacts and .gitignore are only touched once the new file exists.
    output_path.write_text(markdown, encoding="utf-8")

    carried = False
    for stale in stale_artifacts:
        stale_private = is_in_gitignore(stale, project)
        stale.unlink()
        logger.info("Removed stale %s (now %s)", stale.name, filename)

        if existing or carried:
            if stale_private:
                remove_from_gitignore(stale, project)
        elif stale_private:
            replace_in_gitignore(stale, output_path, project)
            carried = True
        else:
            remove_from_gitignore(output_path, project)
            carried = True

    if not existing and not carried:
        add_to_gitignore(output_path, project)

    return ExportedSession(
        id=session.id,
        project_name=session.project_name,
        date=session.date,
        summaries=list(session.summaries),
        message_count=session.message_count,
        filename=filename,
        markdown_path=output_path,
        exported_at=exported_at.isoformat(),
        is_public=is_public(output_path, project),
    )


def find_exported_path(
    session_id: str,
    target_project_path: str | Path,
    dialog_folder: str = DIALOG_FOLDER,
) -> Path | None:
    """Artifact for *session_id*, if one has been exported."""
    matches = _artifacts_for(get_dialog_folder(target_project_path, dialog_folder), session_id)
    return matches[0] if matches else None


def is_session_exported(
    session_id: str,
    target_project_path: str | Path,
    dialog_folder: str = DIALOG_FOLDER,
) -> bool:
    return find_exported_path(session_id, target_project_path, dialog_folder) is not None


def export_new_sessions(
    project_path: str | Path,
    config: ExportConfig | None = None,
) -> list[ExportedSession]:
    """Export every session of *project_path* that has no artifact yet."""
    config = config or ExportConfig()
    output = config.output_path(Path(project_path))
    exported: list[ExportedSession] = []

    for session in get_project_sessions(project_path, config):
        if is_session_exported(session.id, output, config.dialog_folder):
            continue
        try:
            result = export_session(session, output, config)
        except OSError as e:
            logger.error("Failed to export %s: %s", session.id, e)
            continue
        exported.append(result)
        logger.info("Exported: %s", result.filename)

    return exported


def get_dialog_info(
    file_path: str | Path,
    project_path: str | Path,
    with_summary: bool = False,
) -> DialogInfo:
    path = Path(file_path)
    stat = path.stat()
    match = ARTIFACT_PATTERN.match(path.name)

    summary = None
    if with_summary:
        summary = extract_summary(path.read_text(encoding="utf-8"))

    return DialogInfo(
        filename=path.name,
        file_path=path,
        date=match.group(1) if match else "Unknown",
        session_id=match.group(2) if match else path.name,
        is_public=is_public(path, project_path),
        size=format_size(stat.st_size),
        size_bytes=stat.st_size,
        last_modified=datetime.fromtimestamp(stat.st_mtime),
        summary=summary,
    )


def get_exported_dialogs(
    project_path: str | Path,
    dialog_folder: str = DIALOG_FOLDER,
    with_summaries: bool = False,
) -> list[DialogInfo]:
    """Artifacts in the dialog folder, newest first."""
    return [
        get_dialog_info(path, project_path, with_summary=with_summaries)
        for path in get_dialog_files(project_path, dialog_folder)
    ]


def extract_session_datetime(content: str) -> datetime | None:
    """Local time of the first dialog message of an artifact."""
    match = DIALOG_TIME_PATTERN.search(content)
    if not match:
        return None
    day, month, year, hour, minute = (int(g) for g in match.groups())
    try:
        return datetime(year, month, day, hour, minute)
    except ValueError:
        return None


def read_message_count(content: str) -> int:
    match = MESSAGES_PATTERN.search(content)
    return int(match.group(1)) if match else 0


@dataclass
class SyncResult:
    session_id: str
    added: int
    markdown_path: Path


def sync_current_session(
    project_path: str | Path,
    config: ExportConfig | None = None,
) -> SyncResult | None:
    """
    Re-export the most recently modified session right away.

    Returns how many dialog messages the artifact gained, or ``None`` when
    the project has no sessions.
    """
    config = config or ExportConfig()
    sessions = get_project_sessions(project_path, config)
    if not sessions:
        return None

    current = sessions[0]
    output = config.output_path(Path(project_path))
    previous_path = find_exported_path(current.id, output, config.dialog_folder)
    previous_count = (
        read_message_count(previous_path.read_text(encoding="utf-8")) if previous_path else 0
    )

    result = export_session(current, output, config)
    return SyncResult(
        session_id=current.id,
        added=max(current.message_count - previous_count, 0),
        markdown_path=result.markdown_path,
    )
