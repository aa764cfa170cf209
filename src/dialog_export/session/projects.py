"""
Locate source logs and describe sessions.

The agent keeps one directory per working directory under
``~/.claude/projects``; the directory name is the absolute path with every
``/`` replaced by ``-`` (``/Users/alex/Code/App`` -> ``-Users-alex-Code-App``).
"""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path

from dialog_export.config import AGENT_PREFIX, ExportConfig
from dialog_export.formatting import format_date, format_date_iso, format_size
from dialog_export.logging import get_logger
from dialog_export.session.models import SessionInfo
from dialog_export.session.reader import dialog_records, parse_session, summary_texts

logger = get_logger("projects")

MAX_SUMMARIES = 5


def get_project_name(project_dir: str) -> str:
    """``-Users-alex-Code-MyProject`` -> ``MyProject``."""
    parts = [p for p in project_dir.split("-") if p]
    return parts[-1] if parts else project_dir


def get_project_full_path(project_dir: str) -> str:
    """``-Users-alex-Code-MyProject`` -> ``/Users/alex/Code/MyProject``."""
    if project_dir.startswith("-"):
        project_dir = "/" + project_dir[1:]
    return project_dir.replace("-", "/")


def mangle_project_path(real_project_path: str | Path) -> str:
    """``/Users/alex/Code/MyProject`` -> ``-Users-alex-Code-MyProject``."""
    return str(real_project_path).replace("/", "-")


def find_source_project_dir(real_project_path: str | Path, projects_dir: Path) -> str | None:
    """
    Find the log directory id for a real project path.

    Tries the mangled name first (the agent also replaces ``.`` and ``_``
    in newer versions) and falls back to scanning every directory, comparing
    its un-mangled path with *real_project_path*.
    """
    real = str(real_project_path)
    normalized = mangle_project_path(real)

    candidates = [
        normalized,
        "-" + normalized.lstrip("-"),
        re.sub(r"[^A-Za-z0-9-]", "-", normalized),
    ]
    for candidate in candidates:
        if (projects_dir / candidate).is_dir():
            return candidate

    if not projects_dir.is_dir():
        return None

    resolved = str(Path(real).resolve())
    for entry in sorted(projects_dir.iterdir()):
        if not entry.is_dir():
            continue
        full_path = get_project_full_path(entry.name)
        if full_path in (real, resolved):
            return entry.name
    return None


def is_source_log(path: Path, agent_prefix: str = AGENT_PREFIX) -> bool:
    """True for ``*.jsonl`` session logs that are not internal-agent logs."""
    return path.suffix == ".jsonl" and not path.name.startswith(agent_prefix)


def list_source_files(directory: Path, agent_prefix: str = AGENT_PREFIX) -> list[Path]:
    """Session logs in *directory*, excluding internal-agent logs."""
    if not directory.is_dir():
        return []
    return sorted(
        p for p in directory.iterdir() if p.is_file() and is_source_log(p, agent_prefix)
    )


def describe_session(path: Path, project_dir: str | None = None) -> SessionInfo:
    """
    Build a :class:`SessionInfo` for the log at *path*.

    Raises :class:`OSError` if the log cannot be read.
    """
    path = Path(path)
    stat = path.stat()
    project_dir = project_dir or path.parent.name

    records = parse_session(path)
    dialog = dialog_records(records)
    summaries = summary_texts(records)

    mtime_ms = int(stat.st_mtime * 1000)
    first_timestamp = dialog[0].timestamp if dialog and dialog[0].timestamp else mtime_ms

    return SessionInfo(
        id=path.stem,
        filename=path.name,
        project_name=get_project_name(project_dir),
        project_path=project_dir,
        date=format_date(first_timestamp),
        date_iso=format_date_iso(first_timestamp),
        size=format_size(stat.st_size),
        size_bytes=stat.st_size,
        summaries=summaries[:MAX_SUMMARIES],
        message_count=len(dialog),
        last_modified=datetime.fromtimestamp(stat.st_mtime),
        first_timestamp=first_timestamp,
        source_path=path,
    )


def _describe_directory(directory: Path, agent_prefix: str) -> list[SessionInfo]:
    sessions: list[SessionInfo] = []
    for path in list_source_files(directory, agent_prefix):
        try:
            sessions.append(describe_session(path, directory.name))
        except OSError as e:
            logger.error("Error parsing %s: %s", path, e)
    return sessions


def get_project_sessions(
    real_project_path: str | Path,
    config: ExportConfig | None = None,
) -> list[SessionInfo]:
    """All sessions recorded for one project, most recently modified first."""
    config = config or ExportConfig()
    project_dir = find_source_project_dir(real_project_path, config.projects_dir)
    if project_dir is None:
        return []

    sessions = _describe_directory(config.projects_dir / project_dir, config.agent_prefix)
    sessions.sort(key=lambda s: s.last_modified, reverse=True)
    return sessions


def get_all_sessions(config: ExportConfig | None = None) -> list[SessionInfo]:
    """Sessions across every project directory, most recently modified first."""
    config = config or ExportConfig()
    if not config.projects_dir.is_dir():
        return []

    sessions: list[SessionInfo] = []
    for directory in sorted(config.projects_dir.iterdir()):
        if directory.is_dir():
            sessions.extend(_describe_directory(directory, config.agent_prefix))

    sessions.sort(key=lambda s: s.last_modified, reverse=True)
    return sessions
