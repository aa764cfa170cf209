"""
Render a session as Markdown.

The output is a pure function of its inputs: the records, the session
descriptor, the author and the export time. Callers that want a stable
document (tests, diffing) pass ``exported_at=None`` to omit the export line.
"""

from __future__ import annotations

import getpass
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass

from dialog_export.formatting import format_timestamp
from dialog_export.session.models import SessionInfo, SessionRecord, UserRecord
from dialog_export.session.projects import get_project_full_path
from dialog_export.session.reader import dialog_records, extract_content, summary_texts

USER_HEADING = "👤 **User**"
ASSISTANT_HEADING = "🤖 **Claude**"
FOOTER = "*Exported with dialog-export*"


@dataclass(frozen=True)
class Author:
    name: str
    email: str = ""

    @property
    def marker(self) -> str:
        """Machine-parseable author comment placed on the first line."""
        email = f" <{self.email}>" if self.email else ""
        return f"<!-- AUTHOR: {self.name}{email} -->"


def _git_config(key: str) -> str:
    result = subprocess.run(
        ["git", "config", key],
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def get_git_author() -> Author:
    """Author from ``git config``, falling back to the OS user name."""
    try:
        name = _git_config("user.name")
        email = _git_config("user.email")
    except (OSError, subprocess.CalledProcessError):
        try:
            return Author(name=getpass.getuser() or "Unknown")
        except (OSError, KeyError):
            return Author(name="Unknown")
    return Author(name=name or "Unknown", email=email)


def to_markdown(
    records: Sequence[SessionRecord],
    session: SessionInfo,
    author: Author | None = None,
    exported_at: str | None = None,
) -> str:
    """Render *records* of *session* as a Markdown document."""
    author = author or get_git_author()
    dialog = dialog_records(records)
    summaries = summary_texts(records)

    lines: list[str] = [author.marker, ""]

    lines += [
        "# Claude Code Session",
        "",
        f"**Author:** {author.name}",
        f"**Project:** {session.project_name}",
        f"**Path:** `{get_project_full_path(session.project_path)}`",
        f"**Session ID:** `{session.id}`",
        f"**Date:** {session.date}",
        f"**Messages:** {len(dialog)}",
    ]
    if exported_at:
        lines.append(f"**Exported:** {exported_at}")
    lines.append("")

    if summaries:
        lines += ["## Summaries", ""]
        lines += [f"- {summary}" for summary in summaries]
        lines.append("")

    lines += ["---", "", "## Dialog", ""]

    for record in dialog:
        content = extract_content(record)
        if not content.strip():
            continue
        role = USER_HEADING if isinstance(record, UserRecord) else ASSISTANT_HEADING
        lines += [
            f"### {role} *({format_timestamp(record.timestamp)})*",
            "",
            content,
            "",
            "---",
            "",
        ]

    lines += ["", FOOTER]
    return "\n".join(lines)
