"""
Summary annotations for exported dialogs.

A summary lives inside the Markdown artifact as a line-start HTML comment::

    <!-- SUMMARY: Fixed the flaky upload test and added retries -->

Some summarizers write a short/full pair instead::

    <!-- SUMMARY_SHORT: Upload retries -->
    <!-- SUMMARY_FULL: Investigated the flaky upload test ... -->

Summaries are produced by an external command (the agent CLI in print mode)
that reads the artifact and edits the annotation in. :class:`SummaryRequester`
runs that command as a fire-and-forget asyncio task.
"""

from __future__ import annotations

import asyncio
import json
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from dialog_export.config import DIALOG_FOLDER, ExportConfig
from dialog_export.logging import get_logger
from dialog_export.visibility import get_dialog_folder

logger = get_logger("summary")

SUMMARY_PATTERN = re.compile(r"^<!-- SUMMARY: (.*?) -->$", re.MULTILINE)
SUMMARY_SHORT_PATTERN = re.compile(r"^<!-- SUMMARY_SHORT: (.*?) -->$", re.MULTILINE)
SUMMARY_FULL_PATTERN = re.compile(r"^<!-- SUMMARY_FULL: (.*?) -->$", re.MULTILINE)
ANNOTATION_PATTERN = re.compile(r"^<!-- SUMMARY(?:_SHORT|_FULL)?: .*? -->$", re.MULTILINE)
SUMMARY_HEADING_PATTERN = re.compile(r"^##\s+Summar(?:y|ies)\s*$", re.MULTILINE)

PENDING_FOLDER = ".pending"
MAX_LOGGED_OUTPUT = 200


# ---------------------------------------------------------------------------
# Annotation conventions
# ---------------------------------------------------------------------------


def _heading_summary(content: str) -> str | None:
    """First bullet under a ``## Summary``/``## Summaries`` heading."""
    match = SUMMARY_HEADING_PATTERN.search(content)
    if not match:
        return None
    for line in content[match.end() :].splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith("- "):
            return stripped[2:].strip() or None
        break
    return None


def extract_summary(content: str) -> str | None:
    """
    Summary text of an artifact.

    Prefers the ``SUMMARY`` annotation, then the short and full variants,
    then the first bullet of a summary heading section.
    """
    for pattern in (SUMMARY_PATTERN, SUMMARY_SHORT_PATTERN, SUMMARY_FULL_PATTERN):
        match = pattern.search(content)
        if match:
            return match.group(1)
    return _heading_summary(content)


def extract_annotations(content: str) -> list[str]:
    """Raw summary annotation lines, in document order."""
    return ANNOTATION_PATTERN.findall(content)


def has_summary(file_path: str | Path) -> bool:
    """True when the artifact carries a summary annotation (headings don't count)."""
    content = Path(file_path).read_text(encoding="utf-8")
    return ANNOTATION_PATTERN.search(content) is not None


def get_summary(file_path: str | Path) -> str | None:
    return extract_summary(Path(file_path).read_text(encoding="utf-8"))


def set_summary(file_path: str | Path, summary: str) -> None:
    """
    Add or replace the ``SUMMARY`` annotation.

    The text is folded onto one line and ``-->`` is removed so the
    annotation stays a single well-formed comment.
    """
    summary = " ".join(summary.replace("-->", " ").split())
    path = Path(file_path)
    content = path.read_text(encoding="utf-8")
    annotation = f"<!-- SUMMARY: {summary} -->"

    if SUMMARY_PATTERN.search(content):
        content = SUMMARY_PATTERN.sub(lambda _: annotation, content, count=1)
    else:
        content = f"{annotation}\n\n{content}"

    path.write_text(content, encoding="utf-8")


# ---------------------------------------------------------------------------
# Pending summary tasks
# ---------------------------------------------------------------------------


def get_pending_folder(project_path: str | Path, dialog_folder: str = DIALOG_FOLDER) -> Path:
    return get_dialog_folder(project_path, dialog_folder) / PENDING_FOLDER


def create_summary_task(
    filename: str,
    project_path: str | Path,
    dialog_folder: str = DIALOG_FOLDER,
) -> str:
    """
    Queue a summary request for an interactive agent to pick up.

    Writes ``<dialog>/.pending/summary-<ms>.json`` and returns the task id.
    """
    pending = get_pending_folder(project_path, dialog_folder)
    pending.mkdir(parents=True, exist_ok=True)

    task_id = f"summary-{int(time.time() * 1000)}"
    while (pending / f"{task_id}.json").exists():
        task_id = f"summary-{int(time.time() * 1000) + 1}"

    task = {
        "id": task_id,
        "type": "summary",
        "filename": filename,
        "dialogPath": str(get_dialog_folder(project_path, dialog_folder) / filename),
        "createdAt": datetime.now(timezone.utc).isoformat(),
        "status": "pending",
    }
    (pending / f"{task_id}.json").write_text(json.dumps(task, indent=2), encoding="utf-8")
    return task_id


def get_pending_tasks(
    project_path: str | Path,
    dialog_folder: str = DIALOG_FOLDER,
) -> list[dict[str, Any]]:
    pending = get_pending_folder(project_path, dialog_folder)
    if not pending.is_dir():
        return []

    tasks: list[dict[str, Any]] = []
    for task_file in sorted(pending.glob("*.json")):
        try:
            tasks.append(json.loads(task_file.read_text(encoding="utf-8")))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Skipping unreadable task %s: %s", task_file.name, e)
    return tasks


def complete_task(
    task_id: str,
    project_path: str | Path,
    dialog_folder: str = DIALOG_FOLDER,
) -> bool:
    """Delete a pending task. Returns ``True`` if it existed."""
    task_path = get_pending_folder(project_path, dialog_folder) / f"{task_id}.json"
    if not task_path.exists():
        return False
    task_path.unlink()
    return True


# ---------------------------------------------------------------------------
# Summarizer subprocess
# ---------------------------------------------------------------------------

INTERIM_PROMPT = (
    "Read the file {path} and write a short summary of the dialog "
    "(1-2 sentences in {language}). Then use Edit to add the summary at the "
    "top of the file in the format: <!-- SUMMARY: your summary -->"
)

FINAL_PROMPT = """Read the file {path}. It is a finished dialog with Claude Code.

Write a FINAL detailed summary in {language}:
1. The main goal of the dialog (1 sentence)
2. What was done (2-3 key results)
3. Final status: done / partial / postponed

Keep it to 3-5 informative sentences that make the gist clear at a glance.

Then use Edit to REPLACE the existing summary at the top of the file, in the format:
<!-- SUMMARY: your detailed summary -->"""


@dataclass
class SummaryResult:
    """Outcome of one summarizer run."""

    success: bool
    dialog_path: Path
    final: bool = False
    exit_code: int = 0
    output: str = ""
    error: str | None = None
    ignored: bool = False  # Finished after the requester was closed


def _decode(data: bytes | None) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


class SummaryRequester:
    """
    Spawns the summarizer command for dialog artifacts.

    Requests are fire-and-forget: :meth:`request` returns the task so tests
    can await it, but callers in the watcher never do. Failures are logged,
    never raised and never retried. :meth:`close` makes late results be
    ignored; a running summarizer is not killed.
    """

    def __init__(self, config: ExportConfig | None = None) -> None:
        self.config = config or ExportConfig()
        self._tasks: set[asyncio.Task[SummaryResult]] = set()
        self._closed = False

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    @property
    def closed(self) -> bool:
        return self._closed

    def open(self) -> None:
        self._closed = False

    def close(self) -> None:
        self._closed = True

    def build_prompt(self, dialog_path: Path, final: bool = False) -> str:
        template = FINAL_PROMPT if final else INTERIM_PROMPT
        return template.format(path=dialog_path, language=self.config.summary_language)

    def build_command(self, dialog_path: Path, final: bool = False) -> list[str]:
        return [*self.config.summary_command, self.build_prompt(dialog_path, final)]

    def request(
        self,
        dialog_path: str | Path,
        final: bool = False,
    ) -> asyncio.Task[SummaryResult] | None:
        """
        Ask for a summary of *dialog_path*.

        A non-final request is a no-op when the artifact already has a summary
        annotation; a final request always runs, to refresh it. Must be
        called from a running event loop.
        """
        dialog_path = Path(dialog_path)
        if not dialog_path.exists():
            logger.warning("Cannot summarize missing dialog: %s", dialog_path)
            return None

        if not final:
            try:
                annotated = has_summary(dialog_path)
            except OSError as e:
                logger.error("Cannot read %s: %s", dialog_path.name, e)
                return None
            if annotated:
                logger.debug("Summary already exists for %s", dialog_path.name)
                return None

        logger.info(
            "Requesting %s for: %s",
            "FINAL summary" if final else "summary",
            dialog_path.name,
        )
        task = asyncio.get_running_loop().create_task(self._run(dialog_path, final))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, dialog_path: Path, final: bool) -> SummaryResult:
        command = self.build_command(dialog_path, final)
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(dialog_path.parent),
            )
        except OSError as e:
            logger.error("Failed to spawn %s: %s", command[0], e)
            return SummaryResult(
                success=False, dialog_path=dialog_path, final=final, exit_code=-1, error=str(e)
            )

        stdout, stderr = await process.communicate()
        exit_code = process.returncode if process.returncode is not None else -1
        result = SummaryResult(
            success=exit_code == 0,
            dialog_path=dialog_path,
            final=final,
            exit_code=exit_code,
            output=_decode(stdout),
            error=_decode(stderr) or None,
        )

        if self._closed:
            result.ignored = True
            logger.debug("Ignoring late summary result for %s", dialog_path.name)
            return result

        if result.success:
            logger.info("Summary completed for: %s", dialog_path.name)
            logger.debug("Summarizer output: %s", result.output[:MAX_LOGGED_OUTPUT])
        else:
            logger.error("Summary generation failed (code %d)", exit_code)
            if result.error:
                logger.error("Error: %s", result.error[:MAX_LOGGED_OUTPUT])
        return result
