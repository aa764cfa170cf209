"""
Session watcher.

Monitors one project's session log directory and keeps the project's dialog
folder in sync: new and updated logs are exported after a short quiet period,
and summaries are requested once a dialog has gone quiet or a newer session
has replaced it.
"""

from __future__ import annotations

import asyncio
import signal
import sys
from functools import partial
from pathlib import Path

from watchfiles import Change, awatch

from dialog_export.config import ExportConfig
from dialog_export.exporter import export_session, find_exported_path, source_path_for
from dialog_export.logging import get_logger
from dialog_export.render import Author
from dialog_export.scheduler import DebounceScheduler
from dialog_export.session.models import ExportedSession, SessionInfo
from dialog_export.session.projects import (
    describe_session,
    find_source_project_dir,
    get_project_sessions,
    is_source_log,
)
from dialog_export.summary import SummaryRequester
from dialog_export.tracker import ChangeTracker
from dialog_export.visibility import ensure_dialog_folder

logger = get_logger("watcher")


class SessionWatcher:
    """
    Watches the session logs of one project.

    Example:
        watcher = SessionWatcher("/path/to/project")
        await watcher.start()
        ...
        await watcher.stop()
    """

    def __init__(
        self,
        target_project_path: str | Path,
        config: ExportConfig | None = None,
        requester: SummaryRequester | None = None,
        author: Author | None = None,
    ) -> None:
        self.config = config or ExportConfig()
        self.target_project_path = Path(target_project_path).resolve()
        self.output_path = self.config.output_path(self.target_project_path)
        self.author = author

        self.tracker = ChangeTracker()
        self.scheduler = DebounceScheduler(
            export_delay=self.config.export_delay,
            summary_delay=self.config.summary_debounce_seconds,
        )
        self.requester = requester or SummaryRequester(self.config)

        self.source_project_dir: str | None = None
        self._running = False
        self._watch_task: asyncio.Task[None] | None = None
        self._watch_stop_event: asyncio.Event | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def source_path(self) -> Path | None:
        if self.source_project_dir is None:
            return None
        return self.config.projects_dir / self.source_project_dir

    async def start(self) -> None:
        """
        Export what is missing, then start watching.

        Exits the process when the project or its session logs cannot be
        found: there is nothing to watch.
        """
        if self._running:
            logger.info("Watcher is already running")
            return

        if not self.target_project_path.exists():
            logger.error("Target project not found: %s", self.target_project_path)
            sys.exit(1)

        self.source_project_dir = find_source_project_dir(
            self.target_project_path, self.config.projects_dir
        )
        source = self.source_path
        if source is None:
            logger.error("No Claude sessions found for project: %s", self.target_project_path)
            logger.error("Make sure Claude Code has been used in this project.")
            sys.exit(1)

        dialog_folder = ensure_dialog_folder(self.output_path, self.config.dialog_folder)

        logger.info("Starting watcher...")
        logger.info("Project: %s", self.target_project_path)
        logger.info("Claude sessions: %s", source)
        logger.info("Dialogs folder: %s", dialog_folder)

        self.requester.open()
        self._running = True

        logger.info("Performing initial export...")
        new_count, updated_count = self.reconcile()
        if new_count == 0 and updated_count == 0:
            logger.info("All sessions already exported and up to date")
        else:
            if new_count:
                logger.info("New exports: %d", new_count)
            if updated_count:
                logger.info("Updated: %d", updated_count)

        self._watch_stop_event = asyncio.Event()
        self._watch_task = asyncio.create_task(self._watch_loop(source))
        logger.info("Watcher started. New and updated sessions go to %s", dialog_folder)

    async def stop(self) -> None:
        """Stop watching and cancel every pending export and summary."""
        if self._watch_stop_event:
            self._watch_stop_event.set()

        if self._watch_task is not None:
            self._watch_task.cancel()
            try:
                await self._watch_task
            except asyncio.CancelledError:
                pass

        self._watch_task = None
        self._watch_stop_event = None

        self.scheduler.stop()
        self.requester.close()

        if self._running:
            self._running = False
            logger.info("Watcher stopped")

    def reconcile(self) -> tuple[int, int]:
        """
        Queue exports for sessions without an artifact or with a source log
        newer than their artifact; remember sizes of the rest.

        Returns ``(new, updated)`` counts.
        """
        sessions = get_project_sessions(self.target_project_path, self.config)
        new_count = updated_count = 0

        if sessions:
            # The newest session is the one still in progress
            self.tracker.note_active_session(sessions[0].project_path, sessions[0].id)

        for session in sessions:
            source = source_path_for(session, self.config)
            exported = find_exported_path(session.id, self.output_path, self.config.dialog_folder)

            if exported is None:
                new_count += 1
            elif source.stat().st_mtime > exported.stat().st_mtime:
                logger.info("Updating: %s (source newer)", exported.name)
                updated_count += 1
            else:
                self.tracker.record_size(source, session.size_bytes)
                continue

            self.tracker.forget(source)
            self.scheduler.schedule_export(
                source, partial(self.export_file, source, live=False), delay=0
            )

        return new_count, updated_count

    def schedule_export(self, source_path: str | Path) -> None:
        """Debounce an export of *source_path*."""
        path = Path(source_path)
        self.scheduler.schedule_export(path, partial(self.export_file, path))

    def export_file(self, source_path: str | Path, live: bool = True) -> ExportedSession | None:
        """
        Export one source log if its size changed since the last check.

        *live* exports come from file events and take part in session
        closure detection; reconciliation exports do not.
        """
        path = Path(source_path)
        try:
            size = path.stat().st_size
        except FileNotFoundError:
            logger.debug("Skipping %s - file no longer exists", path.name)
            self.tracker.forget(path)
            return None

        if not self.tracker.has_changed(path, size):
            logger.debug("Skipping %s - no size change", path.name)
            return None

        try:
            session = describe_session(path, path.parent.name)
        except OSError as e:
            logger.error("Error exporting %s: %s", path, e)
            self.tracker.forget(path)
            return None

        if session.message_count == 0:
            logger.debug("Skipping %s - no dialog messages", session.id)
            return None

        if live:
            self._detect_closure(session)

        try:
            result = export_session(session, self.output_path, self.config, author=self.author)
        except OSError as e:
            logger.error("Error exporting %s: %s", path, e)
            self.tracker.forget(path)
            return None

        logger.info("Exported: %s (%d messages)", result.filename, session.message_count)

        if self.config.summaries_enabled:
            self.scheduler.schedule_summary(
                result.markdown_path,
                partial(self.requester.request, result.markdown_path),
            )
        return result

    def _detect_closure(self, session: SessionInfo) -> None:
        previous = self.tracker.note_active_session(session.project_path, session.id)
        if previous is None or not ChangeTracker.is_closure(previous, session.id):
            return

        previous_path = find_exported_path(previous, self.output_path, self.config.dialog_folder)
        if previous_path is None:
            return

        logger.info("Session %s closed, generating final summary...", previous[:8])
        self.scheduler.cancel_summary(previous_path)
        if self.config.summaries_enabled:
            self.requester.request(previous_path, final=True)

    def handle_changes(self, changes: set[tuple[Change, str]]) -> int:
        """Route a batch of file events to the export track. Returns how many qualified."""
        scheduled = 0
        for change, path_str in changes:
            if change not in (Change.added, Change.modified):
                continue
            path = Path(path_str)
            if path.name.startswith(".") or not is_source_log(path, self.config.agent_prefix):
                continue
            logger.debug("%s: %s", "New file" if change == Change.added else "Changed", path)
            self.schedule_export(path)
            scheduled += 1
        return scheduled

    async def _watch_loop(self, source: Path) -> None:
        try:
            async for changes in awatch(
                source,
                debounce=self.config.watch_debounce_ms,
                stop_event=self._watch_stop_event,
                recursive=False,
            ):
                self.handle_changes(changes)
        except asyncio.CancelledError:
            pass
        except OSError as e:
            logger.error("Watcher error: %s", e)


async def start_watcher(
    target_project_path: str | Path,
    config: ExportConfig | None = None,
) -> None:
    """Run a watcher until SIGINT or SIGTERM."""
    watcher = SessionWatcher(target_project_path, config)
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            pass  # Windows: KeyboardInterrupt ends asyncio.run instead

    await watcher.start()
    try:
        await stop_event.wait()
    finally:
        await watcher.stop()
