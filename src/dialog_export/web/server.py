"""HTTP API for browsing dialogs and managing their visibility, using Starlette."""
from __future__ import annotations

import contextlib
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

try:
    from starlette.applications import Starlette
    from starlette.requests import Request
    from starlette.responses import HTMLResponse, JSONResponse, Response
    from starlette.routing import Route
except ImportError:
    raise ImportError(
        "The web UI requires the 'web' extra. "
        "Install with: pip install dialog-export[web]"
    )

from dialog_export.config import ExportConfig
from dialog_export.exporter import (
    ARTIFACT_PATTERN,
    artifact_filename,
    export_session,
    extract_session_datetime,
    find_exported_path,
    get_exported_dialogs,
    source_path_for,
    sync_current_session,
)
from dialog_export.formatting import format_size, format_timestamp
from dialog_export.logging import get_logger
from dialog_export.render import to_markdown
from dialog_export.session import (
    SessionInfo,
    dialog_records,
    extract_content,
    find_source_project_dir,
    get_project_sessions,
    parse_session,
    summary_texts,
)
from dialog_export.summary import (
    complete_task,
    create_summary_task,
    get_pending_tasks,
    get_summary,
    set_summary,
)
from dialog_export.viewer import render_index
from dialog_export.visibility import get_dialog_folder, is_public, set_visibility, toggle_visibility
from dialog_export.watcher import SessionWatcher

logger = get_logger("server")


@dataclass
class AppState:
    """Per-application state: the selected project and the watcher feeding it."""

    project_path: Path
    config: ExportConfig
    watcher: SessionWatcher | None = None

    @property
    def output_path(self) -> Path:
        return self.config.output_path(self.project_path)

    @property
    def dialog_folder(self) -> Path:
        return get_dialog_folder(self.output_path, self.config.dialog_folder)

    def project_info(self) -> dict[str, Any]:
        return {
            "path": str(self.project_path),
            "name": self.project_path.name,
            "dialogFolder": str(self.dialog_folder),
            "dialogCount": len(get_exported_dialogs(self.output_path, self.config.dialog_folder)),
            "sessionCount": len(get_project_sessions(self.project_path, self.config)),
        }

    def dialog_path(self, filename: str) -> Path | None:
        """Artifact in the dialog folder, or ``None`` for unknown or unsafe names."""
        if Path(filename).name != filename or not filename.endswith(".md"):
            return None
        path = self.dialog_folder / filename
        return path if path.is_file() else None

    def source_log(self, project_dir: str, session_id: str) -> Path | None:
        if project_dir.startswith(".") or session_id.startswith("."):
            return None
        path = self.config.projects_dir / project_dir / f"{session_id}.jsonl"
        return path if path.is_file() else None

    def find_session(self, project_dir: str, session_id: str) -> SessionInfo | None:
        for session in get_project_sessions(self.project_path, self.config):
            if session.project_path == project_dir and session.id == session_id:
                return session
        return None


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _orphan_entry(path: Path, state: AppState) -> dict[str, Any] | None:
    match = ARTIFACT_PATTERN.match(path.name)
    if not match:
        return None
    date_iso, short_id = match.groups()
    year, month, day = date_iso.split("-")
    stat = path.stat()
    summary = get_summary(path)
    session_datetime = extract_session_datetime(path.read_text(encoding="utf-8"))
    return {
        "id": short_id,
        "filename": path.name,
        "projectName": "Imported",
        "projectPath": "",
        "date": f"{day}.{month}.{year}",
        "dateISO": date_iso,
        "size": format_size(stat.st_size),
        "sizeBytes": stat.st_size,
        "summaries": [summary] if summary else [],
        "messageCount": 0,
        "lastModified": datetime.fromtimestamp(stat.st_mtime).isoformat(),
        "sessionDateTime": (session_datetime.isoformat() if session_datetime else None),
        "isExported": True,
        "exportPath": str(path),
        "isPublic": is_public(path, state.output_path),
        "isOrphan": True,
    }


def create_app(
    project_path: str | Path | None = None,
    config: ExportConfig | None = None,
    watch: bool = True,
) -> Starlette:
    """Create the dialog-export Starlette application.

    Args:
        project_path: Project whose dialogs are served (defaults to the cwd)
        config: Export configuration
        watch: Start a session watcher for the project while the app runs
    """
    state = AppState(
        project_path=Path(project_path or Path.cwd()).resolve(),
        config=config or ExportConfig(),
    )

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette):
        if watch:
            if find_source_project_dir(state.project_path, state.config.projects_dir) is None:
                logger.warning(
                    "No Claude sessions found for %s, auto-export disabled", state.project_path
                )
            else:
                state.watcher = SessionWatcher(state.project_path, state.config)
                await state.watcher.start()

        for dialog in get_exported_dialogs(
            state.output_path, state.config.dialog_folder, with_summaries=True
        ):
            if not dialog.summary:
                logger.info("Dialog without summary: %s", dialog.file_path)

        try:
            yield
        finally:
            if state.watcher is not None:
                await state.watcher.stop()
                state.watcher = None

    async def index(request: Request) -> HTMLResponse:
        """Serve the dialog overview page."""
        return HTMLResponse(render_index(state.output_path, state.config.dialog_folder))

    async def api_project(request: Request) -> JSONResponse:
        """Get or set the current project."""
        if request.method == "GET":
            return JSONResponse(state.project_info())

        body = await request.json()
        new_path = body.get("path")
        if not new_path:
            return _error("Path is required", 400)

        resolved = Path(new_path).expanduser().resolve()
        if not resolved.exists():
            return _error("Path does not exist", 404)
        if not resolved.is_dir():
            return _error("Path must be a directory", 400)

        state.project_path = resolved
        logger.info("Switched project to %s", resolved)
        return JSONResponse({"success": True, **state.project_info()})

    async def api_sessions(request: Request) -> JSONResponse:
        """Sessions of the current project with export status, plus orphan artifacts."""
        sessions = get_project_sessions(state.project_path, state.config)
        entries: list[dict[str, Any]] = []

        for session in sessions:
            export_path = find_exported_path(
                session.id, state.output_path, state.config.dialog_folder
            )
            summaries = list(session.summaries)
            session_datetime = None
            if export_path is not None:
                summary = get_summary(export_path)
                if summary:
                    summaries.insert(0, summary)
                session_datetime = extract_session_datetime(
                    export_path.read_text(encoding="utf-8")
                )

            entry = session.to_dict()
            entry.update(
                {
                    "summaries": summaries,
                    "isExported": export_path is not None,
                    "exportPath": str(export_path) if export_path else None,
                    "isPublic": (
                        is_public(export_path, state.output_path) if export_path else False
                    ),
                    "isOrphan": False,
                    "sessionDateTime": (
                        session_datetime or session.last_modified
                    ).isoformat(),
                }
            )
            entries.append(entry)

        known = {session.short_id for session in sessions}
        orphans: list[dict[str, Any]] = []
        if state.dialog_folder.is_dir():
            for path in sorted(state.dialog_folder.glob("*.md")):
                orphan = _orphan_entry(path, state)
                if orphan is not None and orphan["id"] not in known:
                    orphans.append(orphan)

        all_sessions = sorted(entries + orphans, key=lambda s: s["dateISO"], reverse=True)
        return JSONResponse({
            "sessions": all_sessions,
            "total": len(all_sessions),
            "exported": sum(1 for s in all_sessions if s["isExported"]),
            "orphans": len(orphans),
            "projectPath": str(state.project_path),
        })

    async def api_dialogs(request: Request) -> JSONResponse:
        """Exported dialogs with visibility and summaries."""
        dialogs = get_exported_dialogs(
            state.output_path, state.config.dialog_folder, with_summaries=True
        )
        return JSONResponse({
            "dialogs": [d.to_dict() for d in dialogs],
            "total": len(dialogs),
            "public": sum(1 for d in dialogs if d.is_public),
            "private": sum(1 for d in dialogs if not d.is_public),
            "withSummary": sum(1 for d in dialogs if d.summary),
            "projectPath": str(state.project_path),
        })

    async def api_session_detail(request: Request) -> JSONResponse:
        """Parsed dialog of one source log."""
        project_dir = request.path_params["project"]
        session_id = request.path_params["session_id"]
        path = state.source_log(project_dir, session_id)
        if path is None:
            return _error("Session not found", 404)

        records = parse_session(path)
        dialog = [
            {
                "role": record.type,
                "content": content,
                "timestamp": record.timestamp,
                "time": format_timestamp(record.timestamp),
            }
            for record in dialog_records(records)
            if (content := extract_content(record)).strip()
        ]
        return JSONResponse({
            "id": session_id,
            "projectPath": project_dir,
            "summaries": summary_texts(records),
            "dialog": dialog,
            "messageCount": len(dialog),
        })

    async def api_export(request: Request) -> JSONResponse:
        """Export one session into the dialog folder."""
        session = state.find_session(
            request.path_params["project"], request.path_params["session_id"]
        )
        if session is None:
            return _error("Session not found", 404)

        try:
            result = export_session(session, state.output_path, state.config)
        except OSError as e:
            logger.error("Export of %s failed: %s", session.id, e)
            return _error(str(e), 500)
        return JSONResponse({"success": True, **result.to_dict()})

    async def api_toggle(request: Request) -> JSONResponse:
        """Flip a dialog between public and private."""
        filename = request.path_params["filename"]
        path = state.dialog_path(filename)
        if path is None:
            return _error("Dialog not found", 404)

        new_is_public = toggle_visibility(path, state.output_path)
        return JSONResponse({"success": True, "filename": filename, "isPublic": new_is_public})

    async def api_visibility(request: Request) -> JSONResponse:
        """Set a dialog's visibility explicitly."""
        filename = request.path_params["filename"]
        path = state.dialog_path(filename)
        if path is None:
            return _error("Dialog not found", 404)

        body = await request.json()
        make_public = bool(body.get("isPublic"))
        set_visibility(path, state.output_path, make_public)
        return JSONResponse({"success": True, "filename": filename, "isPublic": make_public})

    async def api_force_export(request: Request) -> JSONResponse:
        """Re-export the most recently modified session now."""
        logger.info("Syncing current session...")
        start = time.monotonic()
        try:
            result = sync_current_session(state.project_path, state.config)
        except OSError as e:
            logger.error("Sync failed: %s", e)
            return _error(str(e), 500)
        duration = int((time.monotonic() - start) * 1000)

        if result is None:
            return _error("No active session found", 404)

        logger.info("Sync completed in %dms - added %d message(s)", duration, result.added)
        return JSONResponse({
            "success": True,
            "sessionId": result.session_id[:8],
            "added": result.added,
            "filename": result.markdown_path.name,
            "duration": duration,
            "message": (
                "Already up to date" if result.added == 0 else f"Added {result.added} message(s)"
            ),
        })

    async def api_dialog_content(request: Request) -> JSONResponse:
        """Markdown content of one dialog."""
        filename = request.path_params["filename"]
        path = state.dialog_path(filename)
        if path is None:
            return _error("Dialog not found", 404)

        return JSONResponse({
            "filename": filename,
            "content": path.read_text(encoding="utf-8"),
            "path": str(path),
            "isPublic": is_public(path, state.output_path),
        })

    async def api_dialog_summary(request: Request) -> JSONResponse:
        """Write a summary annotation into a dialog."""
        filename = request.path_params["filename"]
        path = state.dialog_path(filename)
        if path is None:
            return _error("Dialog not found", 404)

        body = await request.json()
        summary = (body.get("summary") or "").strip()
        if not summary:
            return _error("Summary is required", 400)

        set_summary(path, summary)
        return JSONResponse({"success": True, "filename": filename, "summary": summary})

    async def api_download(request: Request) -> Response:
        """Render a session as a Markdown download without writing it."""
        project_dir = request.path_params["project"]
        session_id = request.path_params["session_id"]
        session = state.find_session(project_dir, session_id)
        if session is None:
            return _error("Session not found", 404)

        markdown = to_markdown(parse_session(source_path_for(session, state.config)), session)
        return Response(
            markdown,
            media_type="text/markdown",
            headers={
                "Content-Disposition": f'attachment; filename="{artifact_filename(session)}"'
            },
        )

    async def api_search(request: Request) -> JSONResponse:
        """Search session summaries and project names."""
        query = request.query_params.get("q", "").strip().lower()
        if not query:
            return JSONResponse({"results": []})

        results = [
            session.to_dict()
            for session in get_project_sessions(state.project_path, state.config)
            if query in session.project_name.lower()
            or any(query in summary.lower() for summary in session.summaries)
        ]
        return JSONResponse({"results": results, "query": query})

    async def api_tasks(request: Request) -> JSONResponse:
        """List pending summary tasks or queue a new one."""
        if request.method == "GET":
            tasks = get_pending_tasks(state.output_path, state.config.dialog_folder)
            return JSONResponse({"tasks": tasks, "total": len(tasks)})

        body = await request.json()
        filename = body.get("filename", "")
        if state.dialog_path(filename) is None:
            return _error("Dialog not found", 404)

        task_id = create_summary_task(filename, state.output_path, state.config.dialog_folder)
        return JSONResponse({"success": True, "id": task_id})

    async def api_task_complete(request: Request) -> JSONResponse:
        """Mark a pending summary task as done."""
        task_id = request.path_params["task_id"]
        if not complete_task(task_id, state.output_path, state.config.dialog_folder):
            return _error("Task not found", 404)
        return JSONResponse({"success": True, "id": task_id})

    routes = [
        Route("/", index),
        Route("/api/project", api_project, methods=["GET", "POST"]),
        Route("/api/sessions", api_sessions, methods=["GET"]),
        Route("/api/dialogs", api_dialogs, methods=["GET"]),
        Route("/api/session/{project}/{session_id}", api_session_detail, methods=["GET"]),
        Route("/api/export/{project}/{session_id}", api_export, methods=["POST"]),
        Route("/api/dialog/toggle/{filename}", api_toggle, methods=["POST"]),
        Route("/api/dialog/visibility/{filename}", api_visibility, methods=["POST"]),
        Route("/api/dialog/summary/{filename}", api_dialog_summary, methods=["POST"]),
        Route("/api/dialog/{filename}", api_dialog_content, methods=["GET"]),
        Route("/api/force-export", api_force_export, methods=["POST"]),
        Route("/api/download/{project}/{session_id}", api_download, methods=["GET"]),
        Route("/api/search", api_search, methods=["GET"]),
        Route("/api/tasks", api_tasks, methods=["GET", "POST"]),
        Route("/api/tasks/{task_id}/complete", api_task_complete, methods=["POST"]),
    ]

    app = Starlette(routes=routes, lifespan=lifespan)
    app.state.dialog_export = state
    return app


def run_server(
    project_path: str | Path | None = None,
    host: str = "127.0.0.1",
    port: int = 3333,
    config: ExportConfig | None = None,
) -> None:
    """Run the web UI server with auto-export enabled."""
    try:
        import uvicorn
    except ImportError:
        raise ImportError(
            "Running the web server requires uvicorn. "
            "Install with: pip install dialog-export[web]"
        )

    app = create_app(project_path=project_path, config=config)
    uvicorn.run(app, host=host, port=port, log_level="warning")
