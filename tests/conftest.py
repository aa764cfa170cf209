"""Shared pytest fixtures for dialog-export tests."""

import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from dialog_export.config import ExportConfig
from dialog_export.render import Author
from dialog_export.session import mangle_project_path

SESSION_A = "aaaaaaaa-1111-2222-3333-444444444444"
SESSION_B = "bbbbbbbb-1111-2222-3333-444444444444"


def user_line(text: str, timestamp: str = "2025-12-05T10:00:00.000Z", uuid: str = "u1") -> dict:
    return {
        "type": "user",
        "uuid": uuid,
        "parentUuid": None,
        "timestamp": timestamp,
        "message": {"role": "user", "content": text},
    }


def assistant_line(
    text: str, timestamp: str = "2025-12-05T10:00:05.000Z", uuid: str = "a1"
) -> dict:
    return {
        "type": "assistant",
        "uuid": uuid,
        "parentUuid": "u1",
        "timestamp": timestamp,
        "message": {"role": "assistant", "content": [{"type": "text", "text": text}]},
    }


def summary_line(text: str) -> dict:
    return {"type": "summary", "summary": text, "leafUuid": "a1"}


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo setup_logging() calls made by CLI tests."""
    yield
    logger = logging.getLogger("dialog_export")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def projects_dir(tmp_path: Path) -> Path:
    """Stand-in for ~/.claude/projects."""
    path = tmp_path / "claude" / "projects"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A target project directory."""
    path = tmp_path / "work" / "my-app"
    path.mkdir(parents=True)
    return path.resolve()


@pytest.fixture
def source_dir(project: Path, projects_dir: Path) -> Path:
    """Session log directory of the target project."""
    path = projects_dir / mangle_project_path(project)
    path.mkdir()
    return path


@pytest.fixture
def config(projects_dir: Path) -> ExportConfig:
    """Config pointing at the fake projects dir, with short delays and no summaries."""
    return ExportConfig(
        projects_dir=projects_dir,
        export_debounce_ms=20,
        watch_debounce_ms=50,
        summaries_enabled=False,
        summary_debounce_seconds=0.05,
        summary_command=["summarizer", "--print"],
    )


@pytest.fixture
def author() -> Author:
    return Author(name="Test User", email="test@example.com")


@pytest.fixture
def write_session(source_dir: Path) -> Callable[..., Path]:
    """Write a JSONL session log into the project's log directory.

    Records default to one user/assistant exchange plus a summary line.
    """

    def _write(
        session_id: str = SESSION_A,
        records: list[dict[str, Any]] | None = None,
        directory: Path | None = None,
    ) -> Path:
        if records is None:
            records = [
                summary_line("Fix login redirect"),
                user_line("Why does login redirect twice?"),
                assistant_line("The middleware runs before the session is loaded."),
            ]
        path = (directory or source_dir) / f"{session_id}.jsonl"
        path.write_text("".join(json.dumps(r) + "\n" for r in records), encoding="utf-8")
        return path

    return _write
