"""Static HTML viewer for a project's dialog folder."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from jinja2 import Environment, PackageLoader

from dialog_export.config import DIALOG_FOLDER
from dialog_export.exporter import get_exported_dialogs
from dialog_export.logging import get_logger
from dialog_export.visibility import ensure_dialog_folder

logger = get_logger("viewer")

_jinja_env = Environment(
    loader=PackageLoader("dialog_export", "templates"),
    autoescape=True,
)


def get_template(name: str):
    """Get a Jinja2 template by name."""
    return _jinja_env.get_template(name)


def render_index(project_path: str | Path, dialog_folder: str = DIALOG_FOLDER) -> str:
    """HTML page listing every artifact with its visibility and summary."""
    project = Path(project_path)
    dialogs = get_exported_dialogs(project, dialog_folder, with_summaries=True)

    return get_template("index.html").render(
        project_name=project.resolve().name,
        dialogs=[
            {
                "filename": d.filename,
                "date": d.date,
                "summary": d.summary,
                "is_public": d.is_public,
                "size": d.size,
                "content": d.file_path.read_text(encoding="utf-8"),
            }
            for d in dialogs
        ],
        public_count=sum(1 for d in dialogs if d.is_public),
        generated_at=datetime.now().strftime("%d.%m.%Y, %H:%M"),
    )


def generate_static_html(project_path: str | Path, dialog_folder: str = DIALOG_FOLDER) -> Path:
    """Write ``<dialog folder>/index.html`` and return its path."""
    folder = ensure_dialog_folder(project_path, dialog_folder)
    output_path = folder / "index.html"
    output_path.write_text(render_index(project_path, dialog_folder), encoding="utf-8")
    logger.debug("Generated %s", output_path)
    return output_path
