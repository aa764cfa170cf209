"""
Dialog visibility, stored in the project's ``.gitignore``.

A dialog listed in ``.gitignore`` is private; anything else is public.
Entries are project-relative paths grouped under a ``# Claude dialogs``
section header.
"""

from __future__ import annotations

import os
from pathlib import Path

from dialog_export.config import DIALOG_FOLDER
from dialog_export.logging import get_logger

logger = get_logger("visibility")

SECTION_HEADER = "# Claude dialogs"
_SECTION_HEADERS = (SECTION_HEADER, f"# {DIALOG_FOLDER}")


def get_gitignore_path(project_path: str | Path) -> Path:
    return Path(project_path) / ".gitignore"


def read_gitignore(project_path: str | Path) -> list[str]:
    path = get_gitignore_path(project_path)
    if not path.exists():
        return []
    return path.read_text(encoding="utf-8").split("\n")


def write_gitignore(project_path: str | Path, lines: list[str]) -> None:
    get_gitignore_path(project_path).write_text("\n".join(lines), encoding="utf-8")


def normalize_dialog_path(dialog_file: str | Path, project_path: str | Path) -> str:
    """Project-relative POSIX path, e.g. ``dialog/2025-12-05_session-abc12345.md``."""
    return Path(os.path.relpath(dialog_file, project_path)).as_posix()


def _matches(line: str, relative_path: str) -> bool:
    trimmed = line.strip()
    return trimmed == relative_path or trimmed == "/" + relative_path


def is_in_gitignore(dialog_file: str | Path, project_path: str | Path) -> bool:
    relative_path = normalize_dialog_path(dialog_file, project_path)
    for line in read_gitignore(project_path):
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#"):
            continue
        if _matches(trimmed, relative_path):
            return True
    return False


def is_public(dialog_file: str | Path, project_path: str | Path) -> bool:
    """A dialog is public when it is not listed in ``.gitignore``."""
    return not is_in_gitignore(dialog_file, project_path)


def add_to_gitignore(dialog_file: str | Path, project_path: str | Path) -> bool:
    """
    Make a dialog private.

    Returns ``True`` if ``.gitignore`` was modified.
    """
    if is_in_gitignore(dialog_file, project_path):
        return False

    lines = read_gitignore(project_path)
    relative_path = normalize_dialog_path(dialog_file, project_path)

    section_index = next(
        (i for i, line in enumerate(lines) if line.strip() in _SECTION_HEADERS),
        None,
    )

    if section_index is None:
        while lines and lines[-1].strip() == "":
            lines.pop()
        if lines:
            lines.append("")
        lines.append(SECTION_HEADER)
        lines.append(relative_path)
        lines.append("")
    else:
        lines.insert(section_index + 1, relative_path)

    write_gitignore(project_path, lines)
    logger.debug("Marked private: %s", relative_path)
    return True


def remove_from_gitignore(dialog_file: str | Path, project_path: str | Path) -> bool:
    """
    Make a dialog public.

    Returns ``True`` if ``.gitignore`` was modified.
    """
    lines = read_gitignore(project_path)
    relative_path = normalize_dialog_path(dialog_file, project_path)

    filtered = [line for line in lines if not _matches(line, relative_path)]
    if len(filtered) == len(lines):
        return False

    write_gitignore(project_path, _clean_empty_sections(filtered))
    logger.debug("Marked public: %s", relative_path)
    return True


def replace_in_gitignore(
    old_file: str | Path,
    new_file: str | Path,
    project_path: str | Path,
) -> bool:
    """
    Rename a private entry in place, in a single write.

    Used when an artifact is re-exported under a new filename. Returns
    ``True`` if ``.gitignore`` was modified.
    """
    lines = read_gitignore(project_path)
    old_relative = normalize_dialog_path(old_file, project_path)
    new_relative = normalize_dialog_path(new_file, project_path)

    # An existing entry for the new name counts as already written
    written = any(_matches(line, new_relative) for line in lines)
    replaced = False
    result: list[str] = []
    for line in lines:
        if _matches(line, old_relative):
            if not written:
                result.append(new_relative)
                written = True
            replaced = True
            continue
        result.append(line)

    if not replaced:
        return False

    write_gitignore(project_path, result)
    return True


def toggle_visibility(dialog_file: str | Path, project_path: str | Path) -> bool:
    """Flip visibility and return the new public state."""
    if is_public(dialog_file, project_path):
        add_to_gitignore(dialog_file, project_path)
        return False
    remove_from_gitignore(dialog_file, project_path)
    return True


def set_visibility(dialog_file: str | Path, project_path: str | Path, public: bool) -> bool:
    """Set visibility explicitly. Returns ``True`` if ``.gitignore`` changed."""
    if public:
        return remove_from_gitignore(dialog_file, project_path)
    return add_to_gitignore(dialog_file, project_path)


def get_dialog_folder(project_path: str | Path, dialog_folder: str = DIALOG_FOLDER) -> Path:
    return Path(project_path) / dialog_folder


def ensure_dialog_folder(project_path: str | Path, dialog_folder: str = DIALOG_FOLDER) -> Path:
    path = get_dialog_folder(project_path, dialog_folder)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_dialog_files(project_path: str | Path, dialog_folder: str = DIALOG_FOLDER) -> list[Path]:
    """Markdown files in the dialog folder, newest modification first."""
    folder = get_dialog_folder(project_path, dialog_folder)
    if not folder.is_dir():
        return []
    files = [p for p in folder.iterdir() if p.is_file() and p.suffix == ".md"]
    files.sort(key=lambda p: p.stat().st_mtime, reverse=True)
    return files


def _clean_empty_sections(lines: list[str]) -> list[str]:
    """Drop our section header when nothing is left under it."""
    result: list[str] = []

    for i, line in enumerate(lines):
        trimmed = line.strip()
        if trimmed in _SECTION_HEADERS:
            has_content = False
            for following in lines[i + 1 :]:
                following = following.strip()
                if not following:
                    continue
                if following.startswith("#"):
                    break
                has_content = True
                break
            if not has_content:
                continue
        result.append(line)

    while result and result[-1].strip() == "":
        result.pop()

    if result:
        result.append("")
    return result
