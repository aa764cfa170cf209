"""Tests for the .gitignore visibility store."""

from pathlib import Path

import pytest

from dialog_export.visibility import (
    SECTION_HEADER,
    add_to_gitignore,
    get_dialog_files,
    is_in_gitignore,
    is_public,
    normalize_dialog_path,
    remove_from_gitignore,
    replace_in_gitignore,
    set_visibility,
    toggle_visibility,
)


@pytest.fixture
def dialog_file(project: Path) -> Path:
    folder = project / "dialog"
    folder.mkdir()
    path = folder / "2025-12-05_session-aaaaaaaa.md"
    path.write_text("# dialog\n")
    return path


def gitignore(project: Path) -> str:
    return (project / ".gitignore").read_text()


class TestNormalize:
    """Tests for normalize_dialog_path."""

    def test_relative_posix(self, project: Path, dialog_file: Path) -> None:
        assert normalize_dialog_path(dialog_file, project) == "dialog/2025-12-05_session-aaaaaaaa.md"


class TestAddRemove:
    """Tests for adding and removing entries."""

    def test_new_dialog_is_public_without_gitignore(self, project: Path, dialog_file: Path) -> None:
        assert is_public(dialog_file, project)

    def test_add_creates_section(self, project: Path, dialog_file: Path) -> None:
        assert add_to_gitignore(dialog_file, project) is True

        assert gitignore(project) == (
            f"{SECTION_HEADER}\ndialog/2025-12-05_session-aaaaaaaa.md\n"
        )
        assert not is_public(dialog_file, project)

    def test_add_keeps_existing_content(self, project: Path, dialog_file: Path) -> None:
        (project / ".gitignore").write_text("node_modules/\n.env\n")

        add_to_gitignore(dialog_file, project)

        content = gitignore(project)
        assert content.startswith("node_modules/\n.env\n\n# Claude dialogs\n")

    def test_add_is_idempotent(self, project: Path, dialog_file: Path) -> None:
        add_to_gitignore(dialog_file, project)

        assert add_to_gitignore(dialog_file, project) is False
        assert gitignore(project).count("session-aaaaaaaa") == 1

    def test_add_into_existing_section(self, project: Path, dialog_file: Path) -> None:
        other = dialog_file.with_name("2025-12-06_session-bbbbbbbb.md")
        other.write_text("x")
        add_to_gitignore(dialog_file, project)

        add_to_gitignore(other, project)

        assert gitignore(project).count(SECTION_HEADER) == 1
        assert is_in_gitignore(other, project)

    def test_leading_slash_entry_matches(self, project: Path, dialog_file: Path) -> None:
        (project / ".gitignore").write_text("/dialog/2025-12-05_session-aaaaaaaa.md\n")

        assert is_in_gitignore(dialog_file, project)

    def test_remove_cleans_empty_section(self, project: Path, dialog_file: Path) -> None:
        (project / ".gitignore").write_text("node_modules/\n")
        add_to_gitignore(dialog_file, project)

        assert remove_from_gitignore(dialog_file, project) is True

        assert gitignore(project) == "node_modules/\n"
        assert is_public(dialog_file, project)

    def test_remove_missing_entry(self, project: Path, dialog_file: Path) -> None:
        assert remove_from_gitignore(dialog_file, project) is False
        assert not (project / ".gitignore").exists()


class TestReplace:
    """Tests for replace_in_gitignore."""

    def test_rename_in_place(self, project: Path, dialog_file: Path) -> None:
        add_to_gitignore(dialog_file, project)
        renamed = dialog_file.with_name("2025-12-04_session-aaaaaaaa.md")

        assert replace_in_gitignore(dialog_file, renamed, project) is True

        assert is_in_gitignore(renamed, project)
        assert not is_in_gitignore(dialog_file, project)
        assert gitignore(project).count("session-aaaaaaaa") == 1

    def test_new_entry_already_present(self, project: Path, dialog_file: Path) -> None:
        renamed = dialog_file.with_name("2025-12-04_session-aaaaaaaa.md")
        add_to_gitignore(dialog_file, project)
        add_to_gitignore(renamed, project)

        replace_in_gitignore(dialog_file, renamed, project)

        assert gitignore(project).count("session-aaaaaaaa") == 1

    def test_old_entry_missing(self, project: Path, dialog_file: Path) -> None:
        renamed = dialog_file.with_name("2025-12-04_session-aaaaaaaa.md")

        assert replace_in_gitignore(dialog_file, renamed, project) is False


class TestToggle:
    """Tests for toggle_visibility and set_visibility."""

    def test_toggle_round_trip(self, project: Path, dialog_file: Path) -> None:
        add_to_gitignore(dialog_file, project)

        assert toggle_visibility(dialog_file, project) is True
        assert is_public(dialog_file, project)
        assert toggle_visibility(dialog_file, project) is False
        assert not is_public(dialog_file, project)

    def test_set_visibility(self, project: Path, dialog_file: Path) -> None:
        assert set_visibility(dialog_file, project, public=False) is True
        assert set_visibility(dialog_file, project, public=False) is False
        assert set_visibility(dialog_file, project, public=True) is True
        assert is_public(dialog_file, project)


class TestDialogFiles:
    """Tests for get_dialog_files."""

    def test_markdown_only(self, project: Path, dialog_file: Path) -> None:
        (dialog_file.parent / "index.html").write_text("<html>")

        assert get_dialog_files(project) == [dialog_file]

    def test_missing_folder(self, tmp_path: Path) -> None:
        assert get_dialog_files(tmp_path) == []
