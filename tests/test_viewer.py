"""Tests for the static HTML viewer."""

from pathlib import Path

from dialog_export.summary import set_summary
from dialog_export.viewer import generate_static_html, render_index


def write_artifact(project: Path, name: str, content: str) -> Path:
    folder = project / "dialog"
    folder.mkdir(exist_ok=True)
    path = folder / name
    path.write_text(content, encoding="utf-8")
    return path


class TestViewer:
    """Tests for the dialog index page."""

    def test_empty_folder(self, project: Path) -> None:
        html = render_index(project)

        assert "No dialogs exported yet." in html
        assert "my-app" in html

    def test_lists_artifacts_with_summary(self, project: Path) -> None:
        path = write_artifact(project, "2025-12-05_session-aaaaaaaa.md", "# Claude Code Session\n")
        set_summary(path, "Fixed the login redirect")
        write_artifact(project, "2025-12-06_session-bbbbbbbb.md", "# Claude Code Session\n")

        html = render_index(project)

        assert "2025-12-05_session-aaaaaaaa.md" in html
        assert "Fixed the login redirect" in html
        assert "No summary yet" in html
        assert "2 dialogs, 2 public" in html

    def test_content_is_escaped(self, project: Path) -> None:
        write_artifact(project, "2025-12-05_session-aaaaaaaa.md", "<script>alert(1)</script>\n")

        html = render_index(project)

        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;" in html

    def test_generate_writes_index(self, project: Path) -> None:
        write_artifact(project, "2025-12-05_session-aaaaaaaa.md", "# Claude Code Session\n")

        output = generate_static_html(project)

        assert output == project / "dialog" / "index.html"
        assert "2025-12-05_session-aaaaaaaa.md" in output.read_text(encoding="utf-8")
