"""Tests for the HTTP API."""

from pathlib import Path

import pytest
from conftest import SESSION_A, SESSION_B, assistant_line, user_line
from starlette.testclient import TestClient

from dialog_export.config import ExportConfig
from dialog_export.exporter import export_session
from dialog_export.session import describe_session
from dialog_export.summary import set_summary
from dialog_export.visibility import is_public
from dialog_export.web.server import create_app


@pytest.fixture
def client(project: Path, config: ExportConfig, source_dir: Path):
    app = create_app(project, config, watch=False)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def exported(project: Path, config: ExportConfig, author, write_session) -> Path:
    """One session exported to a private artifact."""
    session = describe_session(write_session(SESSION_A))
    return export_session(session, project, config, author=author).markdown_path


class TestProject:
    """Tests for /api/project."""

    def test_get_project(self, client: TestClient, project: Path, exported: Path) -> None:
        data = client.get("/api/project").json()

        assert data["path"] == str(project)
        assert data["name"] == "my-app"
        assert data["dialogCount"] == 1
        assert data["sessionCount"] == 1

    def test_set_project(self, client: TestClient, tmp_path: Path) -> None:
        other = tmp_path / "other"
        other.mkdir()

        response = client.post("/api/project", json={"path": str(other)})

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert client.get("/api/project").json()["path"] == str(other.resolve())

    def test_set_project_errors(self, client: TestClient, tmp_path: Path) -> None:
        file_path = tmp_path / "file.txt"
        file_path.write_text("x")

        assert client.post("/api/project", json={}).status_code == 400
        assert client.post("/api/project", json={"path": str(tmp_path / "nope")}).status_code == 404
        assert client.post("/api/project", json={"path": str(file_path)}).status_code == 400

    def test_apps_do_not_share_project(
        self, project: Path, config: ExportConfig, source_dir: Path, tmp_path: Path
    ) -> None:
        """The selected project belongs to one app instance."""
        other = tmp_path / "other"
        other.mkdir()
        first = TestClient(create_app(project, config, watch=False))
        second = TestClient(create_app(project, config, watch=False))

        first.post("/api/project", json={"path": str(other)})

        assert second.get("/api/project").json()["path"] == str(project)


class TestSessions:
    """Tests for session listing and detail."""

    def test_sessions_with_status(
        self, client: TestClient, exported: Path, write_session
    ) -> None:
        write_session(
            SESSION_B,
            records=[user_line("Second", "2025-12-06T09:00:00Z"), assistant_line("Ok")],
        )
        set_summary(exported, "Login fix")

        data = client.get("/api/sessions").json()

        assert data["total"] == 2
        assert data["exported"] == 1
        assert data["orphans"] == 0
        by_id = {s["id"]: s for s in data["sessions"]}
        assert by_id[SESSION_A]["isExported"] is True
        assert by_id[SESSION_A]["isPublic"] is False
        assert by_id[SESSION_A]["summaries"][0] == "Login fix"
        assert by_id[SESSION_B]["isExported"] is False
        assert data["sessions"][0]["id"] == SESSION_B

    def test_orphan_artifacts(self, client: TestClient, project: Path) -> None:
        folder = project / "dialog"
        folder.mkdir()
        (folder / "2025-11-01_session-deadbeef.md").write_text("<!-- SUMMARY: Imported -->\n")

        data = client.get("/api/sessions").json()

        assert data["orphans"] == 1
        orphan = data["sessions"][0]
        assert orphan["isOrphan"] is True
        assert orphan["id"] == "deadbeef"
        assert orphan["date"] == "01.11.2025"
        assert orphan["summaries"] == ["Imported"]

    def test_session_detail(self, client: TestClient, source_dir: Path, write_session) -> None:
        write_session(SESSION_A)

        data = client.get(f"/api/session/{source_dir.name}/{SESSION_A}").json()

        assert data["messageCount"] == 2
        assert data["summaries"] == ["Fix login redirect"]
        assert [m["role"] for m in data["dialog"]] == ["user", "assistant"]

    def test_session_detail_not_found(self, client: TestClient, source_dir: Path) -> None:
        assert client.get(f"/api/session/{source_dir.name}/missing").status_code == 404

    def test_search(self, client: TestClient, write_session) -> None:
        write_session(SESSION_A)

        assert len(client.get("/api/search", params={"q": "LOGIN"}).json()["results"]) == 1
        assert client.get("/api/search", params={"q": "billing"}).json()["results"] == []
        assert client.get("/api/search").json() == {"results": []}


class TestExport:
    """Tests for export endpoints."""

    def test_export_session(
        self, client: TestClient, project: Path, source_dir: Path, write_session
    ) -> None:
        write_session(SESSION_A)

        response = client.post(f"/api/export/{source_dir.name}/{SESSION_A}")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["filename"] == "2025-12-05_session-aaaaaaaa.md"
        assert (project / "dialog" / data["filename"]).exists()

    def test_export_unknown_session(self, client: TestClient, source_dir: Path) -> None:
        assert client.post(f"/api/export/{source_dir.name}/nope").status_code == 404

    def test_force_export(self, client: TestClient, exported: Path, write_session) -> None:
        data = client.post("/api/force-export").json()

        assert data["success"] is True
        assert data["sessionId"] == "aaaaaaaa"
        assert data["added"] == 0
        assert data["message"] == "Already up to date"

    def test_force_export_without_sessions(self, client: TestClient) -> None:
        assert client.post("/api/force-export").status_code == 404

    def test_download(self, client: TestClient, source_dir: Path, write_session) -> None:
        write_session(SESSION_A)

        response = client.get(f"/api/download/{source_dir.name}/{SESSION_A}")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/markdown")
        assert "2025-12-05_session-aaaaaaaa.md" in response.headers["content-disposition"]
        assert "# Claude Code Session" in response.text


class TestDialogs:
    """Tests for dialog endpoints."""

    def test_list_dialogs(self, client: TestClient, exported: Path) -> None:
        data = client.get("/api/dialogs").json()

        assert data["total"] == 1
        assert data["private"] == 1
        assert data["public"] == 0
        assert data["dialogs"][0]["filename"] == exported.name

    def test_toggle_flips_visibility(
        self, client: TestClient, project: Path, exported: Path
    ) -> None:
        response = client.post(f"/api/dialog/toggle/{exported.name}")

        assert response.json()["isPublic"] is True
        assert is_public(exported, project)

        response = client.post(f"/api/dialog/toggle/{exported.name}")

        assert response.json()["isPublic"] is False
        assert not is_public(exported, project)

    def test_set_visibility(self, client: TestClient, project: Path, exported: Path) -> None:
        response = client.post(f"/api/dialog/visibility/{exported.name}", json={"isPublic": True})

        assert response.json() == {"success": True, "filename": exported.name, "isPublic": True}
        assert is_public(exported, project)

    def test_unknown_dialog(self, client: TestClient) -> None:
        assert client.post("/api/dialog/toggle/missing.md").status_code == 404
        assert client.get("/api/dialog/missing.md").status_code == 404
        assert client.get("/api/dialog/..").status_code == 404

    def test_dialog_content(self, client: TestClient, exported: Path) -> None:
        data = client.get(f"/api/dialog/{exported.name}").json()

        assert "# Claude Code Session" in data["content"]
        assert data["isPublic"] is False

    def test_write_summary(self, client: TestClient, exported: Path) -> None:
        response = client.post(
            f"/api/dialog/summary/{exported.name}", json={"summary": "Manual summary"}
        )

        assert response.status_code == 200
        assert exported.read_text().startswith("<!-- SUMMARY: Manual summary -->")
        assert client.post(
            f"/api/dialog/summary/{exported.name}", json={"summary": " "}
        ).status_code == 400

    def test_index_page(self, client: TestClient, exported: Path) -> None:
        response = client.get("/")

        assert response.status_code == 200
        assert exported.name in response.text


class TestTasks:
    """Tests for pending summary tasks."""

    def test_task_lifecycle(self, client: TestClient, exported: Path) -> None:
        created = client.post("/api/tasks", json={"filename": exported.name}).json()

        tasks = client.get("/api/tasks").json()
        assert tasks["total"] == 1
        assert tasks["tasks"][0]["id"] == created["id"]

        assert client.post(f"/api/tasks/{created['id']}/complete").status_code == 200
        assert client.get("/api/tasks").json()["total"] == 0
        assert client.post(f"/api/tasks/{created['id']}/complete").status_code == 404

    def test_task_for_unknown_dialog(self, client: TestClient) -> None:
        assert client.post("/api/tasks", json={"filename": "nope.md"}).status_code == 404
