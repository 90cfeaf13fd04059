"""Integration tests for file and tool API endpoints."""

import pytest
import pytest_asyncio
from httpx import AsyncClient

from preview_engine.config import settings


@pytest_asyncio.fixture
async def session_id(client: AsyncClient) -> str:
    """Create a session over a small project."""
    config = {
        "projectName": "demo",
        "files": {
            "a.ts": "let x=1",
            "src/main.ts": "import { AppModule } from './app.module';\n",
            "src/app.module.ts": "export class AppModule {}\n",
        },
    }
    response = await client.post("/api/v1/sessions", json={"config": config})
    return response.json()["session_id"]


class TestFileEndpoints:
    """Tests for tree, file, diff and history endpoints."""

    @pytest.mark.asyncio
    async def test_tree(self, client: AsyncClient, session_id: str) -> None:
        response = await client.get(f"/api/v1/sessions/{session_id}/tree")

        assert response.status_code == 200
        data = response.json()
        assert data["total_files"] == 3
        assert data["project_name"] == "demo"
        assert [(n["name"], n["type"]) for n in data["tree"]] == [("src", "dir"), ("a.ts", "file")]
        assert [n["path"] for n in data["tree"][0]["children"]] == [
            "src/app.module.ts",
            "src/main.ts",
        ]

    @pytest.mark.asyncio
    async def test_read_file(self, client: AsyncClient, session_id: str) -> None:
        response = await client.get(
            f"/api/v1/sessions/{session_id}/file", params={"path": "a.ts"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["content"] == "let x=1"
        assert data["dirty"] is False
        assert data["can_undo"] is False

    @pytest.mark.asyncio
    async def test_read_missing_file(self, client: AsyncClient, session_id: str) -> None:
        response = await client.get(
            f"/api/v1/sessions/{session_id}/file", params={"path": "nope.ts"}
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "FILE_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_save_undo_redo(self, client: AsyncClient, session_id: str) -> None:
        """Test the save, undo, redo round trip over HTTP."""
        base = f"/api/v1/sessions/{session_id}"

        response = await client.put(f"{base}/file", json={"path": "a.ts", "content": "let x=1;"})
        assert response.status_code == 200
        assert response.json()["ok"] is True
        assert response.json()["dirty"] is True

        response = await client.post(f"{base}/undo", json={"path": "a.ts"})
        data = response.json()
        assert data["content"] == "let x=1"
        assert data["dirty"] is False
        assert data["can_redo"] is True

        response = await client.post(f"{base}/redo", json={"path": "a.ts"})
        data = response.json()
        assert data["content"] == "let x=1;"
        assert data["dirty"] is True

        response = await client.get(f"{base}/dirty")
        assert response.json() == {"files": ["a.ts"]}

    @pytest.mark.asyncio
    async def test_save_rejects_unencodable_content(
        self, client: AsyncClient, session_id: str
    ) -> None:
        """Test a lone surrogate is refused before it reaches the store."""
        base = f"/api/v1/sessions/{session_id}"

        response = await client.put(
            f"{base}/file",
            content=b'{"path": "a.ts", "content": "a\\ud800"}',
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 422

        response = await client.get(f"{base}/dirty")
        assert response.json() == {"files": []}
        response = await client.get(f"{base}/download")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_nothing_to_undo(self, client: AsyncClient, session_id: str) -> None:
        response = await client.post(
            f"/api/v1/sessions/{session_id}/undo", json={"path": "a.ts"}
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "NOTHING_TO_UNDO"

    @pytest.mark.asyncio
    async def test_diff_and_reset(self, client: AsyncClient, session_id: str) -> None:
        base = f"/api/v1/sessions/{session_id}"
        await client.put(f"{base}/file", json={"path": "a.ts", "content": "const x = 1;\n"})

        response = await client.get(f"{base}/diff", params={"path": "a.ts"})
        assert response.json() == {
            "path": "a.ts",
            "original": "let x=1",
            "current": "const x = 1;\n",
            "dirty": True,
        }

        response = await client.post(f"{base}/reset", json={"path": "a.ts"})
        assert response.json() == {"path": "a.ts", "content": "let x=1", "dirty": False}

        response = await client.post(f"{base}/undo", json={"path": "a.ts"})
        assert response.status_code == 409


class TestSessionTypecheck:
    """Tests for POST /sessions/{id}/typecheck."""

    @pytest.mark.asyncio
    async def test_checks_current_contents(self, client: AsyncClient, session_id: str) -> None:
        """Test unsaved-to-disk edits are what gets checked."""
        base = f"/api/v1/sessions/{session_id}"
        response = await client.post(f"{base}/typecheck", json={})
        assert response.status_code == 200
        assert response.json()["diagnostics"] == []

        await client.put(
            f"{base}/file", json={"path": "src/main.ts", "content": "const n: number = 'x';\n"}
        )
        response = await client.post(f"{base}/typecheck", json={})
        [diagnostic] = response.json()["diagnostics"]
        assert diagnostic["file"] == "src/main.ts"
        assert diagnostic["line"] == 1
        assert diagnostic["severity"] == "error"
        assert diagnostic["source"] == "typescript"

    @pytest.mark.asyncio
    async def test_path_filter(self, client: AsyncClient, session_id: str) -> None:
        base = f"/api/v1/sessions/{session_id}"
        await client.put(
            f"{base}/file", json={"path": "src/main.ts", "content": "const n: number = 'x';\n"}
        )

        response = await client.post(f"{base}/typecheck", json={"path": "src/app.module.ts"})
        assert response.json()["diagnostics"] == []

        response = await client.post(f"{base}/typecheck", json={"path": "src\\main.ts"})
        assert len(response.json()["diagnostics"]) == 1

    @pytest.mark.asyncio
    async def test_path_filter_unknown_file(self, client: AsyncClient, session_id: str) -> None:
        response = await client.post(
            f"/api/v1/sessions/{session_id}/typecheck", json={"path": "missing.ts"}
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_path_filter_invalid_path(self, client: AsyncClient, session_id: str) -> None:
        response = await client.post(
            f"/api/v1/sessions/{session_id}/typecheck", json={"path": "../x.ts"}
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_REQUEST"


class TestToolEndpoints:
    """Tests for /tools endpoints."""

    @pytest.mark.asyncio
    async def test_format(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/tools/format", json={"code": 'const a = "x"', "language": "typescript"}
        )
        assert response.status_code == 200
        assert response.json() == {"formatted": "const a = 'x';\n"}

    @pytest.mark.asyncio
    async def test_format_error(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/tools/format", json={"code": "const = ;"})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "FORMAT_ERROR"

    @pytest.mark.asyncio
    async def test_lint(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/tools/lint", json={"code": "let x=1", "file_path": "a.ts"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["diagnostics"]
        assert all(d["line"] == 1 for d in data["diagnostics"])
        assert data["fixed_code"] is None

    @pytest.mark.asyncio
    async def test_lint_fix(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/tools/lint", json={"code": "var a = 1\nconsole.log(a)\n", "fix": True}
        )
        assert response.json()["fixed_code"] == "const a = 1;\nconsole.log(a);\n"

    @pytest.mark.asyncio
    async def test_typecheck(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/tools/typecheck", json={"files": {"a.ts": "const n: number = 'x';"}}
        )

        [diagnostic] = response.json()["diagnostics"]
        assert diagnostic["code"] == "TS2322"
        assert diagnostic["line"] == 1

    @pytest.mark.asyncio
    async def test_sandbox_violation(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/tools/typecheck",
            json={"files": {"a.ts": "export {};\n"}, "compiler_options": {"noEmit": False}},
        )
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "SANDBOX_VIOLATION"

    @pytest.mark.asyncio
    async def test_payload_too_large(self, client: AsyncClient, monkeypatch) -> None:
        monkeypatch.setattr(settings, "max_code_length", 10)
        response = await client.post("/api/v1/tools/format", json={"code": "let a = 1;" * 2})

        assert response.status_code == 413
        assert response.json()["error"]["code"] == "PAYLOAD_TOO_LARGE"
