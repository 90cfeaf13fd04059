"""Integration tests for session and server API endpoints."""

import io
import json
import zipfile

import pytest
from httpx import AsyncClient

from preview_engine.core.session import SessionManager

CONFIG = {
    "projectName": "shop-api",
    "files": [
        {"path": "package.json", "content": '{\n  "name": "shop-api"\n}\n'},
        {"path": "src/main.ts", "content": "import { AppModule } from './app.module';\n"},
        {"path": "src/app.module.ts", "content": "export class AppModule {}\n"},
    ],
}


async def _create(client: AsyncClient, config: dict | None = None) -> str:
    response = await client.post("/api/v1/sessions", json={"config": config or CONFIG})
    assert response.status_code == 201
    return response.json()["session_id"]


class TestServerEndpoints:
    """Tests for /health and /info."""

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["sandbox_running"] is True
        assert data["active_sessions"] == 0
        assert "version" in data

    @pytest.mark.asyncio
    async def test_info(self, client: AsyncClient) -> None:
        await _create(client)
        response = await client.get("/api/v1/info")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Preview Engine"
        assert data["session_ttl_minutes"] == 30
        assert data["active_sessions"] == 1
        assert data["total_files"] == 3
        assert data["sandbox_workers"] == 1


class TestSessionsEndpoint:
    """Tests for /sessions endpoints."""

    @pytest.mark.asyncio
    async def test_create_session(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/sessions", json={"config": CONFIG})

        assert response.status_code == 201
        data = response.json()
        assert data["session_id"].startswith("prev_")
        assert data["project_name"] == "shop-api"
        assert data["total_files"] == 3
        assert "expires_at" in data

    @pytest.mark.asyncio
    async def test_create_invalid_config(self, client: AsyncClient) -> None:
        """Test a configuration without files is a generation error."""
        response = await client.post("/api/v1/sessions", json={"config": {"projectName": "x"}})

        assert response.status_code == 422
        data = response.json()
        assert data["success"] is False
        assert data["error"]["code"] == "GENERATION_ERROR"
        assert "request_id" in data["meta"]

    @pytest.mark.asyncio
    async def test_create_duplicate_paths(self, client: AsyncClient) -> None:
        config = {"files": {"a.ts": "1", "/a.ts": "2"}}
        response = await client.post("/api/v1/sessions", json={"config": config})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_session_limit(self, client: AsyncClient) -> None:
        for _ in range(3):
            await _create(client)
        response = await client.post("/api/v1/sessions", json={"config": CONFIG})

        assert response.status_code == 429
        assert response.json()["error"]["code"] == "SESSION_LIMIT_REACHED"

    @pytest.mark.asyncio
    async def test_list_sessions(self, client: AsyncClient) -> None:
        first = await _create(client)
        second = await _create(client)

        response = await client.get("/api/v1/sessions")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert {s["session_id"] for s in data["sessions"]} == {first, second}

    @pytest.mark.asyncio
    async def test_get_session(self, client: AsyncClient) -> None:
        session_id = await _create(client)

        response = await client.get(f"/api/v1/sessions/{session_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["session_id"] == session_id
        assert data["dirty_files"] == 0
        assert data["files"] == ["package.json", "src/main.ts", "src/app.module.ts"]

    @pytest.mark.asyncio
    async def test_get_unknown_session(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/sessions/prev_nope")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "SESSION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_expired_session(self, client: AsyncClient, clock) -> None:
        """Test a session idle past its TTL answers 410."""
        session_id = await _create(client)
        clock.advance(31 * 60)

        response = await client.get(f"/api/v1/sessions/{session_id}/tree")

        assert response.status_code == 410
        assert response.json()["error"]["code"] == "SESSION_EXPIRED"

    @pytest.mark.asyncio
    async def test_requests_refresh_ttl(self, client: AsyncClient, clock) -> None:
        session_id = await _create(client)
        for _ in range(3):
            clock.advance(20 * 60)
            response = await client.get(f"/api/v1/sessions/{session_id}/dirty")
            assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_delete_session(
        self, client: AsyncClient, session_manager: SessionManager
    ) -> None:
        session_id = await _create(client)

        response = await client.delete(f"/api/v1/sessions/{session_id}")

        assert response.status_code == 204
        assert session_manager.active_count == 0
        response = await client.delete(f"/api/v1/sessions/{session_id}")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_download(self, client: AsyncClient) -> None:
        """Test the archive holds current contents plus metadata."""
        session_id = await _create(client)
        await client.put(
            f"/api/v1/sessions/{session_id}/file",
            json={"path": "src/app.module.ts", "content": "export class AppModule { x = 1; }\n"},
        )

        response = await client.get(f"/api/v1/sessions/{session_id}/download")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/zip"
        assert 'filename="shop-api.zip"' in response.headers["content-disposition"]
        with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
            assert archive.read("src/app.module.ts").decode() == (
                "export class AppModule { x = 1; }\n"
            )
            metadata = json.loads(archive.read(".generator-metadata.json"))
        assert metadata["projectName"] == "shop-api"
        assert metadata["totalFiles"] == 3
