"""API endpoint tests."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from conftest import bind_tool, insert_tool
from toolhub.infra.config import config
from toolhub.infra.database import get_db
from toolhub.logging.execution_logger import log_tool_execution
from toolhub.main import app
from toolhub.models.context import ToolContext
from toolhub.models.execution import ToolExecutionRecord


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def open_access():
    with patch.object(config, "API_KEY", None), patch.object(config, "APP_ENV", "test"):
        yield


class TestHealth:
    """Health endpoints."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "toolhub"
        assert data["builtin_tools"] == 11
        assert "pending_execution_logs" in data

    def test_liveness(self, client):
        assert client.get("/health/live").json() == {"status": "alive"}

    def test_readiness(self, client):
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json() == {"status": "ready"}

    def test_readiness_reports_missing_tables(self, client):
        session = MagicMock()

        def _execute(statement):
            if "tool_executions" in str(statement):
                raise OperationalError(str(statement), {}, Exception("no such table: tool_executions"))

        session.execute.side_effect = _execute
        app.dependency_overrides[get_db] = lambda: session
        try:
            response = client.get("/health/ready")
        finally:
            app.dependency_overrides.pop(get_db, None)

        assert response.status_code == 503
        assert response.json() == {"status": "not_ready", "unavailable": ["tool_executions"]}
        session.rollback.assert_called_once()

    def test_metrics(self, client):
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "tool_calls_total" in response.text

    def test_request_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"


class TestApiKey:
    """API key enforcement on /v1."""

    def test_open_outside_production_without_key(self, client, open_access):
        assert client.get("/v1/tools/builtin").status_code == 200

    def test_production_without_configured_key(self, client):
        with patch.object(config, "API_KEY", None), patch.object(config, "APP_ENV", "production"):
            response = client.get("/v1/tools/builtin")
        assert response.status_code == 503

    def test_missing_key(self, client):
        with patch.object(config, "API_KEY", "secret-key"):
            response = client.get("/v1/tools/builtin")
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "ApiKey"

    def test_wrong_key(self, client):
        with patch.object(config, "API_KEY", "secret-key"):
            response = client.get("/v1/tools/builtin", headers={"X-API-Key": "nope"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid API key"

    def test_header_key(self, client):
        with patch.object(config, "API_KEY", "secret-key"):
            response = client.get("/v1/tools/builtin", headers={"X-API-Key": "secret-key"})
        assert response.status_code == 200

    def test_query_key(self, client):
        with patch.object(config, "API_KEY", "secret-key"):
            response = client.get("/v1/tools/builtin", params={"api_key": "secret-key"})
        assert response.status_code == 200

    def test_health_is_never_protected(self, client):
        with patch.object(config, "API_KEY", "secret-key"):
            assert client.get("/health").status_code == 200


class TestToolEndpoints:
    """Catalogue and resolution."""

    def test_builtin_catalogue(self, client, open_access):
        data = client.get("/v1/tools/builtin").json()

        names = [item["name"] for item in data["items"]]
        assert data["count"] == 11
        assert "calculator" in names
        assert "web_search" in names
        calculator = next(item for item in data["items"] if item["name"] == "calculator")
        assert calculator["parameters"]["required"] == ["expression"]

    def test_assistant_tools(self, client, open_access, clean_db):
        insert_tool("t1", "calculator")
        insert_tool("t2", "date_time")
        insert_tool("t3", "hidden", category="custom")
        bind_tool("b1", "assistant-1", "t1", position=1)
        bind_tool("b2", "assistant-1", "t2", position=0)
        bind_tool("b3", "assistant-1", "t3", position=2)

        response = client.get("/v1/assistants/assistant-1/tools", params={"model_id": "openai/gpt-5.2"})

        assert response.status_code == 200
        data = response.json()
        assert data["function_calling"] is True
        assert data["names"] == ["date_time", "calculator"]
        assert [tool["tool_id"] for tool in data["tools"]] == ["t2", "t1"]
        assert data["tools"][0]["category"] == "builtin"

    def test_assistant_tools_default_model_has_none(self, client, open_access, clean_db):
        insert_tool("t1", "calculator")
        bind_tool("b1", "assistant-1", "t1")

        data = client.get("/v1/assistants/assistant-1/tools").json()

        assert data["function_calling"] is False
        assert data["names"] == []
        assert data["tools"] == []


class TestMcpSyncEndpoint:
    """MCP discovery trigger."""

    def test_sync(self, client, open_access):
        synced = [{"id": "t1", "name": "search", "description": "Search docs", "created": True}]
        with patch("toolhub.api.routers.tools.discover_and_sync_tools", AsyncMock(return_value=synced)) as sync:
            response = client.post("/v1/mcp-servers/srv1/sync")

        assert response.status_code == 200
        assert response.json() == {"server_id": "srv1", "count": 1, "tools": synced}
        sync.assert_awaited_once_with("srv1")

    def test_unknown_server(self, client, open_access, clean_db):
        response = client.post("/v1/mcp-servers/missing/sync")

        assert response.status_code == 404
        assert response.json()["detail"] == "MCP server not found: missing"

    def test_unreachable_server(self, client, open_access):
        failing = AsyncMock(side_effect=ConnectionError("refused"))
        with patch("toolhub.api.routers.tools.discover_and_sync_tools", failing):
            response = client.post("/v1/mcp-servers/srv1/sync")

        assert response.status_code == 502
        assert response.json()["detail"] == "MCP tool discovery failed: refused"


class TestExecutionEndpoints:
    """Execution history."""

    @pytest.fixture
    def executions(self, clean_db):
        context = ToolContext(organization_id="org-1", assistant_id="assistant-1", session_id="s-1")
        for tool_name, error in [("calculator", None), ("web_search", "HTTP 500: boom")]:
            record = ToolExecutionRecord.from_outcome(
                tool_name=tool_name,
                tool_id=None,
                category="builtin",
                params={"q": 1},
                context=context,
                duration_ms=8,
                output=None if error else {"success": True},
                error=error,
            )
            asyncio.run(log_tool_execution(record))

    def test_list(self, client, open_access, executions):
        response = client.get("/v1/tool-executions", params={"organization_id": "org-1"})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["has_more"] is False
        assert {item["tool_name"] for item in data["items"]} == {"calculator", "web_search"}

    def test_filter_by_status(self, client, open_access, executions):
        data = client.get("/v1/tool-executions", params={"status": "error"}).json()

        assert [item["tool_name"] for item in data["items"]] == ["web_search"]
        assert data["items"][0]["error"] == "HTTP 500: boom"
        assert data["items"][0]["output"] is None

    def test_invalid_status(self, client, open_access):
        response = client.get("/v1/tool-executions", params={"status": "maybe"})
        assert response.status_code == 422

    def test_limit_bounds(self, client, open_access):
        assert client.get("/v1/tool-executions", params={"limit": 0}).status_code == 422

    def test_stats(self, client, open_access, executions):
        data = client.get("/v1/tool-executions/stats", params={"organization_id": "org-1"}).json()

        by_name = {item["tool_name"]: item for item in data["items"]}
        assert by_name["calculator"]["success_count"] == 1
        assert by_name["web_search"]["error_count"] == 1
        assert by_name["web_search"]["avg_duration_ms"] == 8.0
