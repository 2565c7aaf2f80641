"""Pytest configuration and fixtures."""

import importlib.util
import json
import os
from pathlib import Path

# Must be set before toolhub modules read their configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "false")

import pytest
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import text

from toolhub.infra.database import engine
from toolhub.models.context import ToolContext

MIGRATION_FILE = Path(__file__).parent.parent / "alembic" / "versions" / "001_initial_schema.py"
TABLES = ("tool_executions", "assistant_tools", "tools", "mcp_servers")


def _load_migration():
    spec = importlib.util.spec_from_file_location("initial_schema", MIGRATION_FILE)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture(scope="session", autouse=True)
def schema():
    """Create the schema once by running the initial migration against SQLite."""
    migration = _load_migration()
    with engine.begin() as connection:
        context = MigrationContext.configure(connection)
        with Operations.context(context):
            migration.upgrade()
    yield


@pytest.fixture
def clean_db():
    """Empty every table before and after a test."""
    def _truncate():
        with engine.begin() as connection:
            for table in TABLES:
                connection.execute(text(f"DELETE FROM {table}"))

    _truncate()
    yield
    _truncate()


@pytest.fixture
def tool_context():
    return ToolContext(
        organization_id="org-1",
        user_id="user-1",
        session_id="session-1",
        assistant_id="assistant-1",
    )


def insert_mcp_server(server_id, name="Test MCP", transport="streamable-http", url="https://mcp.example.com/mcp",
                      command=None, args=None, env=None, headers=None, organization_id=None):
    with engine.begin() as connection:
        connection.execute(
            text("""
                INSERT INTO mcp_servers (id, organization_id, name, transport, url, command, args, env, headers)
                VALUES (:id, :organization_id, :name, :transport, :url, :command, :args, :env, :headers)
            """),
            {
                "id": server_id,
                "organization_id": organization_id,
                "name": name,
                "transport": transport,
                "url": url,
                "command": command,
                "args": json.dumps(args) if args is not None else None,
                "env": json.dumps(env) if env is not None else None,
                "headers": json.dumps(headers) if headers is not None else None,
            },
        )


def insert_tool(tool_id, name, category="builtin", description="", parameters=None,
                execution_config=None, mcp_server_id=None, enabled=True, display_name=""):
    with engine.begin() as connection:
        connection.execute(
            text("""
                INSERT INTO tools (id, name, display_name, description, category, parameters,
                                   execution_config, mcp_server_id, enabled)
                VALUES (:id, :name, :display_name, :description, :category, :parameters,
                        :execution_config, :mcp_server_id, :enabled)
            """),
            {
                "id": tool_id,
                "name": name,
                "display_name": display_name,
                "description": description,
                "category": category,
                "parameters": json.dumps(parameters) if parameters is not None else None,
                "execution_config": json.dumps(execution_config) if execution_config is not None else None,
                "mcp_server_id": mcp_server_id,
                "enabled": enabled,
            },
        )


def bind_tool(binding_id, assistant_id, tool_id, position=0, enabled=True):
    with engine.begin() as connection:
        connection.execute(
            text("""
                INSERT INTO assistant_tools (id, assistant_id, tool_id, enabled, position)
                VALUES (:id, :assistant_id, :tool_id, :enabled, :position)
            """),
            {
                "id": binding_id,
                "assistant_id": assistant_id,
                "tool_id": tool_id,
                "enabled": enabled,
                "position": position,
            },
        )
