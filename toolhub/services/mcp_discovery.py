"""Discover the tools an MCP server advertises and sync them into ``tools``."""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import JSON, DateTime, bindparam, text

from toolhub.adapters.mcp_client import MCPClientManager, McpToolInfo, mcp_client_manager
from toolhub.infra.database import get_db_session
from toolhub.infra.error_handler import error_message
from toolhub.infra.metrics import mcp_tool_syncs_total
from toolhub.models.tool import McpServerConfig, ToolCategory
from toolhub.services.tool_registry import decode_json_column

logger = logging.getLogger(__name__)

_SELECT_SERVER = text("""
    SELECT id, organization_id, name, transport, url, command, args, env, headers
    FROM mcp_servers
    WHERE id = :server_id
""")

_DELETE_STALE_TOOLS = text("""
    DELETE FROM tools
    WHERE mcp_server_id = :server_id AND name NOT IN :names
""").bindparams(bindparam("names", expanding=True))

_DELETE_SERVER_TOOLS = text("DELETE FROM tools WHERE mcp_server_id = :server_id")

_SELECT_EXISTING_TOOL = text("""
    SELECT id FROM tools
    WHERE mcp_server_id = :server_id AND name = :name
""")

_UPDATE_TOOL = text("""
    UPDATE tools
    SET display_name = :name, description = :description,
        parameters = :parameters, updated_at = :now
    WHERE id = :id
""").bindparams(
    bindparam("parameters", type_=JSON),
    bindparam("now", type_=DateTime(timezone=True)),
)

_INSERT_TOOL = text("""
    INSERT INTO tools (
        id, organization_id, name, display_name, description, category,
        parameters, mcp_server_id, enabled, created_at, updated_at
    ) VALUES (
        :id, :organization_id, :name, :name, :description, :category,
        :parameters, :server_id, :enabled, :now, :now
    )
""").bindparams(
    bindparam("parameters", type_=JSON),
    bindparam("now", type_=DateTime(timezone=True)),
)

_MARK_CONNECTED = text("""
    UPDATE mcp_servers
    SET last_connected_at = :now, last_error = NULL, updated_at = :now
    WHERE id = :server_id
""").bindparams(bindparam("now", type_=DateTime(timezone=True)))

_MARK_FAILED = text("""
    UPDATE mcp_servers
    SET last_error = :error, updated_at = :now
    WHERE id = :server_id
""").bindparams(bindparam("now", type_=DateTime(timezone=True)))


def _load_server(server_id: str) -> Tuple[McpServerConfig, Optional[str]]:
    with get_db_session() as session:
        row = session.execute(_SELECT_SERVER, {"server_id": server_id}).first()

    if row is None:
        raise LookupError(f"MCP server not found: {server_id}")

    server = McpServerConfig(
        id=str(row.id),
        name=row.name,
        transport=row.transport,
        url=row.url,
        command=row.command,
        args=decode_json_column(row.args) or [],
        env=decode_json_column(row.env),
        headers=decode_json_column(row.headers),
    )
    return server, row.organization_id


def _sync_tools(
    server: McpServerConfig,
    organization_id: Optional[str],
    tools: List[McpToolInfo],
) -> List[Dict[str, Any]]:
    now = datetime.now(timezone.utc)
    names = [tool.name for tool in tools]
    synced = []

    with get_db_session(organization_id) as session:
        # Tools the server no longer advertises are removed
        if names:
            session.execute(_DELETE_STALE_TOOLS, {"server_id": server.id, "names": names})
        else:
            session.execute(_DELETE_SERVER_TOOLS, {"server_id": server.id})

        for tool in tools:
            values = {
                "name": tool.name,
                "description": tool.description or f"MCP tool from {server.name}",
                "parameters": tool.input_schema,
                "now": now,
            }
            existing = session.execute(
                _SELECT_EXISTING_TOOL, {"server_id": server.id, "name": tool.name}
            ).first()

            if existing is not None:
                tool_id = str(existing.id)
                session.execute(_UPDATE_TOOL, {**values, "id": tool_id})
            else:
                tool_id = str(uuid.uuid4())
                session.execute(_INSERT_TOOL, {
                    **values,
                    "id": tool_id,
                    "organization_id": organization_id,
                    "category": ToolCategory.MCP.value,
                    "server_id": server.id,
                    "enabled": True,
                })

            synced.append({
                "id": tool_id,
                "name": tool.name,
                "description": values["description"],
                "created": existing is None,
            })

        session.execute(_MARK_CONNECTED, {"server_id": server.id, "now": now})

    return synced


def _record_failure(server_id: str, organization_id: Optional[str], message: str) -> None:
    with get_db_session(organization_id) as session:
        session.execute(
            _MARK_FAILED,
            {"server_id": server_id, "error": message, "now": datetime.now(timezone.utc)},
        )


async def discover_and_sync_tools(
    server_id: str,
    manager: Optional[MCPClientManager] = None,
) -> List[Dict[str, Any]]:
    """
    Connect to an MCP server, list its tools and sync them to the database.

    Each advertised tool is upserted as a ``category="mcp"`` row keyed by
    (server, name); rows for tools the server stopped advertising are
    deleted. On success the server's ``last_connected_at`` is stamped and
    ``last_error`` cleared. On failure ``last_error`` is recorded and the
    error re-raised.

    Args:
        server_id: ID of the mcp_servers row
        manager: MCP client manager (defaults to the process-wide one)

    Returns:
        One entry per synced tool: id, name, description, created

    Raises:
        LookupError: If the server row does not exist
    """
    manager = manager or mcp_client_manager
    server, organization_id = await asyncio.to_thread(_load_server, server_id)

    try:
        tools = await manager.list_tools(server)
        synced = await asyncio.to_thread(_sync_tools, server, organization_id, tools)
    except Exception as e:
        message = error_message(e)
        logger.warning(f"MCP tool discovery failed for server {server.name}: {message}")
        mcp_tool_syncs_total.labels(status="error").inc()
        await asyncio.to_thread(_record_failure, server_id, organization_id, message)
        raise

    mcp_tool_syncs_total.labels(status="success").inc()
    logger.info(f"Synced {len(synced)} tools from MCP server {server.name}")
    return synced
