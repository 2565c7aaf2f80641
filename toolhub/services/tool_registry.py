"""Tool registry queries: assistant bindings and execution history."""

import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy import text

from toolhub.infra.database import get_db_session
from toolhub.models.tool import (
    AssistantToolBinding,
    ExecutionConfig,
    McpServerConfig,
    ToolDescriptor,
)

logger = logging.getLogger(__name__)


def decode_json_column(value: Any) -> Any:
    """JSON columns come back as str on SQLite and as dict/list on PostgreSQL."""
    if value is None or isinstance(value, (dict, list)):
        return value
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return None


def _row_to_binding(assistant_id: str, row) -> AssistantToolBinding:
    mcp_server = None
    if row.mcp_server_id:
        mcp_server = McpServerConfig(
            id=str(row.mcp_server_id),
            name=row.mcp_server_name,
            transport=row.mcp_transport,
            url=row.mcp_url,
            command=row.mcp_command,
            args=decode_json_column(row.mcp_args) or [],
            env=decode_json_column(row.mcp_env),
            headers=decode_json_column(row.mcp_headers),
        )

    execution_config = None
    raw_execution_config = decode_json_column(row.execution_config)
    if raw_execution_config:
        execution_config = ExecutionConfig.model_validate(raw_execution_config)

    tool = ToolDescriptor(
        id=str(row.tool_id),
        name=row.name,
        display_name=row.display_name or row.name,
        description=row.description or "",
        category=row.category,
        parameters=decode_json_column(row.parameters) or {"type": "object", "properties": {}},
        enabled=bool(row.tool_enabled),
        mcp_server=mcp_server,
        execution_config=execution_config,
    )
    return AssistantToolBinding(
        assistant_id=assistant_id,
        tool=tool,
        enabled=bool(row.binding_enabled),
    )


def load_assistant_tool_bindings(assistant_id: str) -> List[AssistantToolBinding]:
    """
    Load the enabled tool bindings of an assistant.

    Each binding carries its descriptor and, for MCP tools, the joined server
    row. Bindings come back in assistant order (position, then creation time).
    Rows that fail validation are skipped with a warning so one corrupt
    descriptor cannot hide the rest.
    """
    with get_db_session() as session:
        rows = session.execute(
            text("""
                SELECT ab.enabled AS binding_enabled,
                       t.id AS tool_id, t.name, t.display_name, t.description,
                       t.category, t.parameters, t.execution_config,
                       t.enabled AS tool_enabled,
                       s.id AS mcp_server_id, s.name AS mcp_server_name,
                       s.transport AS mcp_transport, s.url AS mcp_url,
                       s.command AS mcp_command, s.args AS mcp_args,
                       s.env AS mcp_env, s.headers AS mcp_headers
                FROM assistant_tools ab
                JOIN tools t ON ab.tool_id = t.id
                LEFT JOIN mcp_servers s ON t.mcp_server_id = s.id
                WHERE ab.assistant_id = :assistant_id
                  AND ab.enabled = TRUE
                ORDER BY ab.position ASC, ab.created_at ASC
            """),
            {"assistant_id": assistant_id}
        ).fetchall()

    bindings = []
    for row in rows:
        try:
            bindings.append(_row_to_binding(assistant_id, row))
        except ValidationError as e:
            logger.warning(
                f"Skipping invalid tool descriptor {row.tool_id} for assistant {assistant_id}: {e}"
            )
    return bindings


def list_tool_executions(
    organization_id: Optional[str] = None,
    assistant_id: Optional[str] = None,
    tool_name: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
) -> Dict[str, Any]:
    """List execution records, newest first, with a has_more flag."""
    query = """
        SELECT id, tool_name, tool_id, category, assistant_id, session_id,
               input, output, error, duration_ms, status,
               organization_id, user_id, created_at
        FROM tool_executions
        WHERE 1 = 1
    """
    params: Dict[str, Any] = {}

    if organization_id:
        query += " AND organization_id = :organization_id"
        params["organization_id"] = organization_id

    if assistant_id:
        query += " AND assistant_id = :assistant_id"
        params["assistant_id"] = assistant_id

    if tool_name:
        query += " AND tool_name = :tool_name"
        params["tool_name"] = tool_name

    if status:
        query += " AND status = :status"
        params["status"] = status

    query += " ORDER BY created_at DESC"
    query += " LIMIT :limit OFFSET :offset"
    params["limit"] = limit + 1
    params["offset"] = offset

    with get_db_session(organization_id) as session:
        rows = session.execute(text(query), params).fetchall()

    has_more = len(rows) > limit
    if has_more:
        rows = rows[:limit]

    items = [
        {
            "id": str(row.id),
            "tool_name": row.tool_name,
            "tool_id": str(row.tool_id) if row.tool_id else None,
            "category": row.category,
            "assistant_id": row.assistant_id,
            "session_id": row.session_id,
            "input": decode_json_column(row.input),
            "output": decode_json_column(row.output),
            "error": row.error,
            "duration_ms": row.duration_ms,
            "status": row.status,
            "organization_id": row.organization_id,
            "user_id": row.user_id,
            "created_at": row.created_at.isoformat() if hasattr(row.created_at, "isoformat") else str(row.created_at),
        }
        for row in rows
    ]

    return {"items": items, "has_more": has_more}


def get_tool_execution_stats(
    organization_id: Optional[str] = None,
    assistant_id: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Per-tool call counts, error counts and average duration."""
    query = """
        SELECT tool_name,
               COUNT(*) AS total,
               SUM(CASE WHEN status = 'success' THEN 1 ELSE 0 END) AS success_count,
               SUM(CASE WHEN status = 'error' THEN 1 ELSE 0 END) AS error_count,
               AVG(duration_ms) AS avg_duration_ms
        FROM tool_executions
        WHERE 1 = 1
    """
    params: Dict[str, Any] = {}

    if organization_id:
        query += " AND organization_id = :organization_id"
        params["organization_id"] = organization_id

    if assistant_id:
        query += " AND assistant_id = :assistant_id"
        params["assistant_id"] = assistant_id

    query += " GROUP BY tool_name ORDER BY total DESC, tool_name ASC"

    with get_db_session(organization_id) as session:
        rows = session.execute(text(query), params).fetchall()

    return [
        {
            "tool_name": row.tool_name,
            "total": int(row.total),
            "success_count": int(row.success_count or 0),
            "error_count": int(row.error_count or 0),
            "avg_duration_ms": round(float(row.avg_duration_ms or 0), 1),
        }
        for row in rows
    ]
