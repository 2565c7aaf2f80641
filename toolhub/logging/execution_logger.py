"""Tool execution audit logging.

Every invocation attempt produces one row in ``tool_executions``. Writes are
plain inserts, so parallel tool calls never contend on shared rows. The
resolver dispatches records without awaiting them; a failed write is logged
and counted, never surfaced to the caller.
"""

import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional, Set

from sqlalchemy import JSON, DateTime, bindparam, text

from toolhub.infra.database import get_db_session
from toolhub.infra.metrics import tool_calls_total, tool_call_duration, tool_log_failures_total
from toolhub.models.execution import ToolExecutionRecord

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 2000

_INSERT_TOOL_EXECUTION = text("""
    INSERT INTO tool_executions (
        id, tool_name, tool_id, category, assistant_id, session_id,
        input, output, error, duration_ms, status,
        organization_id, user_id, created_at
    ) VALUES (
        :id, :tool_name, :tool_id, :category, :assistant_id, :session_id,
        :input, :output, :error, :duration_ms, :status,
        :organization_id, :user_id, :created_at
    )
""").bindparams(
    bindparam("input", type_=JSON),
    bindparam("output", type_=JSON),
    bindparam("created_at", type_=DateTime(timezone=True)),
)

# Strong references to in-flight log tasks so they are not garbage collected
_pending_logs: Set[asyncio.Task] = set()


def _json_safe(value: Any) -> Any:
    """Coerce tool input/output into something a JSON column accepts."""
    if value is None:
        return None
    return json.loads(json.dumps(value, default=str))


def _insert_record(record: ToolExecutionRecord) -> str:
    record_id = str(uuid.uuid4())
    error = record.error[:MAX_ERROR_LENGTH] if record.error else None

    with get_db_session(record.organization_id) as session:
        session.execute(
            _INSERT_TOOL_EXECUTION,
            {
                "id": record_id,
                "tool_name": record.tool_name,
                "tool_id": record.tool_id,
                "category": record.category,
                "assistant_id": record.assistant_id,
                "session_id": record.session_id,
                "input": _json_safe(record.input),
                "output": _json_safe(record.output),
                "error": error,
                "duration_ms": record.duration_ms,
                "status": record.status.value,
                "organization_id": record.organization_id,
                "user_id": record.user_id,
                "created_at": datetime.now(timezone.utc),
            }
        )
    return record_id


async def log_tool_execution(record: ToolExecutionRecord) -> str:
    """
    Persist one tool execution record.

    The blocking database write runs in a worker thread so the event loop
    keeps serving tool results while the insert is in flight.

    Args:
        record: The execution outcome to persist

    Returns:
        ID of the inserted row
    """
    return await asyncio.to_thread(_insert_record, record)


def _record_metrics(record: ToolExecutionRecord) -> None:
    category = record.category or "unknown"
    tool_calls_total.labels(
        tool_name=record.tool_name, category=category, status=record.status.value
    ).inc()
    tool_call_duration.labels(tool_name=record.tool_name, category=category).observe(
        record.duration_ms / 1000
    )


async def _log_safely(record: ToolExecutionRecord) -> None:
    try:
        await log_tool_execution(record)
    except Exception as e:
        # Don't fail tool execution if logging fails
        tool_log_failures_total.inc()
        logger.warning(
            f"Failed to log tool execution for {record.tool_name}: {e}",
            extra={"tool_name": record.tool_name, "status": record.status.value},
        )


def dispatch_tool_execution_log(record: ToolExecutionRecord) -> Optional[asyncio.Task]:
    """
    Fire-and-forget logging of a tool execution record.

    Never raises. Returns the background task, or None when no event loop
    is running and the record had to be dropped.
    """
    try:
        _record_metrics(record)
    except Exception as e:
        logger.debug(f"Tool metrics update failed: {e}")

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.warning(
            f"No running event loop, dropping execution record for {record.tool_name}"
        )
        return None

    task = loop.create_task(_log_safely(record))
    _pending_logs.add(task)
    task.add_done_callback(_pending_logs.discard)
    return task


async def drain_pending_logs(timeout: float = 5.0) -> None:
    """Wait for in-flight log writes, used on shutdown."""
    if not _pending_logs:
        return
    done, pending = await asyncio.wait(list(_pending_logs), timeout=timeout)
    if pending:
        logger.warning(f"{len(pending)} tool execution records still pending at shutdown")


def pending_log_count() -> int:
    """Number of dispatched records whose write has not finished."""
    return len(_pending_logs)
