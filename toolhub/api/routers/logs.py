"""Tool execution logs API router."""

from typing import Optional

from fastapi import APIRouter, Query, Security
from fastapi.concurrency import run_in_threadpool

from toolhub.api.models import ToolExecutionListResponse, ToolExecutionStatsResponse
from toolhub.infra.auth import verify_api_key
from toolhub.models.execution import ExecutionStatus
from toolhub.services.tool_registry import get_tool_execution_stats, list_tool_executions

router = APIRouter(prefix="/v1", dependencies=[Security(verify_api_key)])


@router.get("/tool-executions", tags=["Logs"], response_model=ToolExecutionListResponse)
async def get_tool_executions(
    organization_id: Optional[str] = Query(None, description="Filter by organization ID"),
    assistant_id: Optional[str] = Query(None, description="Filter by assistant ID"),
    tool_name: Optional[str] = Query(None, description="Filter by tool name"),
    status: Optional[ExecutionStatus] = Query(None, description="Filter by status: 'success' or 'error'"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of results"),
    offset: int = Query(0, ge=0, description="Offset for pagination"),
):
    """List tool execution records, newest first."""
    page = await run_in_threadpool(
        list_tool_executions,
        organization_id=organization_id,
        assistant_id=assistant_id,
        tool_name=tool_name,
        status=status.value if status else None,
        limit=limit,
        offset=offset,
    )

    return ToolExecutionListResponse(
        items=page["items"],
        total=len(page["items"]),
        limit=limit,
        offset=offset,
        has_more=page["has_more"],
    )


@router.get("/tool-executions/stats", tags=["Logs"], response_model=ToolExecutionStatsResponse)
async def get_tool_execution_statistics(
    organization_id: Optional[str] = Query(None, description="Filter by organization ID"),
    assistant_id: Optional[str] = Query(None, description="Filter by assistant ID"),
):
    """Per-tool call counts, error counts and average latency."""
    items = await run_in_threadpool(
        get_tool_execution_stats,
        organization_id=organization_id,
        assistant_id=assistant_id,
    )
    return ToolExecutionStatsResponse(items=items)
