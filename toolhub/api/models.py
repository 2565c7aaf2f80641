"""Response models for the API endpoints."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class BuiltinToolResponse(BaseModel):
    """Built-in tool catalogue entry."""
    name: str
    display_name: str
    description: str
    parameters: Dict[str, Any] = Field(..., description="JSON schema of the tool's parameters")


class BuiltinToolListResponse(BaseModel):
    items: List[BuiltinToolResponse]
    count: int


class ResolvedToolResponse(BaseModel):
    name: str
    description: str
    category: str
    tool_id: Optional[str] = None
    parameters: Dict[str, Any]


class AssistantToolsResponse(BaseModel):
    """Tools the resolver would advertise for an assistant and model."""
    assistant_id: str
    model_id: str
    function_calling: bool = Field(..., description="Whether the model can call tools at all")
    names: List[str]
    tools: List[ResolvedToolResponse]


class ToolExecutionResponse(BaseModel):
    """One tool execution audit record."""
    id: str
    tool_name: str
    tool_id: Optional[str]
    category: Optional[str]
    assistant_id: Optional[str]
    session_id: Optional[str]
    input: Any = None
    output: Any = None
    error: Optional[str]
    duration_ms: int
    status: str
    organization_id: Optional[str]
    user_id: Optional[str]
    created_at: str


class ToolExecutionListResponse(BaseModel):
    items: List[ToolExecutionResponse]
    total: int
    limit: int
    offset: int
    has_more: bool = False


class ToolExecutionStats(BaseModel):
    tool_name: str
    total: int
    success_count: int
    error_count: int
    avg_duration_ms: float


class ToolExecutionStatsResponse(BaseModel):
    items: List[ToolExecutionStats]


class McpSyncedTool(BaseModel):
    id: str
    name: str
    description: str
    created: bool = Field(..., description="False when an existing row was updated")


class McpSyncResponse(BaseModel):
    """Result of discovering and syncing one MCP server's tools."""
    server_id: str
    count: int
    tools: List[McpSyncedTool]
