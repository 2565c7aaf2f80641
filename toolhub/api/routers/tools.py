"""Tool catalogue, resolution and MCP sync API router."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Security

from toolhub.api.models import (
    AssistantToolsResponse,
    BuiltinToolListResponse,
    BuiltinToolResponse,
    McpSyncedTool,
    McpSyncResponse,
    ResolvedToolResponse,
)
from toolhub.infra.auth import verify_api_key
from toolhub.infra.error_handler import error_message
from toolhub.models.context import ToolContext
from toolhub.models.llm_model import DEFAULT_MODEL_ID, supports_function_calling
from toolhub.services.mcp_discovery import discover_and_sync_tools
from toolhub.services.tool_resolver import get_tool_resolver

router = APIRouter(prefix="/v1", dependencies=[Security(verify_api_key)])


@router.get("/tools/builtin", tags=["Tools"], response_model=BuiltinToolListResponse)
async def list_builtin_tools():
    """List the built-in tools available to assistants."""
    resolver = get_tool_resolver()
    items = [
        BuiltinToolResponse(
            name=tool.name,
            display_name=tool.display_name,
            description=tool.description,
            parameters=tool.json_schema(),
        )
        for tool in resolver.builtin_tools.values()
    ]
    return BuiltinToolListResponse(items=items, count=len(items))


@router.get(
    "/assistants/{assistant_id}/tools",
    tags=["Tools"],
    response_model=AssistantToolsResponse,
)
async def get_assistant_tools(
    assistant_id: str,
    model_id: str = Query(DEFAULT_MODEL_ID, description="Model the assistant will run on"),
    organization_id: Optional[str] = Query(None, description="Organization scope"),
):
    """Show which tools would be advertised to the model for this assistant."""
    context = ToolContext(organization_id=organization_id, assistant_id=assistant_id)
    resolved = await get_tool_resolver().resolve(assistant_id, model_id, context)

    return AssistantToolsResponse(
        assistant_id=assistant_id,
        model_id=model_id,
        function_calling=supports_function_calling(model_id),
        names=resolved.names,
        tools=[
            ResolvedToolResponse(
                name=name,
                description=resolved.tools[name].description,
                category=resolved.tools[name].category.value,
                tool_id=resolved.tools[name].tool_id,
                parameters=resolved.tools[name].parameters,
            )
            for name in dict.fromkeys(resolved.names)
        ],
    )


@router.post(
    "/mcp-servers/{server_id}/sync",
    tags=["MCP"],
    response_model=McpSyncResponse,
)
async def sync_mcp_server_tools(server_id: str):
    """Discover an MCP server's tools and sync them into the tool registry."""
    try:
        synced = await discover_and_sync_tools(server_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=502, detail=f"MCP tool discovery failed: {error_message(e)}")

    return McpSyncResponse(
        server_id=server_id,
        count=len(synced),
        tools=[McpSyncedTool(**tool) for tool in synced],
    )
