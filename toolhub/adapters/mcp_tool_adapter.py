"""Adapt MCP-advertised tools into resolved tools."""

from typing import Dict, Iterable, Optional

from toolhub.adapters.mcp_client import MCPClientManager, McpToolInfo, mcp_client_manager
from toolhub.infra.error_handler import error_message
from toolhub.infra.timeout import run_cancellable
from toolhub.models.tool import McpServerConfig, ResolvedTool, ToolCategory


def mcp_tool_name(server: McpServerConfig, tool_name: str) -> str:
    """Advertised name of an MCP tool, unique per server."""
    return f"mcp_{server.id}_{tool_name}"


def adapt_mcp_tools(
    server: McpServerConfig,
    tools: Iterable[McpToolInfo],
    manager: Optional[MCPClientManager] = None,
) -> Dict[str, ResolvedTool]:
    """
    Convert MCP tool descriptors into the resolved tool shape.

    Each tool's execute delegates to the client manager; call failures come
    back as ``{"error": "MCP tool <name> failed: ..."}``.

    Raises:
        ValueError: If the server config cannot be connected to
    """
    manager = manager or mcp_client_manager
    manager.validate_server_config(server)

    adapted: Dict[str, ResolvedTool] = {}
    for info in tools:
        remote_name = info.name

        async def _execute(params, cancel_event=None, _remote_name=remote_name):
            try:
                return await run_cancellable(manager.call_tool(server, _remote_name, params), cancel_event)
            except Exception as e:
                return {"error": f"MCP tool {_remote_name} failed: {error_message(e)}"}

        name = mcp_tool_name(server, remote_name)
        adapted[name] = ResolvedTool(
            name=name,
            description=info.description or f"MCP tool: {remote_name}",
            parameters=info.input_schema,
            category=ToolCategory.MCP,
            execute=_execute,
        )

    return adapted
