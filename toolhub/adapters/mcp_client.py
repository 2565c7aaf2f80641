"""MCP (Model Context Protocol) client for tool discovery and execution."""

import asyncio
import logging
import os
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from mcp import ClientSession, StdioServerParameters
from mcp.client.sse import sse_client
from mcp.client.stdio import stdio_client
from mcp.client.streamable_http import streamablehttp_client
from pydantic import BaseModel, ConfigDict, Field

from toolhub.infra.config import config
from toolhub.infra.error_handler import ToolTimeoutError
from toolhub.infra.safety import validate_public_url
from toolhub.infra.timeout import MCP_CALL_TIMEOUT
from toolhub.models.tool import McpServerConfig, McpTransport

logger = logging.getLogger(__name__)


class McpToolInfo(BaseModel):
    """A tool as advertised by an MCP server."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: Optional[str] = None
    input_schema: Dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        alias="inputSchema",
    )


def extract_call_result(result: Any) -> Any:
    """
    Reduce an MCP CallToolResult to what the model should see.

    A single text part comes back as a string, several are joined with
    newlines, anything else is returned as plain JSON data.
    """
    content = getattr(result, "content", None) or []
    text_parts = [
        part.text for part in content
        if getattr(part, "type", None) == "text" and getattr(part, "text", None) is not None
    ]
    if len(text_parts) == 1:
        return text_parts[0]
    if text_parts:
        return "\n".join(text_parts)

    structured = getattr(result, "structuredContent", None)
    if structured is not None:
        return structured

    return [
        part.model_dump(mode="json") if hasattr(part, "model_dump") else part
        for part in content
    ]


class MCPClientManager:
    """Opens MCP sessions for stdio, SSE and streamable HTTP servers.

    Each operation runs in its own session (connect, initialize, call,
    close) inside a single task, bounded by ``MCP_CALL_TIMEOUT``. The SDK's
    transports are anyio task groups that must be exited by the task that
    entered them, so sessions are not shared across tool calls.
    """

    def __init__(self, timeout: float = MCP_CALL_TIMEOUT):
        self.timeout = timeout

    def validate_server_config(self, server: McpServerConfig) -> None:
        """
        Check that a server config can be connected to.

        Raises:
            ValueError: If required fields are missing for the transport
            UnsafeURLError: If a remote URL points at a private network
        """
        if server.transport == McpTransport.STDIO:
            if not server.command:
                raise ValueError(
                    f"Invalid MCP config for '{server.name}': stdio transport requires a command"
                )
            return

        if not server.url:
            raise ValueError(
                f"Invalid MCP config for '{server.name}': {server.transport.value} transport requires a url"
            )

        # SECURITY: Validate endpoint to prevent SSRF attacks
        if not config.MCP_ALLOW_PRIVATE_HOSTS:
            validate_public_url(server.url)

    @asynccontextmanager
    async def _open_session(self, server: McpServerConfig) -> AsyncIterator[ClientSession]:
        self.validate_server_config(server)

        if server.transport == McpTransport.STDIO:
            env = {**os.environ, **server.env} if server.env else None
            transport = stdio_client(
                StdioServerParameters(command=server.command, args=list(server.args), env=env)
            )
        elif server.transport == McpTransport.SSE:
            transport = sse_client(server.url, headers=server.headers)
        else:
            transport = streamablehttp_client(server.url, headers=server.headers)

        async with AsyncExitStack() as stack:
            streams = await stack.enter_async_context(transport)
            read_stream, write_stream = streams[0], streams[1]
            session = await stack.enter_async_context(ClientSession(read_stream, write_stream))
            await session.initialize()
            yield session

    async def _with_timeout(self, coro, what: str):
        try:
            return await asyncio.wait_for(coro, timeout=self.timeout)
        except asyncio.TimeoutError:
            raise ToolTimeoutError(f"Timed out after {int(self.timeout * 1000)}ms ({what})")

    async def list_tools(self, server: McpServerConfig) -> List[McpToolInfo]:
        """List the tools a server advertises."""
        async def _list():
            async with self._open_session(server) as session:
                return await session.list_tools()

        result = await self._with_timeout(_list(), f"listing tools on {server.name}")
        return [
            McpToolInfo(
                name=tool.name,
                description=tool.description,
                input_schema=tool.inputSchema or {"type": "object", "properties": {}},
            )
            for tool in result.tools
        ]

    async def call_tool(
        self,
        server: McpServerConfig,
        tool_name: str,
        arguments: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Call a tool on an MCP server.

        Raises:
            ToolTimeoutError: If connect + call exceeds the timeout
            RuntimeError: If the server reports a tool error
        """
        async def _call():
            async with self._open_session(server) as session:
                return await session.call_tool(tool_name, arguments or {})

        logger.info(f"Calling MCP tool {tool_name} on server {server.name}")
        result = await self._with_timeout(_call(), f"calling {tool_name}")

        if getattr(result, "isError", False):
            raise RuntimeError(f"MCP tool execution failed: {extract_call_result(result)}")

        return extract_call_result(result)


mcp_client_manager = MCPClientManager()
