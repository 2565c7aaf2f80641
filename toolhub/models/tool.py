"""Tool descriptor, binding and backend models."""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from toolhub.infra.config import config


class ToolCategory(str, Enum):
    """Where a tool's implementation lives."""
    BUILTIN = "builtin"
    MCP = "mcp"
    CUSTOM = "custom"
    OPENAPI = "openapi"


class McpTransport(str, Enum):
    """Transports supported for MCP servers."""
    STDIO = "stdio"
    SSE = "sse"
    STREAMABLE_HTTP = "streamable-http"


class AuthType(str, Enum):
    """Credential injection modes for HTTP tools."""
    NONE = "none"
    API_KEY = "api_key"
    BEARER = "bearer"


class McpServerConfig(BaseModel):
    """Connection options for an MCP server, owned by the dashboard's MCP settings."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="MCP server ID")
    name: str = Field(..., description="MCP server display name")
    transport: McpTransport = Field(..., description="stdio | sse | streamable-http")
    url: Optional[str] = Field(default=None, description="Endpoint for sse / streamable-http")
    command: Optional[str] = Field(default=None, description="Executable for stdio")
    args: List[str] = Field(default_factory=list, description="Arguments for stdio command")
    env: Optional[Dict[str, str]] = Field(default=None, description="Extra environment for stdio")
    headers: Optional[Dict[str, str]] = Field(default=None, description="Extra HTTP headers")

    @field_validator("args", mode="before")
    @classmethod
    def _none_args(cls, value):
        return value or []


class ExecutionConfig(BaseModel):
    """HTTP endpoint description for custom and openapi tools."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    url: str = Field(default="", description="Target URL")
    method: str = Field(default="GET", description="HTTP method")
    headers: Dict[str, str] = Field(default_factory=dict, description="Static request headers")
    auth_type: AuthType = Field(default=AuthType.NONE, alias="authType")
    auth_value: Optional[str] = Field(default=None, alias="authValue", repr=False)
    auth_header_name: Optional[str] = Field(default=None, alias="authHeaderName")
    timeout_ms: int = Field(
        default_factory=lambda: config.HTTP_TOOL_DEFAULT_TIMEOUT_MS,
        alias="timeoutMs",
        gt=0,
    )

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, value):
        return (value or "GET").upper()

    @field_validator("auth_type", mode="before")
    @classmethod
    def _default_auth_type(cls, value):
        return value or AuthType.NONE

    @field_validator("headers", mode="before")
    @classmethod
    def _none_headers(cls, value):
        return value or {}


@dataclass(frozen=True)
class BuiltinBackend:
    """Backend for in-process tools, looked up by descriptor name."""


@dataclass(frozen=True)
class McpBackend:
    """Backend for tools hosted by an MCP server."""
    server: McpServerConfig


@dataclass(frozen=True)
class HttpBackend:
    """Backend for custom and openapi endpoint tools."""
    execution_config: ExecutionConfig


ToolBackend = Union[BuiltinBackend, McpBackend, HttpBackend]


class ToolDescriptor(BaseModel):
    """
    Declarative record describing one invokable capability.

    Only ``enabled`` and ``description`` can change after creation.
    """
    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(..., frozen=True, description="Tool ID")
    name: str = Field(..., frozen=True, description="Model-facing tool name")
    display_name: str = Field(default="", frozen=True, description="Dashboard label")
    description: str = Field(default="", description="Model-facing description")
    category: ToolCategory = Field(..., frozen=True)
    parameters: Dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        frozen=True,
        description="JSON-Schema-like parameter document",
    )
    enabled: bool = Field(default=True)
    mcp_server: Optional[McpServerConfig] = Field(default=None, frozen=True)
    execution_config: Optional[ExecutionConfig] = Field(default=None, frozen=True)

    def backend(self) -> Optional[ToolBackend]:
        """
        Return the backend variant for this descriptor.

        Returns None when the descriptor lacks what its category needs
        (an MCP tool without a server row, an HTTP tool without a URL).
        """
        if self.category == ToolCategory.BUILTIN:
            return BuiltinBackend()
        if self.category == ToolCategory.MCP:
            if self.mcp_server is None:
                return None
            return McpBackend(server=self.mcp_server)
        if self.execution_config is None or not self.execution_config.url.strip():
            return None
        return HttpBackend(execution_config=self.execution_config)


class AssistantToolBinding(BaseModel):
    """Per-assistant enable/disable relationship to a tool descriptor."""
    assistant_id: str
    tool: ToolDescriptor
    enabled: bool = True


# Called as execute(params, cancel_event=None)
ToolExecuteFn = Callable[..., Awaitable[Any]]


@dataclass
class ResolvedTool:
    """A tool ready to hand to the model-calling layer."""
    name: str
    description: str
    parameters: Dict[str, Any]
    category: ToolCategory
    execute: ToolExecuteFn
    tool_id: Optional[str] = None

    async def __call__(
        self,
        params: Optional[Dict[str, Any]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Any:
        """Invoke the tool; setting ``cancel_event`` aborts an in-flight call."""
        return await self.execute(params or {}, cancel_event=cancel_event)

    def to_function_schema(self) -> Dict[str, Any]:
        """OpenAI-style function declaration."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass
class ResolvedTools:
    """Resolver output: name -> invokable map plus the advertised name order."""
    tools: Dict[str, ResolvedTool] = field(default_factory=dict)
    names: List[str] = field(default_factory=list)

    def function_schemas(self) -> List[Dict[str, Any]]:
        """Function declarations in advertised order."""
        seen = set()
        schemas = []
        for name in self.names:
            if name in seen or name not in self.tools:
                continue
            seen.add(name)
            schemas.append(self.tools[name].to_function_schema())
        return schemas
