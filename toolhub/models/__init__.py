from .context import ToolContext
from .execution import ExecutionStatus, ToolExecutionRecord
from .llm_model import LLMModel, ModelCapabilities, get_model_by_id
from .tool import (
    AssistantToolBinding,
    AuthType,
    BuiltinBackend,
    ExecutionConfig,
    HttpBackend,
    McpBackend,
    McpServerConfig,
    McpTransport,
    ResolvedTool,
    ResolvedTools,
    ToolCategory,
    ToolDescriptor,
)

__all__ = [
    "AssistantToolBinding",
    "AuthType",
    "BuiltinBackend",
    "ExecutionConfig",
    "ExecutionStatus",
    "HttpBackend",
    "LLMModel",
    "McpBackend",
    "McpServerConfig",
    "McpTransport",
    "ModelCapabilities",
    "ResolvedTool",
    "ResolvedTools",
    "ToolCategory",
    "ToolContext",
    "ToolDescriptor",
    "ToolExecutionRecord",
    "get_model_by_id",
]
