"""Resolve an assistant's tool bindings into invokable tools for one chat turn."""

import asyncio
import dataclasses
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from toolhub.adapters.http_tool_client import HTTPToolClient, http_tool_client
from toolhub.adapters.mcp_client import McpToolInfo
from toolhub.adapters.mcp_tool_adapter import adapt_mcp_tools
from toolhub.infra.error_handler import classify_error, error_message
from toolhub.infra.metrics import tools_resolved_total, tools_skipped_total
from toolhub.infra.timeout import ABORTED_MESSAGE, run_cancellable
from toolhub.logging.execution_logger import dispatch_tool_execution_log
from toolhub.models.context import ToolContext
from toolhub.models.execution import ToolExecutionRecord
from toolhub.models.llm_model import get_model_by_id
from toolhub.models.tool import (
    AssistantToolBinding,
    BuiltinBackend,
    HttpBackend,
    McpBackend,
    ResolvedTool,
    ResolvedTools,
    ToolCategory,
    ToolDescriptor,
)
from toolhub.services.tool_registry import load_assistant_tool_bindings
from toolhub.tools.base import BuiltinTool
from toolhub.tools.registry import get_builtin_tools

logger = logging.getLogger(__name__)

RawExecuteFn = Callable[[Dict[str, Any], Optional[asyncio.Event]], Awaitable[Any]]


def _is_error_result(result: Any) -> bool:
    # Adapters that convert their own failures return {"error": ...}
    return isinstance(result, dict) and set(result) == {"error"}


def _skip(descriptor: ToolDescriptor, reason: str) -> None:
    tools_skipped_total.labels(category=descriptor.category.value, reason=reason).inc()


class ToolResolver:
    """
    Turns an assistant's enabled bindings into a name -> invokable map.

    Collaborators are injected so the resolver itself holds no global state:
    the built-in table, the binding loader, the model registry lookup, the
    MCP adapter, the HTTP client and the execution logger.
    """

    def __init__(
        self,
        builtin_tools: Mapping[str, BuiltinTool],
        binding_loader: Callable[[str], List[AssistantToolBinding]] = load_assistant_tool_bindings,
        model_lookup=get_model_by_id,
        mcp_adapter=adapt_mcp_tools,
        http_client: Optional[HTTPToolClient] = None,
        execution_logger: Callable[[ToolExecutionRecord], Any] = dispatch_tool_execution_log,
    ):
        self.builtin_tools = builtin_tools
        self.binding_loader = binding_loader
        self.model_lookup = model_lookup
        self.mcp_adapter = mcp_adapter
        self.http_client = http_client or http_tool_client
        self.execution_logger = execution_logger

    async def resolve(
        self,
        assistant_id: str,
        model_id: str,
        context: Optional[ToolContext] = None,
    ) -> ResolvedTools:
        """
        Resolve the tools to advertise for one turn.

        Returns an empty result when the model is unknown or cannot call
        functions. Individual tools that cannot be built are skipped; this
        method does not raise for per-tool problems.
        """
        resolved = ResolvedTools()

        model = self.model_lookup(model_id)
        if model is None or not model.capabilities.function_calling:
            logger.debug(f"Model {model_id} does not support function calling; no tools resolved")
            return resolved

        context = context or ToolContext()
        if context.assistant_id is None:
            context = dataclasses.replace(context, assistant_id=assistant_id)

        bindings = await asyncio.to_thread(self.binding_loader, assistant_id)

        for binding in bindings:
            descriptor = binding.tool
            if not binding.enabled or not descriptor.enabled:
                continue

            adapted = self._adapt(descriptor, context)
            for name, tool in adapted.items():
                resolved.tools[name] = tool
                resolved.names.append(name)
                tools_resolved_total.labels(category=descriptor.category.value).inc()

        logger.info(
            f"Resolved {len(resolved.names)} tools for assistant {assistant_id} "
            f"(model {model_id}, {len(bindings)} bindings)"
        )
        return resolved

    def _adapt(self, descriptor: ToolDescriptor, context: ToolContext) -> Dict[str, ResolvedTool]:
        backend = descriptor.backend()

        if isinstance(backend, BuiltinBackend):
            builtin = self.builtin_tools.get(descriptor.name)
            if builtin is None:
                logger.debug(f"Built-in tool {descriptor.name} is not available in this deployment")
                _skip(descriptor, "builtin_missing")
                return {}

            async def _run_builtin(params, cancel_event, _builtin=builtin):
                return await run_cancellable(_builtin.execute(params, context), cancel_event)

            return {descriptor.name: self._wrap(
                descriptor,
                descriptor.description or builtin.description,
                builtin.json_schema(),
                _run_builtin,
                context,
            )}

        if isinstance(backend, McpBackend):
            info = McpToolInfo(
                name=descriptor.name,
                description=descriptor.description,
                input_schema=descriptor.parameters,
            )
            try:
                adapted = self.mcp_adapter(backend.server, [info])
            except Exception as e:
                logger.warning(f"MCP tool {descriptor.name} unavailable: {error_message(e)}")
                _skip(descriptor, "mcp_unavailable")
                return {}
            return {
                name: self._wrap(
                    descriptor,
                    tool.description,
                    tool.parameters,
                    lambda params, cancel_event, _tool=tool: _tool.execute(params, cancel_event=cancel_event),
                    context,
                    name=name,
                )
                for name, tool in adapted.items()
            }

        if isinstance(backend, HttpBackend):
            execution_config = backend.execution_config

            async def _run_http(params, cancel_event):
                return await self.http_client.execute(execution_config, params, cancel_event=cancel_event)

            return {descriptor.name: self._wrap(
                descriptor,
                descriptor.description,
                descriptor.parameters,
                _run_http,
                context,
            )}

        if descriptor.category == ToolCategory.MCP:
            logger.debug(f"MCP tool {descriptor.name} has no server configured")
            _skip(descriptor, "mcp_server_missing")
        else:
            logger.warning(f"Tool {descriptor.name} ({descriptor.category.value}) has no execution URL configured")
            _skip(descriptor, "missing_url")
        return {}

    def _wrap(
        self,
        descriptor: ToolDescriptor,
        description: str,
        parameters: Dict[str, Any],
        run: RawExecuteFn,
        context: ToolContext,
        name: Optional[str] = None,
    ) -> ResolvedTool:
        """Wrap a raw call with timing, failure conversion and audit logging."""
        tool_name = name or descriptor.name
        category = descriptor.category.value

        def _log(params, duration_ms, output=None, error=None):
            try:
                self.execution_logger(ToolExecutionRecord.from_outcome(
                    tool_name=tool_name,
                    tool_id=descriptor.id,
                    category=category,
                    params=params,
                    context=context,
                    duration_ms=duration_ms,
                    output=output,
                    error=error,
                ))
            except Exception as e:
                logger.warning(f"Failed to record execution of {tool_name}: {e}")

        async def _execute(
            params: Optional[Dict[str, Any]] = None,
            cancel_event: Optional[asyncio.Event] = None,
        ) -> Any:
            params = params or {}
            start = time.monotonic()
            try:
                result = await run(params, cancel_event)
            except asyncio.CancelledError:
                # Caller task cancelled: record the attempt and re-raise
                _log(params, int((time.monotonic() - start) * 1000), error=ABORTED_MESSAGE)
                raise
            except Exception as e:
                message = error_message(e)
                error_category, retryable = classify_error(e)
                logger.warning(
                    f"Tool {tool_name} failed: {message}",
                    extra={"tool_name": tool_name, "error_category": error_category.value, "retryable": retryable},
                )
                _log(params, int((time.monotonic() - start) * 1000), error=message)
                return {"error": f"Tool execution failed: {message}"}

            duration_ms = int((time.monotonic() - start) * 1000)
            if _is_error_result(result):
                _log(params, duration_ms, error=str(result["error"]))
            else:
                _log(params, duration_ms, output=result)
            return result

        return ResolvedTool(
            name=tool_name,
            description=description,
            parameters=parameters,
            category=descriptor.category,
            execute=_execute,
            tool_id=descriptor.id,
        )


_default_resolver: Optional[ToolResolver] = None


def get_tool_resolver() -> ToolResolver:
    """Process-wide resolver over the default built-in table."""
    global _default_resolver
    if _default_resolver is None:
        _default_resolver = ToolResolver(get_builtin_tools())
    return _default_resolver


async def resolve_tools_for_assistant(
    assistant_id: str,
    model_id: str,
    context: Optional[ToolContext] = None,
) -> ResolvedTools:
    return await get_tool_resolver().resolve(assistant_id, model_id, context)
