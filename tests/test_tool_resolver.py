"""Tests for assistant tool resolution."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from toolhub.infra.error_handler import ToolTimeoutError
from toolhub.models.context import ToolContext
from toolhub.models.execution import ExecutionStatus
from toolhub.models.tool import (
    AssistantToolBinding,
    ExecutionConfig,
    McpServerConfig,
    ResolvedTool,
    ToolCategory,
    ToolDescriptor,
)
from toolhub.services.tool_resolver import ToolResolver
from toolhub.tools.registry import get_builtin_tools

FUNCTION_CALLING_MODEL = "openai/gpt-5.2"
NO_FUNCTION_CALLING_MODEL = "xiaomi/mimo-v2-flash"


def _binding(descriptor, enabled=True, assistant_id="assistant-1"):
    return AssistantToolBinding(assistant_id=assistant_id, tool=descriptor, enabled=enabled)


def _builtin(name, tool_id=None, enabled=True, description=""):
    return ToolDescriptor(
        id=tool_id or f"tool-{name}",
        name=name,
        category=ToolCategory.BUILTIN,
        description=description,
        enabled=enabled,
    )


def _http(name, url="https://api.example.com/orders", tool_id=None):
    return ToolDescriptor(
        id=tool_id or f"tool-{name}",
        name=name,
        category=ToolCategory.CUSTOM,
        description="Look up orders",
        parameters={"type": "object", "properties": {"order_id": {"type": "string"}}},
        execution_config=ExecutionConfig(url=url, method="GET") if url is not None else None,
    )


def _mcp(name, server=None):
    return ToolDescriptor(
        id=f"tool-{name}",
        name=name,
        category=ToolCategory.MCP,
        description="Remote tool",
        mcp_server=server,
    )


class RecordingLogger:
    def __init__(self):
        self.records = []

    def __call__(self, record):
        self.records.append(record)


@pytest.fixture
def execution_log():
    return RecordingLogger()


@pytest.fixture
def http_client():
    client = MagicMock()
    client.execute = AsyncMock(return_value={"order": "shipped"})
    return client


def _resolver(bindings, execution_log, **kwargs):
    loader = MagicMock(return_value=bindings)
    kwargs.setdefault("http_client", MagicMock())
    return ToolResolver(
        get_builtin_tools(),
        binding_loader=loader,
        execution_logger=execution_log,
        **kwargs,
    ), loader


class TestModelGate:
    """Function-calling capability."""

    @pytest.mark.asyncio
    async def test_model_without_function_calling_gets_no_tools(self, execution_log):
        resolver, loader = _resolver([_binding(_builtin("calculator"))], execution_log)

        resolved = await resolver.resolve("assistant-1", NO_FUNCTION_CALLING_MODEL)

        assert resolved.tools == {}
        assert resolved.names == []
        loader.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_model_gets_no_tools(self, execution_log):
        resolver, loader = _resolver([_binding(_builtin("calculator"))], execution_log)

        resolved = await resolver.resolve("assistant-1", "nobody/unknown-model")

        assert resolved.names == []
        loader.assert_not_called()


class TestEnablement:
    """Binding and descriptor flags."""

    @pytest.mark.asyncio
    async def test_disabled_binding_is_absent(self, execution_log):
        resolver, _ = _resolver(
            [_binding(_builtin("calculator"), enabled=False), _binding(_builtin("date_time"))],
            execution_log,
        )

        resolved = await resolver.resolve("assistant-1", FUNCTION_CALLING_MODEL)

        assert resolved.names == ["date_time"]

    @pytest.mark.asyncio
    async def test_disabled_descriptor_is_absent(self, execution_log):
        resolver, _ = _resolver(
            [_binding(_builtin("calculator", enabled=False)), _binding(_builtin("date_time"))],
            execution_log,
        )

        resolved = await resolver.resolve("assistant-1", FUNCTION_CALLING_MODEL)

        assert "calculator" not in resolved.tools
        assert resolved.names == ["date_time"]

    @pytest.mark.asyncio
    async def test_unknown_builtin_is_skipped(self, execution_log):
        resolver, _ = _resolver(
            [_binding(_builtin("teleporter")), _binding(_builtin("calculator"))],
            execution_log,
        )

        resolved = await resolver.resolve("assistant-1", FUNCTION_CALLING_MODEL)

        assert resolved.names == ["calculator"]

    @pytest.mark.asyncio
    async def test_http_tool_without_url_is_skipped(self, execution_log):
        resolver, _ = _resolver(
            [_binding(_http("orders", url=None)), _binding(_http("blank", url="   "))],
            execution_log,
        )

        resolved = await resolver.resolve("assistant-1", FUNCTION_CALLING_MODEL)

        assert resolved.names == []

    @pytest.mark.asyncio
    async def test_mcp_tool_without_server_is_skipped(self, execution_log):
        resolver, _ = _resolver([_binding(_mcp("remote"))], execution_log)

        resolved = await resolver.resolve("assistant-1", FUNCTION_CALLING_MODEL)

        assert resolved.names == []


class TestBuiltinResolution:
    """Built-in tools end to end."""

    @pytest.mark.asyncio
    async def test_order_and_schema(self, execution_log):
        resolver, _ = _resolver(
            [_binding(_builtin("date_time")), _binding(_builtin("calculator", description="Do math"))],
            execution_log,
        )

        resolved = await resolver.resolve("assistant-1", FUNCTION_CALLING_MODEL)

        assert resolved.names == ["date_time", "calculator"]
        calculator = resolved.tools["calculator"]
        assert calculator.description == "Do math"
        assert "expression" in calculator.parameters["properties"]
        schemas = resolved.function_schemas()
        assert [s["function"]["name"] for s in schemas] == ["date_time", "calculator"]

    @pytest.mark.asyncio
    async def test_descriptor_description_falls_back_to_builtin(self, execution_log):
        resolver, _ = _resolver([_binding(_builtin("calculator"))], execution_log)

        resolved = await resolver.resolve("assistant-1", FUNCTION_CALLING_MODEL)

        assert resolved.tools["calculator"].description == get_builtin_tools()["calculator"].description

    @pytest.mark.asyncio
    async def test_invocation_is_logged_with_context(self, execution_log):
        resolver, _ = _resolver([_binding(_builtin("calculator", tool_id="t-calc"))], execution_log)
        context = ToolContext(organization_id="org-1", user_id="user-1", session_id="session-1")

        resolved = await resolver.resolve("assistant-1", FUNCTION_CALLING_MODEL, context)
        result = await resolved.tools["calculator"]({"expression": "2 + 3"})

        assert result == {"success": True, "expression": "2 + 3", "result": 5}
        assert len(execution_log.records) == 1
        record = execution_log.records[0]
        assert record.tool_name == "calculator"
        assert record.tool_id == "t-calc"
        assert record.status == ExecutionStatus.SUCCESS
        assert record.input == {"expression": "2 + 3"}
        assert record.output == result
        assert record.error is None
        assert record.assistant_id == "assistant-1"
        assert record.organization_id == "org-1"
        assert record.session_id == "session-1"
        assert record.duration_ms >= 0

    @pytest.mark.asyncio
    async def test_domain_error_is_returned_not_raised(self, execution_log):
        resolver, _ = _resolver([_binding(_builtin("calculator"))], execution_log)

        resolved = await resolver.resolve("assistant-1", FUNCTION_CALLING_MODEL)
        result = await resolved.tools["calculator"]({"expression": "10/0"})

        assert result["success"] is False
        assert "error" in result
        assert len(execution_log.records) == 1


class TestHttpResolution:
    """Custom endpoint tools."""

    @pytest.mark.asyncio
    async def test_delegates_to_http_client(self, execution_log, http_client):
        descriptor = _http("orders")
        resolver, _ = _resolver([_binding(descriptor)], execution_log, http_client=http_client)

        resolved = await resolver.resolve("assistant-1", FUNCTION_CALLING_MODEL)
        result = await resolved.tools["orders"]({"order_id": "A1"})

        assert result == {"order": "shipped"}
        http_client.execute.assert_awaited_once_with(
            descriptor.execution_config, {"order_id": "A1"}, cancel_event=None
        )
        assert resolved.tools["orders"].parameters == descriptor.parameters
        assert resolved.tools["orders"].category == ToolCategory.CUSTOM

    @pytest.mark.asyncio
    async def test_failure_becomes_error_value(self, execution_log, http_client):
        http_client.execute.side_effect = ToolTimeoutError("Timed out after 50ms")
        resolver, _ = _resolver([_binding(_http("orders"))], execution_log, http_client=http_client)

        resolved = await resolver.resolve("assistant-1", FUNCTION_CALLING_MODEL)
        result = await resolved.tools["orders"]({})

        assert result == {"error": "Tool execution failed: Timed out after 50ms"}
        record = execution_log.records[0]
        assert record.status == ExecutionStatus.ERROR
        assert record.error == "Timed out after 50ms"
        assert record.output is None

    @pytest.mark.asyncio
    async def test_logger_failure_does_not_change_result(self, http_client):
        def _broken_logger(record):
            raise RuntimeError("database down")

        resolver = ToolResolver(
            get_builtin_tools(),
            binding_loader=lambda assistant_id: [_binding(_http("orders"))],
            http_client=http_client,
            execution_logger=_broken_logger,
        )

        resolved = await resolver.resolve("assistant-1", FUNCTION_CALLING_MODEL)
        result = await resolved.tools["orders"]({})

        assert result == {"order": "shipped"}


class SlowTool:
    """Built-in stand-in that only finishes when cancelled."""
    name = "slow"
    description = "Waits"

    def __init__(self):
        self.cancelled = False

    def json_schema(self):
        return {"type": "object", "properties": {}}

    async def execute(self, params, context=None):
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            self.cancelled = True
            raise


async def _hang(*args, **kwargs):
    await asyncio.sleep(10)


class TestCancellation:
    """Caller-initiated aborts."""

    @pytest.mark.asyncio
    async def test_cancel_event_reaches_http_client(self, execution_log, http_client):
        descriptor = _http("orders")
        resolver, _ = _resolver([_binding(descriptor)], execution_log, http_client=http_client)
        event = asyncio.Event()

        resolved = await resolver.resolve("assistant-1", FUNCTION_CALLING_MODEL)
        await resolved.tools["orders"]({"order_id": "A1"}, cancel_event=event)

        http_client.execute.assert_awaited_once_with(
            descriptor.execution_config, {"order_id": "A1"}, cancel_event=event
        )

    @pytest.mark.asyncio
    async def test_cancel_event_aborts_builtin(self, execution_log):
        slow = SlowTool()
        resolver = ToolResolver(
            {"slow": slow},
            binding_loader=lambda assistant_id: [_binding(_builtin("slow"))],
            execution_logger=execution_log,
        )
        event = asyncio.Event()

        resolved = await resolver.resolve("assistant-1", FUNCTION_CALLING_MODEL)
        call = asyncio.create_task(resolved.tools["slow"]({}, cancel_event=event))
        await asyncio.sleep(0.01)
        event.set()
        result = await call

        assert result == {"error": "Tool execution failed: Request aborted"}
        assert slow.cancelled is True
        assert len(execution_log.records) == 1
        assert execution_log.records[0].status == ExecutionStatus.ERROR
        assert execution_log.records[0].error == "Request aborted"

    @pytest.mark.asyncio
    async def test_cancelled_task_is_logged_once_and_reraised(self, execution_log, http_client):
        http_client.execute.side_effect = _hang
        resolver, _ = _resolver([_binding(_http("orders"))], execution_log, http_client=http_client)

        resolved = await resolver.resolve("assistant-1", FUNCTION_CALLING_MODEL)
        call = asyncio.create_task(resolved.tools["orders"]({"order_id": "A1"}))
        await asyncio.sleep(0.01)
        call.cancel()

        with pytest.raises(asyncio.CancelledError):
            await call

        assert len(execution_log.records) == 1
        record = execution_log.records[0]
        assert record.status == ExecutionStatus.ERROR
        assert record.error == "Request aborted"
        assert record.input == {"order_id": "A1"}


class TestMcpResolution:
    """MCP tools."""

    @pytest.fixture
    def server(self):
        return McpServerConfig(id="srv1", name="Docs", transport="sse", url="https://mcp.example.com/sse")

    @pytest.mark.asyncio
    async def test_adapter_output_is_advertised(self, execution_log, server):
        async def _remote(params, cancel_event=None):
            return "remote result"

        def _adapter(server_config, infos):
            assert [info.name for info in infos] == ["search_docs"]
            name = f"mcp_{server_config.id}_search_docs"
            return {name: ResolvedTool(
                name=name,
                description="Search docs",
                parameters={"type": "object", "properties": {}},
                category=ToolCategory.MCP,
                execute=_remote,
            )}

        resolver, _ = _resolver(
            [_binding(_mcp("search_docs", server=server))], execution_log, mcp_adapter=_adapter
        )

        resolved = await resolver.resolve("assistant-1", FUNCTION_CALLING_MODEL)

        assert resolved.names == ["mcp_srv1_search_docs"]
        assert await resolved.tools["mcp_srv1_search_docs"]({}) == "remote result"
        assert execution_log.records[0].tool_name == "mcp_srv1_search_docs"

    @pytest.mark.asyncio
    async def test_adapter_error_result_is_logged_as_error(self, execution_log, server):
        async def _remote(params, cancel_event=None):
            return {"error": "MCP tool search_docs failed: gone"}

        def _adapter(server_config, infos):
            return {"mcp_srv1_search_docs": ResolvedTool(
                name="mcp_srv1_search_docs",
                description="",
                parameters={},
                category=ToolCategory.MCP,
                execute=_remote,
            )}

        resolver, _ = _resolver(
            [_binding(_mcp("search_docs", server=server))], execution_log, mcp_adapter=_adapter
        )

        resolved = await resolver.resolve("assistant-1", FUNCTION_CALLING_MODEL)
        result = await resolved.tools["mcp_srv1_search_docs"]({})

        assert result == {"error": "MCP tool search_docs failed: gone"}
        assert execution_log.records[0].status == ExecutionStatus.ERROR

    @pytest.mark.asyncio
    async def test_unreachable_server_skips_only_that_tool(self, execution_log, server):
        def _adapter(server_config, infos):
            raise ConnectionError("unreachable")

        resolver, _ = _resolver(
            [_binding(_mcp("search_docs", server=server)), _binding(_builtin("calculator"))],
            execution_log,
            mcp_adapter=_adapter,
        )

        resolved = await resolver.resolve("assistant-1", FUNCTION_CALLING_MODEL)

        assert resolved.names == ["calculator"]


@pytest.mark.asyncio
async def test_duplicate_names_are_not_deduplicated(execution_log):
    resolver, _ = _resolver(
        [_binding(_builtin("calculator", tool_id="a")), _binding(_builtin("calculator", tool_id="b"))],
        execution_log,
    )

    resolved = await resolver.resolve("assistant-1", FUNCTION_CALLING_MODEL)

    assert resolved.names == ["calculator", "calculator"]
    assert resolved.tools["calculator"].tool_id == "b"
    assert len(resolved.function_schemas()) == 1
