"""Prometheus metrics export."""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Request metrics
request_count = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

request_duration = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
)

# Tool metrics
tool_calls_total = Counter(
    "tool_calls_total",
    "Total tool calls",
    ["tool_name", "category", "status"],
)

tool_call_duration = Histogram(
    "tool_call_duration_seconds",
    "Tool call duration in seconds",
    ["tool_name", "category"],
)

tool_log_failures_total = Counter(
    "tool_log_failures_total",
    "Tool execution records that could not be persisted",
)

# Resolution metrics
tools_resolved_total = Counter(
    "tools_resolved_total",
    "Tools advertised to a model after resolution",
    ["category"],
)

tools_skipped_total = Counter(
    "tools_skipped_total",
    "Bound tools left out of the advertised set",
    ["category", "reason"],
)

# MCP discovery metrics
mcp_tool_syncs_total = Counter(
    "mcp_tool_syncs_total",
    "MCP server tool discovery runs",
    ["status"],
)

# Web search provider metrics
web_search_provider_calls_total = Counter(
    "web_search_provider_calls_total",
    "Web search provider attempts",
    ["provider", "status"],
)


def get_metrics_response() -> Response:
    """Get Prometheus metrics as HTTP response."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
