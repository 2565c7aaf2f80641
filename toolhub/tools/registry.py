"""The built-in tool table."""

from functools import lru_cache
from types import MappingProxyType
from typing import Mapping, Optional

from toolhub.tools.artifacts import build_create_artifact_tool, build_update_artifact_tool
from toolhub.tools.base import BuiltinTool
from toolhub.tools.calculator import calculator_tool
from toolhub.tools.channel_dispatch import build_channel_dispatch_tool
from toolhub.tools.customer_lookup import build_customer_lookup_tool
from toolhub.tools.date_time import date_time_tool
from toolhub.tools.file_operations import build_file_operations_tool
from toolhub.tools.json_transform import json_transform_tool
from toolhub.tools.knowledge_search import build_knowledge_search_tool
from toolhub.tools.services import ToolServices
from toolhub.tools.text_utilities import text_utilities_tool
from toolhub.tools.web_search import web_search_tool


def build_builtin_tools(services: Optional[ToolServices] = None) -> Mapping[str, BuiltinTool]:
    """
    Build the read-only name -> tool table.

    Tools backed by a collaborator missing from ``services`` stay listed and
    report that they are not configured when called.
    """
    services = services or ToolServices()
    tools = [
        build_knowledge_search_tool(services),
        build_customer_lookup_tool(services),
        build_channel_dispatch_tool(services),
        build_file_operations_tool(services),
        web_search_tool,
        calculator_tool,
        date_time_tool,
        json_transform_tool,
        text_utilities_tool,
        build_create_artifact_tool(services),
        build_update_artifact_tool(services),
    ]
    return MappingProxyType({tool.name: tool for tool in tools})


@lru_cache(maxsize=1)
def get_builtin_tools() -> Mapping[str, BuiltinTool]:
    """Default table, built once without external collaborators."""
    return build_builtin_tools()
