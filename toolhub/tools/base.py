"""Built-in tool definition shared by every in-process tool."""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Type

from pydantic import AliasChoices, AliasGenerator, BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from toolhub.models.context import ToolContext

logger = logging.getLogger(__name__)


class ToolParams(BaseModel):
    """Base for tool parameter schemas.

    Fields are snake_case; camelCase spellings are accepted on input since
    models often echo the casing of the surrounding prompt.
    """
    model_config = ConfigDict(
        alias_generator=AliasGenerator(
            validation_alias=lambda field_name: AliasChoices(field_name, to_camel(field_name)),
        ),
        populate_by_name=True,
        extra="ignore",
    )


ToolHandler = Callable[[Any, ToolContext], Awaitable[Dict[str, Any]]]


def format_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "params"
        parts.append(f"{location}: {item.get('msg')}")
    return "Invalid parameters: " + "; ".join(parts)


@dataclass(frozen=True)
class BuiltinTool:
    """An in-process tool: a description plus an async handler.

    Handlers receive validated parameters and must not keep state between
    calls.
    """
    name: str
    display_name: str
    description: str
    parameters: Type[ToolParams]
    handler: ToolHandler

    def json_schema(self) -> Dict[str, Any]:
        """JSON schema of the parameters, as advertised to models."""
        schema = self.parameters.model_json_schema()
        schema.pop("title", None)
        return schema

    async def execute(
        self,
        params: Optional[Dict[str, Any]],
        context: Optional[ToolContext] = None,
    ) -> Dict[str, Any]:
        try:
            parsed = self.parameters.model_validate(params or {})
        except ValidationError as e:
            return {"success": False, "error": format_validation_error(e)}
        return await self.handler(parsed, context or ToolContext())
