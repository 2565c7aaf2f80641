"""Tool execution audit record."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from toolhub.models.context import ToolContext


class ExecutionStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class ToolExecutionRecord(BaseModel):
    """Append-only audit entry, one per invocation attempt."""
    model_config = ConfigDict(frozen=True)

    tool_name: str
    tool_id: Optional[str] = None
    category: Optional[str] = None
    assistant_id: Optional[str] = None
    session_id: Optional[str] = None
    input: Any = None
    output: Any = None
    error: Optional[str] = None
    duration_ms: int = Field(default=0, ge=0)
    status: ExecutionStatus = ExecutionStatus.SUCCESS
    organization_id: Optional[str] = None
    user_id: Optional[str] = None

    @classmethod
    def from_outcome(
        cls,
        *,
        tool_name: str,
        tool_id: Optional[str],
        category: Optional[str],
        params: Any,
        context: ToolContext,
        duration_ms: int,
        output: Any = None,
        error: Optional[str] = None,
    ) -> "ToolExecutionRecord":
        """Build a record from an invocation outcome; status follows ``error``."""
        return cls(
            tool_name=tool_name,
            tool_id=tool_id,
            category=category,
            assistant_id=context.assistant_id,
            session_id=context.session_id,
            input=params,
            output=None if error is not None else output,
            error=error,
            duration_ms=max(duration_ms, 0),
            status=ExecutionStatus.ERROR if error is not None else ExecutionStatus.SUCCESS,
            organization_id=context.organization_id,
            user_id=context.user_id,
        )
