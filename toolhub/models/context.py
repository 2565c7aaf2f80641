"""Call-scoped context threaded into every tool execution."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ToolContext:
    """Ambient values for scoping and logging; every field is optional."""
    organization_id: Optional[str] = None
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    assistant_id: Optional[str] = None
