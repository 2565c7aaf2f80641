"""External collaborators used by built-in tools.

The registry core does not own retrieval, customer data, object storage,
channel delivery or artifact persistence. Built-ins talk to them through
these interfaces; the hosting application supplies implementations.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class KnowledgeRetriever(Protocol):
    async def search(
        self,
        query: str,
        *,
        organization_id: Optional[str],
        limit: int,
        group_ids: Optional[List[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Return hits with title, content, score and source keys."""
        ...


@runtime_checkable
class CustomerDirectory(Protocol):
    async def find_customer(
        self,
        *,
        organization_id: Optional[str],
        customer_id: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        ...


@runtime_checkable
class ObjectStorage(Protocol):
    async def upload(self, key: str, data: bytes, content_type: str) -> None:
        ...

    async def presigned_url(self, key: str, expires_in: int) -> str:
        ...

    async def list_objects(self, prefix: str, limit: int) -> List[Dict[str, Any]]:
        """Return objects with key, size and last_modified keys."""
        ...


@runtime_checkable
class ChannelDispatcher(Protocol):
    async def get_channel_config(self, channel: str) -> Optional[Dict[str, Any]]:
        """Return the channel's config (with an ``enabled`` flag) or None."""
        ...

    async def dispatch(self, request: Dict[str, Any], channel_config: Dict[str, Any]) -> Dict[str, Any]:
        """Deliver a handoff; returns success, message and optional external_id."""
        ...


@runtime_checkable
class ArtifactStore(Protocol):
    async def create(self, artifact: Dict[str, Any]) -> None:
        ...

    async def get(self, artifact_id: str) -> Optional[Dict[str, Any]]:
        ...

    async def update(self, artifact_id: str, fields: Dict[str, Any]) -> None:
        ...


@dataclass(frozen=True)
class ToolServices:
    """Collaborators injected into the built-in table; any may be absent."""
    knowledge: Optional[KnowledgeRetriever] = None
    customers: Optional[CustomerDirectory] = None
    storage: Optional[ObjectStorage] = None
    channels: Optional[ChannelDispatcher] = None
    artifacts: Optional[ArtifactStore] = None


def not_configured(what: str) -> Dict[str, Any]:
    return {"success": False, "error": f"{what} is not configured"}
