import logging
from enum import Enum
from typing import Optional

from pydantic import Field

from toolhub.infra.error_handler import error_message
from toolhub.tools.base import BuiltinTool, ToolParams
from toolhub.tools.services import ToolServices, not_configured

logger = logging.getLogger(__name__)

DEFAULT_LINK_TTL_SECONDS = 3600
MAX_LINK_TTL_SECONDS = 7 * 24 * 3600


class FileOperation(str, Enum):
    GET_URL = "get_url"
    LIST = "list"


class FileOperationsParams(ToolParams):
    operation: FileOperation = Field(
        ...,
        description="Operation: 'get_url' = temporary download link for a file, 'list' = list files",
    )
    key: Optional[str] = Field(None, description="File key for get_url")
    prefix: Optional[str] = Field(None, description="Folder prefix for list")
    expires_in: int = Field(
        DEFAULT_LINK_TTL_SECONDS,
        ge=60,
        le=MAX_LINK_TTL_SECONDS,
        description="Link lifetime in seconds for get_url",
    )
    limit: int = Field(20, ge=1, le=100, description="Maximum number of files to list")


def organization_prefix(organization_id: Optional[str]) -> str:
    return f"documents/{organization_id or 'global'}/"


def scoped_key(organization_id: Optional[str], key: str) -> str:
    """
    Place a key under the organization's prefix.

    Raises:
        ValueError: If the key tries to leave the prefix
    """
    prefix = organization_prefix(organization_id)
    key = key.lstrip("/")
    if ".." in key.split("/"):
        raise ValueError("File key must not contain '..' segments")
    if key.startswith("documents/") and not key.startswith(prefix):
        raise ValueError("File key is outside this organization")
    return key if key.startswith(prefix) else prefix + key


def build_file_operations_tool(services: ToolServices) -> BuiltinTool:
    async def run_file_operation(params: FileOperationsParams, context) -> dict:
        if services.storage is None:
            return not_configured("File storage")

        try:
            if params.operation == FileOperation.GET_URL:
                if not params.key:
                    return {"success": False, "error": "'key' is required for get_url operation"}
                key = scoped_key(context.organization_id, params.key)
                url = await services.storage.presigned_url(key, params.expires_in)
                return {"success": True, "key": key, "url": url, "expiresIn": params.expires_in}

            prefix = scoped_key(context.organization_id, params.prefix or "")
            files = await services.storage.list_objects(prefix, params.limit)
            return {"success": True, "prefix": prefix, "count": len(files), "files": files}
        except ValueError as e:
            return {"success": False, "error": str(e)}
        except Exception as e:
            logger.error(f"File operation {params.operation.value} failed: {e}", exc_info=True)
            return {"success": False, "error": f"File operation failed: {error_message(e)}"}

    return BuiltinTool(
        name="file_operations",
        display_name="File Operations",
        description=(
            "List the organization's stored files or generate a temporary download link for one. "
            "Use this when the user asks for a document or file."
        ),
        parameters=FileOperationsParams,
        handler=run_file_operation,
    )
