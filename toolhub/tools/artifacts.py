"""
Artifact tools: rich content rendered next to the chat.

The artifact returned to the model is the source of truth for the current
turn. Persistence (object storage + artifact store) is best effort; failures
are logged and the tool still succeeds.
"""

import logging
import time
import uuid
from enum import Enum
from typing import Optional

from pydantic import Field

from toolhub.tools.base import BuiltinTool, ToolParams
from toolhub.tools.services import ToolServices

logger = logging.getLogger(__name__)


class ArtifactType(str, Enum):
    HTML = "text/html"
    MARKDOWN = "text/markdown"
    SVG = "image/svg+xml"
    REACT = "application/react"
    MERMAID = "application/mermaid"
    CODE = "application/code"
    SHEET = "application/sheet"
    LATEX = "text/latex"
    SLIDES = "application/slides"
    PYTHON = "application/python"


_EXTENSIONS = {
    ArtifactType.HTML: "html",
    ArtifactType.MARKDOWN: "md",
    ArtifactType.SVG: "svg",
    ArtifactType.REACT: "tsx",
    ArtifactType.MERMAID: "mmd",
    ArtifactType.CODE: "txt",
    ArtifactType.SHEET: "csv",
    ArtifactType.LATEX: "tex",
    ArtifactType.SLIDES: "md",
    ArtifactType.PYTHON: "py",
}


class CreateArtifactParams(ToolParams):
    title: str = Field(..., description="A short, descriptive title for the artifact")
    type: ArtifactType = Field(
        ...,
        description=(
            "The content type: text/html for HTML pages, application/react for React components, "
            "image/svg+xml for SVG graphics, application/mermaid for Mermaid diagrams, "
            "application/code for code files, text/markdown for documents, application/sheet for "
            "CSV tabular data, text/latex for LaTeX math documents, application/slides for markdown "
            "presentations, application/python for executable Python scripts"
        ),
    )
    content: str = Field(..., description="The full content of the artifact")
    language: Optional[str] = Field(
        None,
        description="Programming language for application/code type (e.g. python, javascript, typescript)",
    )


class UpdateArtifactParams(ToolParams):
    id: str = Field(..., description="The ID of the artifact to update (from the create_artifact result)")
    title: Optional[str] = Field(None, description="Optional new title. If omitted, keeps the existing title")
    content: str = Field(..., description="The full updated content of the artifact")


def artifact_key(organization_id: Optional[str], session_id: Optional[str], artifact_id: str, artifact_type: ArtifactType) -> str:
    return f"artifacts/{organization_id or 'global'}/{session_id or 'orphan'}/{artifact_id}.{_EXTENSIONS[artifact_type]}"


def _mime_type(artifact_type: ArtifactType) -> str:
    return artifact_type.value if artifact_type == ArtifactType.SVG else "text/plain"


def build_create_artifact_tool(services: ToolServices) -> BuiltinTool:
    async def create_artifact(params: CreateArtifactParams, context) -> dict:
        artifact_id = str(uuid.uuid4())
        data = params.content.encode("utf-8")

        try:
            key = None
            mime_type = _mime_type(params.type)
            if services.storage is not None:
                key = artifact_key(context.organization_id, context.session_id, artifact_id, params.type)
                await services.storage.upload(key, data, mime_type)

            if services.artifacts is not None:
                await services.artifacts.create({
                    "id": artifact_id,
                    "title": params.title,
                    "content": params.content,
                    "artifact_type": params.type.value,
                    "session_id": context.session_id,
                    "organization_id": context.organization_id,
                    "created_by": context.user_id,
                    "storage_key": key,
                    "file_size": len(data),
                    "mime_type": mime_type,
                    "metadata": {"language": params.language},
                })
        except Exception as e:
            logger.error(f"Failed to persist artifact {artifact_id}: {e}", exc_info=True)

        return {
            "success": True,
            "id": artifact_id,
            "title": params.title,
            "type": params.type.value,
            "content": params.content,
            "language": params.language,
        }

    return BuiltinTool(
        name="create_artifact",
        display_name="Create Artifact",
        description=(
            "Create a rich artifact that will be rendered in a side panel. Use this for substantial "
            "content like HTML pages, React components, SVG graphics, Mermaid diagrams, code files, "
            "or markdown documents. The artifact will be displayed with a live preview alongside the chat."
        ),
        parameters=CreateArtifactParams,
        handler=create_artifact,
    )


def build_update_artifact_tool(services: ToolServices) -> BuiltinTool:
    async def update_artifact(params: UpdateArtifactParams, context) -> dict:
        data = params.content.encode("utf-8")

        try:
            existing = await services.artifacts.get(params.id) if services.artifacts is not None else None
            if existing:
                metadata = dict(existing.get("metadata") or {})
                versions = list(metadata.get("versions") or [])
                versions.append({
                    "content": existing.get("content"),
                    "title": existing.get("title"),
                    "timestamp": int(time.time() * 1000),
                })

                if services.storage is not None and existing.get("storage_key"):
                    await services.storage.upload(
                        existing["storage_key"], data, existing.get("mime_type") or "text/plain"
                    )

                await services.artifacts.update(params.id, {
                    "content": params.content,
                    "title": params.title or existing.get("title"),
                    "file_size": len(data),
                    "metadata": {**metadata, "versions": versions},
                })
        except Exception as e:
            logger.error(f"Failed to persist update of artifact {params.id}: {e}", exc_info=True)

        return {
            "success": True,
            "id": params.id,
            "title": params.title,
            "content": params.content,
            "updated": True,
        }

    return BuiltinTool(
        name="update_artifact",
        display_name="Update Artifact",
        description=(
            "Update an existing artifact with new content. Use this when the user asks to modify, "
            "fix, or change an artifact that was previously created with create_artifact. You must "
            "provide the full updated content, not just the changes."
        ),
        parameters=UpdateArtifactParams,
        handler=update_artifact,
    )
