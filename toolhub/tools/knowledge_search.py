import logging
from typing import List, Optional

from pydantic import Field

from toolhub.infra.error_handler import error_message
from toolhub.tools.base import BuiltinTool, ToolParams
from toolhub.tools.services import ToolServices, not_configured

logger = logging.getLogger(__name__)


class KnowledgeSearchParams(ToolParams):
    query: str = Field(..., description="What to look for in the knowledge base")
    max_results: int = Field(5, ge=1, le=20, description="Maximum number of passages to return")
    group_ids: Optional[List[str]] = Field(None, description="Restrict the search to these knowledge groups")


def build_knowledge_search_tool(services: ToolServices) -> BuiltinTool:
    async def search_knowledge(params: KnowledgeSearchParams, context) -> dict:
        if services.knowledge is None:
            return not_configured("Knowledge search")

        try:
            hits = await services.knowledge.search(
                params.query,
                organization_id=context.organization_id,
                limit=params.max_results,
                group_ids=params.group_ids,
            )
        except Exception as e:
            logger.error(f"Knowledge search failed: {e}", exc_info=True)
            return {"success": False, "error": f"Knowledge search failed: {error_message(e)}"}

        results = [
            {
                "title": hit.get("title") or "",
                "content": hit.get("content") or "",
                "score": hit.get("score"),
                "source": hit.get("source"),
            }
            for hit in hits[: params.max_results]
        ]
        return {
            "success": True,
            "query": params.query,
            "resultCount": len(results),
            "results": results,
        }

    return BuiltinTool(
        name="knowledge_search",
        display_name="Knowledge Search",
        description=(
            "Search the organization's knowledge base for relevant information. Use this to "
            "answer questions about products, policies, or internal documentation."
        ),
        parameters=KnowledgeSearchParams,
        handler=search_knowledge,
    )
