"""Web search and URL fetch tool."""

import logging
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple
from urllib.parse import urljoin

import httpx
from pydantic import Field

from toolhub.infra.config import config
from toolhub.infra.error_handler import APIError, UnsafeURLError, error_message
from toolhub.infra.metrics import web_search_provider_calls_total
from toolhub.infra.safety import validate_public_url
from toolhub.tools.base import BuiltinTool, ToolParams

logger = logging.getLogger(__name__)

SERPER_URL = "https://google.serper.dev/search"
DUCKDUCKGO_HTML_URL = "https://html.duckduckgo.com/html/"
MAX_REDIRECTS = 3

_SCRIPT_BLOCK = re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL)
_STYLE_BLOCK = re.compile(r"<style[^>]*>.*?</style>", re.IGNORECASE | re.DOTALL)
_TAG = re.compile(r"<[^>]+>")
_WHITESPACE = re.compile(r"\s+")
_DDG_RESULT = re.compile(
    r'<a[^>]+class="result__a"[^>]*href="([^"]*)"[^>]*>(.*?)</a>.*?'
    r'<a[^>]+class="result__snippet"[^>]*>(.*?)</a>',
    re.IGNORECASE | re.DOTALL,
)


class WebSearchParams(ToolParams):
    query: str = Field(..., description="Search query or URL to fetch")
    max_results: int = Field(5, description="Maximum number of results to return")


def strip_html(html: str) -> str:
    text = _SCRIPT_BLOCK.sub("", html)
    text = _STYLE_BLOCK.sub("", text)
    text = _TAG.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


def _result(title: Any, url: Any, snippet: Any) -> Dict[str, str]:
    return {"title": title or "", "url": url or "", "snippet": snippet or ""}


def _ensure_ok(response: httpx.Response, provider: str) -> None:
    if not response.is_success:
        raise APIError(f"{provider} returned {response.status_code}", status_code=response.status_code)


async def _search_serper(client: httpx.AsyncClient, query: str, max_results: int) -> Optional[List[Dict[str, str]]]:
    if not config.SERPER_API_KEY:
        return None
    response = await client.post(
        SERPER_URL,
        headers={"X-API-KEY": config.SERPER_API_KEY, "Content-Type": "application/json"},
        json={"q": query, "num": max_results},
    )
    _ensure_ok(response, "Serper")
    organic = response.json().get("organic") or []
    return [_result(r.get("title"), r.get("link"), r.get("snippet")) for r in organic[:max_results]]


async def _search_searxng(client: httpx.AsyncClient, query: str, max_results: int) -> Optional[List[Dict[str, str]]]:
    if not config.SEARCH_API_URL:
        return None
    response = await client.get(
        config.SEARCH_API_URL,
        params={"q": query, "format": "json", "number_of_results": str(max_results)},
    )
    _ensure_ok(response, "Search API")
    results = response.json().get("results") or []
    return [_result(r.get("title"), r.get("url"), r.get("content")) for r in results[:max_results]]


async def _search_duckduckgo(client: httpx.AsyncClient, query: str, max_results: int) -> Optional[List[Dict[str, str]]]:
    response = await client.get(DUCKDUCKGO_HTML_URL, params={"q": query})
    _ensure_ok(response, "DuckDuckGo")
    results = []
    for match in _DDG_RESULT.finditer(response.text):
        if len(results) >= max_results:
            break
        results.append(_result(strip_html(match.group(2)), match.group(1), strip_html(match.group(3))))
    return results


SearchProvider = Callable[[httpx.AsyncClient, str, int], Awaitable[Optional[List[Dict[str, str]]]]]

# Tried in order; a provider returns None when it is not configured
SEARCH_PROVIDERS: List[Tuple[str, SearchProvider]] = [
    ("serper", _search_serper),
    ("searxng", _search_searxng),
    ("duckduckgo", _search_duckduckgo),
]


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=config.WEB_FETCH_TIMEOUT_SECONDS,
        follow_redirects=False,
        headers={"User-Agent": config.USER_AGENT},
    )


async def fetch_url(url: str) -> Dict[str, Any]:
    """Fetch a public page and return its visible text."""
    try:
        validate_public_url(url)
        async with _client() as client:
            response = await client.get(url)
            for _ in range(MAX_REDIRECTS):
                location = response.headers.get("location")
                if not response.is_redirect or not location:
                    break
                url = urljoin(url, location)
                # Redirect targets get the same private-host check
                validate_public_url(url)
                response = await client.get(url)

            if not response.is_success:
                return {"success": False, "error": f"HTTP {response.status_code}: {response.reason_phrase}"}

            content = strip_html(response.text)[: config.WEB_FETCH_MAX_CHARS]
            return {"success": True, "url": url, "content": content}
    except UnsafeURLError as e:
        logger.warning(f"Blocked web fetch of {url}: {e}")
        return {"success": False, "error": str(e)}
    except httpx.HTTPError as e:
        return {"success": False, "error": error_message(e) or "Failed to fetch URL"}


async def search_web(query: str, max_results: int) -> Dict[str, Any]:
    """Run the provider chain and return the first successful result set."""
    last_error = "Search failed"
    async with _client() as client:
        for provider, search in SEARCH_PROVIDERS:
            try:
                results = await search(client, query, max_results)
            except Exception as e:
                web_search_provider_calls_total.labels(provider=provider, status="error").inc()
                last_error = error_message(e) or last_error
                logger.warning(f"Web search provider {provider} failed: {last_error}")
                continue

            if results is None:
                continue

            web_search_provider_calls_total.labels(provider=provider, status="success").inc()
            return {"success": True, "resultCount": len(results), "results": results, "provider": provider}

    return {"success": False, "error": last_error, "results": []}


async def run_web_search(params: WebSearchParams, context) -> dict:
    max_results = params.max_results if params.max_results > 0 else 5
    if params.query.startswith(("http://", "https://")):
        return await fetch_url(params.query)
    return await search_web(params.query, max_results)


web_search_tool = BuiltinTool(
    name="web_search",
    display_name="Web Search",
    description=(
        "Search the web for information or fetch content from a URL. Use this when the user "
        "asks about current events, external information, or needs data from the internet."
    ),
    parameters=WebSearchParams,
    handler=run_web_search,
)
