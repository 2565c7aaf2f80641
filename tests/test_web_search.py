"""Tests for the web search tool."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from toolhub.infra.config import config
from toolhub.infra.safety import PRIVATE_ADDRESS_ERROR
from toolhub.tools.web_search import strip_html, web_search_tool

DDG_HTML = """
<div class="result">
  <a rel="nofollow" class="result__a" href="https://example.com/one">First <b>Result</b></a>
  <a class="result__snippet" href="https://example.com/one">Snippet <b>one</b></a>
</div>
<div class="result">
  <a rel="nofollow" class="result__a" href="https://example.com/two">Second</a>
  <a class="result__snippet" href="https://example.com/two">Snippet two</a>
</div>
"""


def _response(status_code=200, method="GET", url="https://example.com", **kwargs):
    return httpx.Response(status_code, request=httpx.Request(method, url), **kwargs)


@pytest.fixture
def mock_client():
    """Patch httpx.AsyncClient and yield the client used inside ``async with``."""
    with patch("httpx.AsyncClient") as mock_client_class:
        client = AsyncMock()
        mock_client_class.return_value.__aenter__.return_value = client
        mock_client_class.return_value.__aexit__.return_value = False
        yield client


@pytest.fixture
def no_search_keys():
    with patch.object(config, "SERPER_API_KEY", None), patch.object(config, "SEARCH_API_URL", None):
        yield


class TestUrlFetch:
    """URL mode."""

    @pytest.mark.asyncio
    async def test_fetch_strips_markup(self, mock_client):
        html = (
            "<html><head><style>body {color: red}</style><script>alert(1)</script></head>"
            "<body><h1>Title</h1><p>Some   text</p></body></html>"
        )
        mock_client.get.return_value = _response(text=html)

        result = await web_search_tool.execute({"query": "https://example.com/page"})

        assert result == {"success": True, "url": "https://example.com/page", "content": "Title Some text"}

    @pytest.mark.asyncio
    async def test_fetch_truncates_content(self, mock_client):
        mock_client.get.return_value = _response(text="<p>" + "a" * 20000 + "</p>")

        result = await web_search_tool.execute({"query": "https://example.com/big"})

        assert len(result["content"]) == config.WEB_FETCH_MAX_CHARS

    @pytest.mark.asyncio
    async def test_private_address_is_never_fetched(self, mock_client):
        result = await web_search_tool.execute({"query": "http://169.254.169.254/latest/meta-data"})

        assert result == {"success": False, "error": PRIVATE_ADDRESS_ERROR}
        mock_client.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_shorthand_loopback_is_never_fetched(self, mock_client):
        result = await web_search_tool.execute({"query": "http://127.1:8080/"})

        assert result == {"success": False, "error": PRIVATE_ADDRESS_ERROR}
        mock_client.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_redirect_to_private_address_is_blocked(self, mock_client):
        mock_client.get.return_value = _response(
            302, headers={"Location": "http://127.0.0.1/admin"}
        )

        result = await web_search_tool.execute({"query": "https://example.com/redirect"})

        assert result["success"] is False
        assert "internal/private addresses" in result["error"]
        assert mock_client.get.await_count == 1

    @pytest.mark.asyncio
    async def test_public_redirect_is_followed(self, mock_client):
        mock_client.get.side_effect = [
            _response(301, headers={"Location": "https://www.example.com/"}),
            _response(text="<p>moved</p>"),
        ]

        result = await web_search_tool.execute({"query": "http://example.com/"})

        assert result == {"success": True, "url": "https://www.example.com/", "content": "moved"}

    @pytest.mark.asyncio
    async def test_http_error_status(self, mock_client):
        mock_client.get.return_value = _response(404, text="missing")

        result = await web_search_tool.execute({"query": "https://example.com/missing"})

        assert result == {"success": False, "error": "HTTP 404: Not Found"}

    @pytest.mark.asyncio
    async def test_network_failure_is_reported(self, mock_client):
        mock_client.get.side_effect = httpx.ConnectError("connection refused")

        result = await web_search_tool.execute({"query": "https://example.com/"})

        assert result == {"success": False, "error": "connection refused"}


class TestSearchProviders:
    """Search mode provider chain."""

    @pytest.mark.asyncio
    async def test_serper_first_when_configured(self, mock_client, no_search_keys):
        mock_client.post.return_value = _response(
            method="POST",
            json={"organic": [{"title": "T", "link": "https://t.example", "snippet": "S"}]},
        )

        with patch.object(config, "SERPER_API_KEY", "serper-key"):
            result = await web_search_tool.execute({"query": "python asyncio"})

        assert result["success"] is True
        assert result["provider"] == "serper"
        assert result["results"] == [{"title": "T", "url": "https://t.example", "snippet": "S"}]
        headers = mock_client.post.call_args.kwargs["headers"]
        assert headers["X-API-KEY"] == "serper-key"
        mock_client.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_falls_back_to_searxng(self, mock_client, no_search_keys):
        mock_client.post.return_value = _response(500, method="POST", text="boom")
        mock_client.get.return_value = _response(json={
            "results": [
                {"title": "A", "url": "https://a.example", "content": "first"},
                {"title": "B", "url": "https://b.example", "content": "second"},
            ]
        })

        with patch.object(config, "SERPER_API_KEY", "serper-key"), \
                patch.object(config, "SEARCH_API_URL", "https://searx.example/search"):
            result = await web_search_tool.execute({"query": "weather", "maxResults": 1})

        assert result["provider"] == "searxng"
        assert result["resultCount"] == 1
        assert result["results"] == [{"title": "A", "url": "https://a.example", "snippet": "first"}]
        params = mock_client.get.call_args.kwargs["params"]
        assert params["format"] == "json"
        assert params["q"] == "weather"

    @pytest.mark.asyncio
    async def test_duckduckgo_when_nothing_configured(self, mock_client, no_search_keys):
        mock_client.get.return_value = _response(text=DDG_HTML)

        result = await web_search_tool.execute({"query": "anything"})

        assert result["success"] is True
        assert result["provider"] == "duckduckgo"
        assert result["results"] == [
            {"title": "First Result", "url": "https://example.com/one", "snippet": "Snippet one"},
            {"title": "Second", "url": "https://example.com/two", "snippet": "Snippet two"},
        ]
        mock_client.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_total_failure_returns_empty_results(self, mock_client, no_search_keys):
        mock_client.get.side_effect = httpx.ConnectError("offline")

        result = await web_search_tool.execute({"query": "anything"})

        assert result["success"] is False
        assert result["results"] == []
        assert result["error"] == "offline"


def test_strip_html():
    assert strip_html("<div>a<script>x()</script>  <b>b</b></div>") == "a b"
