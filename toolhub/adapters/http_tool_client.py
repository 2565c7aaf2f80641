"""HTTP client for custom and openapi endpoint tools."""

import asyncio
import logging
import re
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote

import httpx

from toolhub.infra.config import config
from toolhub.infra.error_handler import APIError, NetworkError, ToolTimeoutError
from toolhub.infra.safety import validate_public_url
from toolhub.infra.timeout import run_cancellable
from toolhub.models.tool import AuthType, ExecutionConfig

logger = logging.getLogger(__name__)

MAX_ERROR_BODY_CHARS = 500
BODYLESS_METHODS = ("GET", "DELETE")
DEFAULT_API_KEY_HEADER = "X-API-Key"

_PATH_PARAM = re.compile(r"\{([A-Za-z_][A-Za-z0-9_.-]*)\}")


def build_auth_headers(execution_config: ExecutionConfig) -> Dict[str, str]:
    """
    Build the credential header for an endpoint.

    SECURITY: The returned values are secrets, never log them.
    """
    auth_value = execution_config.auth_value
    if not auth_value:
        return {}

    if execution_config.auth_type == AuthType.BEARER:
        return {"Authorization": f"Bearer {auth_value}"}
    if execution_config.auth_type == AuthType.API_KEY:
        header_name = execution_config.auth_header_name or DEFAULT_API_KEY_HEADER
        return {header_name: auth_value}
    return {}


def expand_path_params(url: str, params: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
    """
    Substitute ``{name}`` placeholders in the URL from params.

    Returns the expanded URL and the params that were not consumed.
    """
    remaining = dict(params)

    def _replace(match: re.Match) -> str:
        name = match.group(1)
        if name not in remaining:
            return match.group(0)
        return quote(str(remaining.pop(name)), safe="")

    return _PATH_PARAM.sub(_replace, url), remaining


def _query_params(params: Dict[str, Any]) -> Dict[str, Any]:
    query = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            query[key] = "true" if value else "false"
        elif isinstance(value, (list, tuple)):
            query[key] = [str(item) for item in value]
        else:
            query[key] = str(value)
    return query


class HTTPToolClient:
    """Performs one HTTP call per tool invocation.

    The call is bounded by the endpoint's ``timeout_ms``. On expiry, or when
    the caller sets ``cancel_event``, the in-flight request task is cancelled,
    which closes the underlying connection.
    """

    async def execute(
        self,
        execution_config: ExecutionConfig,
        params: Optional[Dict[str, Any]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Any:
        """
        Execute the endpoint with model-supplied params.

        Args:
            execution_config: Stored endpoint description
            params: Tool arguments from the model
            cancel_event: Optional event the caller sets to abort the call

        Returns:
            Parsed JSON body, or raw text when the body is not JSON

        Raises:
            UnsafeURLError: Non-http(s) protocol or private host
            ToolTimeoutError: Timed out or aborted
            APIError: Non-2xx response
            NetworkError: Connection-level failure
        """
        params = params or {}
        method = execution_config.method.upper()
        url, remaining = expand_path_params(execution_config.url, params)

        # SECURITY: protocol and private-network guard before dialing
        validate_public_url(url)

        headers = {
            "Content-Type": "application/json",
            "User-Agent": config.USER_AGENT,
        }
        headers.update(execution_config.headers)
        headers.update(build_auth_headers(execution_config))

        timeout_ms = execution_config.timeout_ms
        logger.info(f"Calling HTTP tool endpoint {method} {url}")

        return await run_cancellable(
            self._send(method, url, headers, remaining, timeout_ms),
            cancel_event,
            timeout=timeout_ms / 1000,
            timeout_message=f"Timed out after {timeout_ms}ms",
        )

    async def _send(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        params: Dict[str, Any],
        timeout_ms: int,
    ) -> Any:
        request_kwargs: Dict[str, Any] = {"headers": headers}
        if method in BODYLESS_METHODS:
            if params:
                request_kwargs["params"] = _query_params(params)
        else:
            request_kwargs["json"] = params

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(timeout_ms / 1000),
                follow_redirects=False,
            ) as client:
                response = await client.request(method, url, **request_kwargs)
        except httpx.TimeoutException:
            raise ToolTimeoutError(f"Timed out after {timeout_ms}ms")
        except httpx.HTTPError as e:
            raise NetworkError(f"HTTP request failed: {e}")

        if not 200 <= response.status_code < 300:
            body = (response.text or "")[:MAX_ERROR_BODY_CHARS]
            raise APIError(f"HTTP {response.status_code}: {body}", status_code=response.status_code)

        try:
            return response.json()
        except ValueError:
            return response.text


http_tool_client = HTTPToolClient()
