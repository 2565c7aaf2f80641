"""Request timeout configuration, middleware and cancellable awaits."""

import asyncio
from contextlib import suppress
from typing import Any, Awaitable, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from toolhub.infra.config import config
from toolhub.infra.error_handler import ToolTimeoutError


class TimeoutMiddleware(BaseHTTPMiddleware):
    """Middleware to enforce request timeouts."""

    def __init__(self, app, timeout: int = 60):
        """
        Initialize timeout middleware.

        Args:
            app: FastAPI application
            timeout: Request timeout in seconds (default: 60)
        """
        super().__init__(app)
        self.timeout = timeout

    async def dispatch(self, request: Request, call_next):
        """Process request with timeout."""
        try:
            return await asyncio.wait_for(call_next(request), timeout=self.timeout)
        except asyncio.TimeoutError:
            return JSONResponse(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                content={"detail": f"Request timeout after {self.timeout} seconds"},
            )


async def run_cancellable(
    awaitable: Awaitable[Any],
    cancel_event: Optional[asyncio.Event] = None,
    timeout: Optional[float] = None,
    timeout_message: Optional[str] = None,
) -> Any:
    """
    Await a call that the caller can abort by setting ``cancel_event``.

    Whichever comes first of the call finishing, the event being set or the
    timeout expiring wins; the losing call task is cancelled and awaited.

    Raises:
        ToolTimeoutError: "Request aborted" when the event fires first, or
            ``timeout_message`` when the timeout expires
    """
    call_task = asyncio.ensure_future(awaitable)
    waiters = {call_task}
    cancel_task = None
    if cancel_event is not None:
        cancel_task = asyncio.ensure_future(cancel_event.wait())
        waiters.add(cancel_task)

    try:
        done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
    finally:
        if cancel_task is not None:
            cancel_task.cancel()
        if not call_task.done():
            call_task.cancel()
            with suppress(asyncio.CancelledError):
                await call_task

    if call_task in done:
        return call_task.result()
    if cancel_task is not None and cancel_task in done:
        raise ToolTimeoutError(ABORTED_MESSAGE)
    raise ToolTimeoutError(timeout_message or f"Timed out after {int(timeout * 1000)}ms")


# Timeout configurations
REQUEST_TIMEOUT = 60  # 60 seconds for API requests
MCP_CALL_TIMEOUT = config.MCP_CALL_TIMEOUT_SECONDS  # MCP connect + call
REGEX_TIMEOUT = 2.0  # regex_match on model-supplied patterns

ABORTED_MESSAGE = "Request aborted"
