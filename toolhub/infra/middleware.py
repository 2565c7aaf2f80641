"""Request middleware for tracking, CORS, and other cross-cutting concerns."""

import logging
import os
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from toolhub.infra.config import config
from toolhub.infra.metrics import request_count, request_duration

logger = logging.getLogger("toolhub.request")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware to add request ID to all requests."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def _route_path(request: Request) -> str:
    # Templated path keeps metric label cardinality bounded
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log request/response details and record request metrics."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = getattr(request.state, "request_id", "unknown")

        start_time = time.time()
        logger.info(
            "Request started",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "client": request.client.host if request.client else None,
            }
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.error(
                "Request failed",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "error": str(e),
                    "duration_ms": duration_ms,
                },
                exc_info=True,
            )
            raise

        duration = time.time() - start_time
        duration_ms = int(duration * 1000)
        endpoint = _route_path(request)
        request_count.labels(method=request.method, endpoint=endpoint, status=str(response.status_code)).inc()
        request_duration.labels(method=request.method, endpoint=endpoint).observe(duration)

        logger.info(
            "Request completed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            }
        )

        response.headers["X-Response-Time-Ms"] = str(duration_ms)
        return response


def setup_cors(app):
    """Setup CORS middleware."""
    cors_origins_env = os.getenv("CORS_ORIGINS", "")
    if cors_origins_env:
        # SECURITY: Never use wildcard in production
        allowed_origins = [origin.strip() for origin in cors_origins_env.split(",") if origin.strip()]
        if config.APP_ENV != "development":
            allowed_origins = [origin for origin in allowed_origins if origin != "*"]
    elif config.APP_ENV == "development":
        allowed_origins = ["*"]
    else:
        allowed_origins = []

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type", "X-API-Key", "X-Request-ID"],
        expose_headers=["X-Request-ID", "X-Response-Time-Ms"],
    )
