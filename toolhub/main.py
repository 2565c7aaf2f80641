"""FastAPI application for the tool registry."""

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from toolhub.api.routers import health, logs, tools
from toolhub.infra.config import config
from toolhub.infra.logging import app_logger
from toolhub.infra.middleware import RequestIDMiddleware, RequestLoggingMiddleware, setup_cors
from toolhub.infra.timeout import REQUEST_TIMEOUT, TimeoutMiddleware
from toolhub.logging.execution_logger import drain_pending_logs


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    app_logger.info("Application starting up")
    if not config.API_KEY:
        app_logger.warning("TOOLHUB_API_KEY is not set; /v1 endpoints are unauthenticated outside production")

    yield

    app_logger.info("Application shutting down")

    # Let in-flight execution records reach the database
    await drain_pending_logs()

    from toolhub.infra.database import engine
    engine.dispose()


app = FastAPI(
    title="Toolhub API",
    description="""
    Toolhub resolves the tools an AI assistant may call (built-in, MCP and
    custom HTTP tools), executes them safely and keeps an audit trail of every
    execution.

    ## Authentication

    `/v1` endpoints require an API key when `TOOLHUB_API_KEY` is set:
    - Header: `X-API-Key: <your-api-key>`
    - Query parameter: `?api_key=<your-api-key>`
    """,
    version="1.0.0",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "Tools",
            "description": "Built-in tool catalogue and per-assistant tool resolution",
        },
        {
            "name": "Logs",
            "description": "Tool execution records and statistics",
        },
        {
            "name": "Health",
            "description": "Health check and monitoring endpoints",
        },
    ],
)

app.add_middleware(RequestIDMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(TimeoutMiddleware, timeout=REQUEST_TIMEOUT)
setup_cors(app)

app.include_router(health.router)
app.include_router(tools.router)
app.include_router(logs.router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors."""
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle all other exceptions."""
    error_id = str(uuid.uuid4())
    app_logger.error(f"Unhandled exception: {exc}", exc_info=True, extra={"error_id": error_id})
    return JSONResponse(
        status_code=500,
        content={"detail": f"Internal server error. Error ID: {error_id}"},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        timeout_keep_alive=30,
        timeout_graceful_shutdown=30,
    )
