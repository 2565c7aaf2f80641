"""Liveness, readiness and metrics endpoints."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from toolhub.infra.database import get_db
from toolhub.infra.metrics import get_metrics_response
from toolhub.logging.execution_logger import pending_log_count
from toolhub.tools.registry import get_builtin_tools

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

SERVICE_NAME = "toolhub"
SERVICE_VERSION = "1.0.0"

# Read by the resolver and written by the execution logger
REQUIRED_TABLES = ("tools", "assistant_tools", "mcp_servers", "tool_executions")


@router.get("/health")
async def health_check():
    """Service identity, built-in table size and execution log backlog."""
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "builtin_tools": len(get_builtin_tools()),
        "pending_execution_logs": pending_log_count(),
    }


@router.get("/health/live")
async def liveness_probe():
    return {"status": "alive"}


@router.get("/health/ready")
def readiness_probe(db: Session = Depends(get_db)):
    """Ready once every registry table answers a query."""
    unavailable = []
    for table in REQUIRED_TABLES:
        try:
            db.execute(text(f"SELECT 1 FROM {table} LIMIT 1"))
        except SQLAlchemyError as e:
            logger.warning(f"Readiness check failed on {table}: {e}")
            db.rollback()
            unavailable.append(table)

    if unavailable:
        return JSONResponse(status_code=503, content={"status": "not_ready", "unavailable": unavailable})
    return {"status": "ready"}


@router.get("/metrics")
async def metrics():
    return get_metrics_response()
