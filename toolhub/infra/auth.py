"""API key check for the read-only /v1 endpoints."""

import secrets
from typing import Optional

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader, APIKeyQuery

from toolhub.infra.config import config

# API key header
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)
api_key_query = APIKeyQuery(name="api_key", auto_error=False)


async def verify_api_key(
    api_key: Optional[str] = Security(api_key_header),
    api_key_query_param: Optional[str] = Security(api_key_query),
) -> None:
    """
    Verify the caller's API key.

    Supports both header (X-API-Key) and query parameter (api_key). With no
    key configured the endpoints are open outside production.

    Raises:
        HTTPException: If the key is missing or wrong
    """
    expected = config.API_KEY
    if not expected:
        if config.APP_ENV == "production":
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="API key authentication is not configured",
            )
        return

    key = api_key or api_key_query_param
    if not key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key required. Provide X-API-Key header or api_key query parameter.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    # SECURITY: constant-time comparison
    if not secrets.compare_digest(key, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )
