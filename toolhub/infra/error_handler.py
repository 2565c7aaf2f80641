"""Error types raised inside adapters and built-ins, and their classification."""

from typing import Optional, Tuple
from enum import Enum

import httpx


class ErrorCategory(str, Enum):
    """Categories of errors for better handling."""
    NETWORK = "network"  # Connection issues
    TIMEOUT = "timeout"  # Timed out or aborted calls
    API_ERROR = "api_error"  # Upstream returned an error response
    SECURITY = "security"  # Blocked protocol or private address
    VALIDATION = "validation"  # Input validation errors
    UNKNOWN = "unknown"  # Unknown errors


class ToolError(Exception):
    """Base exception for failures inside a tool call."""
    def __init__(self, message: str, category: ErrorCategory, retryable: bool = False):
        self.message = message
        self.category = category
        self.retryable = retryable
        super().__init__(message)


class NetworkError(ToolError):
    """Connection-level failures (DNS, refused, reset)."""
    def __init__(self, message: str):
        super().__init__(message, ErrorCategory.NETWORK, retryable=True)


class ToolTimeoutError(ToolError):
    """Timeout or cancellation of an in-flight call."""
    def __init__(self, message: str):
        super().__init__(message, ErrorCategory.TIMEOUT, retryable=True)


class APIError(ToolError):
    """Upstream returned a non-2xx response."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        retryable = status_code is not None and (status_code == 429 or status_code >= 500)
        super().__init__(message, ErrorCategory.API_ERROR, retryable=retryable)


class UnsafeURLError(ToolError):
    """URL rejected by the protocol or private-network guard."""
    def __init__(self, message: str):
        super().__init__(message, ErrorCategory.SECURITY, retryable=False)


def classify_error(error: BaseException) -> Tuple[ErrorCategory, bool]:
    """
    Classify an error into a category and determine if it's retryable.

    Args:
        error: The exception to classify

    Returns:
        Tuple of (category, retryable)
    """
    if isinstance(error, ToolError):
        return error.category, error.retryable

    if isinstance(error, httpx.TimeoutException):
        return ErrorCategory.TIMEOUT, True

    if isinstance(error, httpx.HTTPStatusError):
        status_code = error.response.status_code
        return ErrorCategory.API_ERROR, status_code == 429 or status_code >= 500

    if isinstance(error, (httpx.TransportError, ConnectionError)):
        return ErrorCategory.NETWORK, True

    if isinstance(error, TimeoutError):
        return ErrorCategory.TIMEOUT, True

    if isinstance(error, (ValueError, TypeError)):
        return ErrorCategory.VALIDATION, False

    return ErrorCategory.UNKNOWN, False


def error_message(error: BaseException) -> str:
    """Human-readable message for an exception, never empty."""
    message = str(error)
    if message:
        return message
    return type(error).__name__ or "Unknown error"
