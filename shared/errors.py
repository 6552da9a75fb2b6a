"""
Shared error handling for the GraphQL edge cache.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

from shared.logging import get_request_id


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class EdgeCacheException(Exception):
    """Base exception for edge cache services."""

    status_code: int = 400

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=get_request_id(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class BadRequestError(EdgeCacheException):
    """Malformed or missing request input."""

    status_code = 400

    def __init__(self, message: str = "Bad request", details: Optional[Dict[str, Any]] = None):
        super().__init__("BAD_REQUEST", message, details)


class PayloadTooLargeError(EdgeCacheException):
    """Request query text exceeds the configured limit."""

    status_code = 413

    def __init__(self, message: str = "Query too large", details: Optional[Dict[str, Any]] = None):
        super().__init__("PAYLOAD_TOO_LARGE", message, details)


class UpstreamNotConfiguredError(EdgeCacheException):
    """No upstream URL has been configured."""

    status_code = 500

    def __init__(self, message: str = "Missing upstream URL", details: Optional[Dict[str, Any]] = None):
        super().__init__("UPSTREAM_NOT_CONFIGURED", message, details)


class ExternalServiceError(EdgeCacheException):
    """External service errors."""

    status_code = 502

    def __init__(
        self,
        service: str,
        message: str = "External service error",
        details: Optional[Dict[str, Any]] = None,
        code: str = "EXTERNAL_SERVICE_ERROR",
    ):
        super().__init__(code, f"{service}: {message}", details)


class UpstreamTimeoutError(ExternalServiceError):
    """Upstream call exceeded its time bound; safe to retry."""

    status_code = 504

    def __init__(self, message: str = "timeout", details: Optional[Dict[str, Any]] = None):
        super().__init__("upstream", message, details, code="UPSTREAM_TIMEOUT")


class UpstreamFetchError(ExternalServiceError):
    """Transport failure other than a timeout; safe to retry."""

    status_code = 502

    def __init__(self, message: str = "fetch failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("upstream", message, details, code="UPSTREAM_FETCH_FAILED")


class CacheStoreUnavailable(ExternalServiceError):
    """Cache collaborator failure; swallowed by the store adapter."""

    def __init__(self, message: str = "cache store unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("cache_store", message, details, code="CACHE_STORE_UNAVAILABLE")
