"""
Shared error handling for the License Provider services.

Every failure that reaches a client is rendered as the same JSON envelope,
``{"error": <message>, "detail": <optional>}``.
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel

from opentelemetry import trace


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str
    detail: Optional[str] = None
    trace_id: Optional[str] = None

    def to_content(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


def _current_trace_id() -> Optional[str]:
    current_span = trace.get_current_span()
    if current_span and current_span.is_recording():
        span_context = current_span.get_span_context()
        if span_context.trace_id != 0:
            return f"{span_context.trace_id:032x}"
    return None


class LicenseServiceException(Exception):
    """Base exception for License Provider services."""

    status_code: int = 500
    code: str = "SERVICE_ERROR"

    def __init__(self, error: str, detail: Optional[str] = None):
        self.error = error
        self.detail = detail
        super().__init__(error)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(error=self.error, detail=self.detail, trace_id=_current_trace_id())


class AuthenticationError(LicenseServiceException):
    """Missing or mismatched credentials. Never says which."""

    status_code = 401
    code = "AUTHENTICATION_ERROR"

    def __init__(self, error: str = "Unauthorized"):
        super().__init__(error)


class ValidationError(LicenseServiceException):
    """Validation-related errors."""

    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, error: str = "Validation failed", detail: Optional[str] = None):
        super().__init__(error, detail)


class PayloadTooLargeError(LicenseServiceException):
    status_code = 413
    code = "PAYLOAD_TOO_LARGE"

    def __init__(self, error: str = "Payload too large", detail: Optional[str] = None):
        super().__init__(error, detail)


class StorageError(LicenseServiceException):
    """Persistence failures in the lookaside store."""

    status_code = 500
    code = "STORAGE_ERROR"

    def __init__(self, error: str = "Storage error", detail: Optional[str] = None):
        super().__init__(error, detail)


class ExternalServiceError(LicenseServiceException):
    """External service errors."""

    status_code = 502
    code = "EXTERNAL_SERVICE_ERROR"

    def __init__(self, service: str, error: str = "External service error", detail: Optional[str] = None):
        self.service = service
        super().__init__(error, detail)
