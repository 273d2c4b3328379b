"""
Shared error handling for the user records service.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

from opentelemetry import trace


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class ServiceException(Exception):
    """Base exception for service errors."""

    status_code = 400

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        trace_id = None
        current_span = trace.get_current_span()
        if current_span and current_span.is_recording():
            span_context = current_span.get_span_context()
            if span_context.trace_id != 0:
                trace_id = f"{span_context.trace_id:032x}"

        return ErrorResponse(
            trace_id=trace_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(ServiceException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class ValidationFailedError(ValidationError):
    """Field-level validation failures, carried as a list of issue dicts."""

    def __init__(self, issues, message: str = "Validation failed"):
        self.issues = list(issues)
        super().__init__(message, {"errors": [issue.to_dict() for issue in self.issues]})


class InvalidIdentifierError(ServiceException):
    """Malformed resource identifier."""

    def __init__(self, identifier: str, message: str = "Invalid user ID format"):
        super().__init__("INVALID_IDENTIFIER", message, {"id": identifier})


class NotFoundError(ServiceException):
    """Unknown resource identifier."""

    status_code = 404

    def __init__(self, message: str = "Resource not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class ConflictError(ServiceException):
    """Unique-constraint violation reported by a persistence backend."""

    status_code = 409

    def __init__(self, field: str, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.field = field
        super().__init__("CONFLICT", message or f"Duplicate value for {field}", {"field": field, **(details or {})})


class ServiceError(ServiceException):
    """Service-related errors."""

    status_code = 500

    def __init__(self, message: str = "Service error", details: Optional[Dict[str, Any]] = None):
        super().__init__("SERVICE_ERROR", message, details)
