"""
Shared error handling for the travel advisory gateway.

Only InvalidRequest, MethodNotAllowed, UpstreamUnavailable and InternalError
ever reach the HTTP boundary. AdvisoryTransient and AdvisoryMalformed are
raised and absorbed inside the advisory client, which degrades them to a
fallback result.
"""

from typing import Dict, Any, Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str
    meta: Optional[Dict[str, Any]] = None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class AdvisoryGatewayException(Exception):
    """Base exception for the advisory gateway."""

    status_code = 500

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(error=self.message, meta=self.details or None)


class InvalidRequest(AdvisoryGatewayException):
    """Missing, empty or oversized country identifier."""

    status_code = 400

    def __init__(self, message: str = "Invalid request", details: Optional[Dict[str, Any]] = None):
        super().__init__("INVALID_REQUEST", message, details)


class MethodNotAllowed(AdvisoryGatewayException):
    """HTTP method outside the allow-list."""

    status_code = 405

    def __init__(self, allowed: str, message: str = "Method not allowed"):
        self.allowed = allowed
        super().__init__("METHOD_NOT_ALLOWED", message)


class UpstreamUnavailable(AdvisoryGatewayException):
    """Reference data service failed; fatal to the request."""

    status_code = 502

    def __init__(
        self,
        service: str,
        message: str = "Failed to fetch country basics",
        status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.service = service
        self.status = status
        super().__init__("UPSTREAM_UNAVAILABLE", message, details)


class InternalError(AdvisoryGatewayException):
    """Unexpected failure while composing a response."""

    status_code = 500

    def __init__(self, message: str = "Internal server error", details: Optional[Dict[str, Any]] = None):
        super().__init__("INTERNAL_ERROR", message, details)


class AdvisoryTransient(AdvisoryGatewayException):
    """Rate limit, 5xx or network failure from the generation service."""

    status_code = 503

    def __init__(self, message: str = "Generation service unavailable", status: Optional[int] = None):
        self.status = status
        super().__init__("ADVISORY_TRANSIENT", message, {"status": status})


class AdvisoryMalformed(AdvisoryGatewayException):
    """Generation service answered, but the output could not be normalized."""

    status_code = 502

    def __init__(self, message: str = "Unparseable advisory output", status: Optional[int] = None):
        self.status = status
        super().__init__("ADVISORY_MALFORMED", message, {"status": status})
