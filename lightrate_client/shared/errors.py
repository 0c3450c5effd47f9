"""
Error handling for the Lightrate client.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    status_code: Optional[int] = None
    details: Dict[str, Any] = {}


class LightrateError(Exception):
    """Base exception for the Lightrate client."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            status_code=getattr(self, "status_code", None),
            details=self.details
        )


class ConfigurationError(LightrateError):
    """Missing or invalid client configuration."""

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class ValidationError(LightrateError):
    """Malformed request."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class APIError(LightrateError):
    """Non-success response from the Lightrate API."""

    code = "API_ERROR"

    def __init__(self, message: str, status_code: Optional[int] = None, response_body: Any = None):
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(
            type(self).code,
            message,
            {"status_code": status_code, "response_body": response_body}
        )


class BadRequestError(APIError):
    code = "BAD_REQUEST"


class UnauthorizedError(APIError):
    code = "UNAUTHORIZED"


class ForbiddenError(APIError):
    code = "FORBIDDEN"


class NotFoundError(APIError):
    code = "NOT_FOUND"


class UnprocessableEntityError(APIError):
    code = "UNPROCESSABLE_ENTITY"


class TooManyRequestsError(APIError):
    code = "TOO_MANY_REQUESTS"


class InternalServerError(APIError):
    code = "INTERNAL_SERVER_ERROR"


class ServiceUnavailableError(APIError):
    code = "SERVICE_UNAVAILABLE"


class NetworkError(LightrateError):
    """Connection-level failures talking to the API."""

    def __init__(self, message: str = "Network error", details: Optional[Dict[str, Any]] = None):
        super().__init__("NETWORK_ERROR", message, details)


class RequestTimeoutError(LightrateError):
    """The API did not answer within the configured timeout."""

    def __init__(self, message: str = "Request timed out", details: Optional[Dict[str, Any]] = None):
        super().__init__("TIMEOUT_ERROR", message, details)


_STATUS_ERRORS = {
    400: (BadRequestError, "Bad Request"),
    401: (UnauthorizedError, "Unauthorized"),
    403: (ForbiddenError, "Forbidden"),
    404: (NotFoundError, "Not Found"),
    422: (UnprocessableEntityError, "Unprocessable Entity"),
    429: (TooManyRequestsError, "Too Many Requests"),
    500: (InternalServerError, "Internal Server Error"),
    503: (ServiceUnavailableError, "Service Unavailable"),
}


def error_for_status(status_code: int, response_body: Any = None) -> APIError:
    """Build the API error matching an HTTP status code."""
    error_cls, message = _STATUS_ERRORS.get(status_code, (APIError, f"API Error: {status_code}"))
    return error_cls(message, status_code, response_body)
