"""Error taxonomy for the Heritage AI gateway.

Each error carries the HTTP status it is rendered with. Provider failures
are mapped onto these at the gateway boundary.
"""

from typing import Any, Optional

from heritage_ai.llm import (
    ProviderContextTooLong,
    ProviderError,
    ProviderQuotaExceeded,
    ProviderRateLimited,
    ProviderUnavailable,
)


class HeritageAIError(Exception):
    """Base exception for the gateway."""

    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        errors: Optional[list[dict[str, Any]]] = None,
    ):
        self.message = message
        self.errors = errors
        super().__init__(message)


class ValidationFailedError(HeritageAIError):
    """Raised when input validation fails."""
    status_code = 400
    error_code = "VALIDATION_FAILED"

    def __init__(self, message: str = "Validation failed", errors: Optional[list[dict[str, Any]]] = None):
        super().__init__(message, errors)


class UnauthorizedError(HeritageAIError):
    """Raised when no caller identity is present."""
    status_code = 401
    error_code = "UNAUTHORIZED"


class ForbiddenError(HeritageAIError):
    """Raised when the caller may not touch a resource."""
    status_code = 403
    error_code = "FORBIDDEN"


class NotFoundError(HeritageAIError):
    """Raised when a resource is not found."""
    status_code = 404
    error_code = "NOT_FOUND"


class ServiceUnavailableError(HeritageAIError):
    """Raised when no provider is configured or its quota is gone."""
    status_code = 503
    error_code = "SERVICE_UNAVAILABLE"


class RateLimitedError(HeritageAIError):
    status_code = 429
    error_code = "RATE_LIMITED"


class ContextTooLongError(HeritageAIError):
    status_code = 400
    error_code = "CONTEXT_TOO_LONG"


class InternalError(HeritageAIError):
    """Catch-all. ``detail`` is only shown in development mode."""
    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str, detail: Optional[str] = None):
        self.detail = detail
        super().__init__(message)


def from_provider_error(exc: ProviderError, action: str = "processing AI request") -> HeritageAIError:
    """Map an adapter failure to the error returned to the client."""
    if isinstance(exc, ProviderQuotaExceeded):
        return ServiceUnavailableError("AI service quota exceeded. Please try again later.")
    if isinstance(exc, ProviderRateLimited):
        return RateLimitedError("Too many requests. Please wait before trying again.")
    if isinstance(exc, ProviderContextTooLong):
        return ContextTooLongError("Question or context is too long. Please shorten your input.")
    if isinstance(exc, ProviderUnavailable):
        return ServiceUnavailableError("AI service not available. Please try again later.")
    return InternalError(f"Internal server error while {action}", detail=exc.message)
