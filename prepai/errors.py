"""
Error taxonomy for PrepAI.

Every failure the pipeline or the request layer can raise is one of the
classes below. Each class carries a fixed set of fields, so callers can
branch on ``category`` / ``retryable`` and the HTTP layer can render
``code`` and ``status_code`` without inspecting messages.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Broad error categories."""
    CONFIGURATION = "configuration"
    CLIENT_INPUT = "client_input"
    TRANSIENT_UPSTREAM = "transient_upstream"
    RATE_LIMITED = "rate_limited"
    QUOTA_EXCEEDED = "quota_exceeded"
    UPSTREAM_REJECTED = "upstream_rejected"
    PARSE_FAILURE = "parse_failure"


class PrepAIError(Exception):
    """Base class for all PrepAI errors."""

    code = "INTERNAL_SERVER_ERROR"
    status_code = 500
    category = ErrorCategory.CONFIGURATION
    retryable = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def extra(self) -> dict[str, Any]:
        """Kind-specific fields included in serialised errors."""
        return {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "status_code": self.status_code,
            "category": self.category.value,
            "retryable": self.retryable,
            "message": self.message,
            **self.extra(),
        }


# =============================================================================
# Configuration
# =============================================================================

class MissingApiKey(PrepAIError):
    """No provider credential is configured."""
    code = "MISSING_API_KEY"

    def __init__(self, message: str = "GEMINI_API_KEY is not set in environment variables"):
        super().__init__(message)


class InvalidApiKey(PrepAIError):
    """The configured credential is malformed or was rejected upstream."""
    code = "INVALID_API_KEY"

    def __init__(self, message: str = "Invalid GEMINI_API_KEY format"):
        super().__init__(message)


# =============================================================================
# Client input
# =============================================================================

class ClientInputError(PrepAIError):
    """Inbound request failed validation."""
    status_code = 400
    category = ErrorCategory.CLIENT_INPUT

    def __init__(
        self,
        message: str,
        code: str = "INVALID_REQUEST",
        fields: Optional[list[str]] = None,
    ):
        self.code = code
        self.fields = list(fields or [])
        super().__init__(message)

    def extra(self) -> dict[str, Any]:
        if self.fields:
            return {"fields": self.fields}
        return {}


# =============================================================================
# Upstream
# =============================================================================

class UpstreamInvalidResponse(PrepAIError):
    """The provider answered but the payload was unusable."""
    code = "INVALID_RESPONSE"
    status_code = 502
    category = ErrorCategory.TRANSIENT_UPSTREAM
    retryable = True

    def __init__(self, message: str, finish_reason: Optional[str] = None):
        self.finish_reason = finish_reason
        super().__init__(message)

    def extra(self) -> dict[str, Any]:
        if self.finish_reason:
            return {"finish_reason": self.finish_reason}
        return {}


class UpstreamServerError(PrepAIError):
    """The provider returned a 5xx status."""
    code = "UPSTREAM_SERVER_ERROR"
    status_code = 502
    category = ErrorCategory.TRANSIENT_UPSTREAM
    retryable = True

    def __init__(self, message: str, upstream_status: int):
        self.upstream_status = upstream_status
        super().__init__(message)

    def extra(self) -> dict[str, Any]:
        return {"upstream_status": self.upstream_status}


class NetworkError(PrepAIError):
    """Connection failure or timeout talking to the provider."""
    code = "NETWORK_ERROR"
    status_code = 503
    category = ErrorCategory.TRANSIENT_UPSTREAM
    retryable = True


class RateLimited(PrepAIError):
    """Provider asked us to slow down (HTTP 429, transient)."""
    code = "RATE_LIMITED"
    status_code = 429
    category = ErrorCategory.RATE_LIMITED
    retryable = True

    def __init__(self, message: str, retry_after: float):
        self.retry_after = retry_after
        super().__init__(message)

    def extra(self) -> dict[str, Any]:
        return {"retry_after": self.retry_after}


class QuotaExceeded(PrepAIError):
    """Provider daily quota is exhausted (HTTP 429, hard)."""
    code = "QUOTA_EXCEEDED"
    status_code = 429
    category = ErrorCategory.QUOTA_EXCEEDED

    def __init__(
        self,
        message: str = "Daily API quota exceeded. Please try again tomorrow or upgrade your plan.",
        retry_after: Optional[float] = None,
    ):
        self.retry_after = retry_after
        super().__init__(message)

    def extra(self) -> dict[str, Any]:
        if self.retry_after is not None:
            return {"retry_after": self.retry_after}
        return {}


class UpstreamRequestRejected(PrepAIError):
    """Provider refused the request with a non-retriable 4xx."""
    code = "UPSTREAM_REJECTED"
    status_code = 502
    category = ErrorCategory.UPSTREAM_REJECTED

    def __init__(self, message: str, upstream_status: int):
        self.upstream_status = upstream_status
        super().__init__(message)

    def extra(self) -> dict[str, Any]:
        return {"upstream_status": self.upstream_status}


class RetriesExhausted(PrepAIError):
    """All attempts failed; wraps the last underlying error."""
    code = "RETRIES_EXHAUSTED"

    def __init__(self, attempts: int, last_error: PrepAIError):
        self.attempts = attempts
        self.last_error = last_error
        self.status_code = last_error.status_code
        self.category = last_error.category
        super().__init__(f"Failed after {attempts} attempts: {last_error.message}")

    def extra(self) -> dict[str, Any]:
        extra: dict[str, Any] = {
            "attempts": self.attempts,
            "last_error_code": self.last_error.code,
        }
        retry_after = getattr(self.last_error, "retry_after", None)
        if retry_after is not None:
            extra["retry_after"] = retry_after
        return extra


class ParseFailure(PrepAIError):
    """Model output could not be turned into the expected shape."""
    code = "PARSE_FAILURE"
    status_code = 502
    category = ErrorCategory.PARSE_FAILURE

    def __init__(self, message: str, code: str = "PARSE_FAILURE"):
        self.code = code
        super().__init__(message)
