"""Service-specific exceptions for the AlgoVista equation service."""

from __future__ import annotations

from typing import Any

from algovista_service_libs.error_handling import ErrorCode


class AlgoVistaServiceError(Exception):
    """Base exception for the AlgoVista equation service."""

    status_code: int = 500
    error_title: str = "Internal Server Error"

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)

    @property
    def message(self) -> str:
        return str(self)


class ConfigurationError(AlgoVistaServiceError):
    """Raised when required configuration is missing. Fatal at startup."""

    def __init__(self, message: str, config_key: str):
        self.config_key = config_key
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, {"config_key": config_key})


class MalformedResponseError(AlgoVistaServiceError):
    """Raised when upstream content is not valid JSON after normalisation."""

    error_title = "Malformed LLM Response"

    def __init__(self, message: str, raw_excerpt: str = ""):
        super().__init__(message, ErrorCode.PARSING_ERROR, {"raw_excerpt": raw_excerpt})


class SchemaViolationError(AlgoVistaServiceError):
    """Raised when upstream JSON parses but misses a required field."""

    error_title = "LLM Response Schema Violation"

    def __init__(self, message: str, field_path: str):
        self.field_path = field_path
        super().__init__(message, ErrorCode.VALIDATION_ERROR, {"field": field_path})


class TransientNetworkError(AlgoVistaServiceError):
    """Raised for retryable upstream failures: timeouts, resets, 429 and 5xx."""

    error_title = "LLM API Error"

    def __init__(
        self,
        message: str,
        upstream_status: int | None = None,
        is_timeout: bool = False,
    ):
        self.upstream_status = upstream_status
        self.is_timeout = is_timeout
        if is_timeout:
            error_code = ErrorCode.TIMEOUT
        elif upstream_status is None:
            error_code = ErrorCode.CONNECTION_ERROR
        else:
            error_code = ErrorCode.EXTERNAL_SERVICE_ERROR
        super().__init__(message, error_code, {"upstream_status": upstream_status})
        if is_timeout:
            self.status_code = 408
            self.error_title = "Request Timeout"


class UpstreamRequestError(AlgoVistaServiceError):
    """Raised for non-retryable upstream failures (4xx other than 429, bad envelope)."""

    error_title = "LLM API Error"

    def __init__(self, message: str, upstream_status: int | None = None):
        self.upstream_status = upstream_status
        super().__init__(
            message, ErrorCode.EXTERNAL_SERVICE_ERROR, {"upstream_status": upstream_status}
        )


class RequestValidationError(AlgoVistaServiceError):
    """Raised when an incoming HTTP body fails validation."""

    status_code = 400
    error_title = "Validation Error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)


class RateLimitExceededError(AlgoVistaServiceError):
    """Raised when a client exceeds the request budget of the current window."""

    status_code = 429
    error_title = "Rate Limit Exceeded"

    def __init__(self, retry_after_seconds: int, limit: int, window_seconds: int):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            "Too many requests, please try again later",
            ErrorCode.RATE_LIMIT,
            {
                "retry_after": retry_after_seconds,
                "limit": limit,
                "window_seconds": window_seconds,
            },
        )
