"""Quart helpers that turn ErrorDetail into the public JSON error envelope.

Envelope shape::

    {
        "error": "<short title>",
        "message": "<human readable message>",
        "details": {"error_code": ..., "correlation_id": ..., ...}
    }
"""

from __future__ import annotations

from typing import Any, Mapping

from quart import Response, jsonify

from algovista_service_libs.error_handling.error_models import ErrorDetail


def build_error_envelope(error_detail: ErrorDetail, error_title: str) -> dict[str, Any]:
    """Build the JSON-serialisable envelope for an error."""
    details: dict[str, Any] = {
        **error_detail.details,
        "error_code": error_detail.error_code.value,
        "correlation_id": str(error_detail.correlation_id),
        "operation": error_detail.operation,
        "timestamp": error_detail.timestamp.isoformat(),
    }
    return {
        "error": error_title,
        "message": error_detail.message,
        "details": details,
    }


def create_error_response(
    error_detail: ErrorDetail,
    status_code: int = 500,
    error_title: str = "Internal Server Error",
    headers: Mapping[str, str] | None = None,
) -> tuple[Response, int]:
    """Create a standardized error response from an ErrorDetail.

    Args:
        error_detail: The error to render
        status_code: HTTP status code for the response
        error_title: Short title placed in the ``error`` field
        headers: Optional extra response headers (e.g. Retry-After)

    Returns:
        Tuple of (Response, status_code) suitable for returning from a route
    """
    response = jsonify(build_error_envelope(error_detail, error_title))
    if headers:
        for name, value in headers.items():
            response.headers[name] = value
    return response, status_code
