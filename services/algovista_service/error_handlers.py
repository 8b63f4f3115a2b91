"""AlgoVista service error handlers.

Every failure that reaches Quart is rendered as the standard
``{error, message, details}`` envelope via ``create_error_response``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Tuple
from uuid import UUID, uuid4

from algovista_service_libs.error_handling import (
    ErrorCode,
    create_error_detail_with_context,
    create_error_response,
)
from algovista_service_libs.logging_utils import create_service_logger
from quart import Response, g, request
from werkzeug.exceptions import HTTPException

from services.algovista_service.exceptions import AlgoVistaServiceError, RateLimitExceededError
from services.algovista_service.metrics import get_metrics

if TYPE_CHECKING:
    from quart import Quart

logger = create_service_logger("algovista_service.error_handlers")

SERVICE_NAME = "algovista_service"

_HTTP_ERROR_CODES: dict[int, ErrorCode] = {
    404: ErrorCode.RESOURCE_NOT_FOUND,
    405: ErrorCode.METHOD_NOT_ALLOWED,
}


def current_correlation_id() -> UUID:
    """Correlation id bound by the route, or a fresh one outside a route."""
    correlation_id = g.get("correlation_id")
    if isinstance(correlation_id, UUID):
        return correlation_id
    return uuid4()


def _operation() -> str:
    return f"{request.method} {request.path}"


def _record(status_code: int) -> None:
    get_metrics()["http_requests_total"].labels(
        method=request.method, endpoint=request.path, status_code=str(status_code)
    ).inc()


def render_service_error(error: AlgoVistaServiceError) -> Tuple[Response, int]:
    """Render an AlgoVistaServiceError with its own status code and title."""
    error_detail = create_error_detail_with_context(
        error_code=error.error_code,
        message=error.message,
        service=SERVICE_NAME,
        operation=_operation(),
        correlation_id=current_correlation_id(),
        details=error.details,
        capture_stack=False,
    )
    headers: dict[str, str] = {}
    if isinstance(error, RateLimitExceededError):
        headers["Retry-After"] = str(error.retry_after_seconds)

    _record(error.status_code)
    return create_error_response(
        error_detail,
        status_code=error.status_code,
        error_title=error.error_title,
        headers=headers,
    )


def register_error_handlers(app: Quart) -> None:
    """Register envelope-producing error handlers on the app.

    Args:
        app: The Quart application instance
    """

    @app.errorhandler(AlgoVistaServiceError)
    async def handle_service_error(error: AlgoVistaServiceError) -> Tuple[Response, int]:
        """Handle service errors raised by routes or the gateway."""
        log = logger.warning if error.status_code < 500 else logger.error
        log(
            f"{type(error).__name__}: {error.message}",
            error_code=error.error_code.value,
            status_code=error.status_code,
        )
        return render_service_error(error)

    @app.errorhandler(HTTPException)
    async def handle_http_exception(error: HTTPException) -> Tuple[Response, int]:
        """Handle routing errors such as unknown paths and wrong methods."""
        status_code = error.code or 500
        details: dict[str, Any] = {"path": request.path, "method": request.method}
        error_detail = create_error_detail_with_context(
            error_code=_HTTP_ERROR_CODES.get(status_code, ErrorCode.INVALID_REQUEST),
            message=error.description or error.name,
            service=SERVICE_NAME,
            operation=_operation(),
            correlation_id=current_correlation_id(),
            details=details,
            capture_stack=False,
        )
        _record(status_code)
        return create_error_response(error_detail, status_code=status_code, error_title=error.name)

    @app.errorhandler(Exception)
    async def handle_unexpected_error(error: Exception) -> Tuple[Response, int]:
        """Handle anything else as a 500 without leaking internals."""
        logger.error(f"Unexpected error: {error}", exc_info=True)
        error_detail = create_error_detail_with_context(
            error_code=ErrorCode.PROCESSING_ERROR,
            message="An unexpected error occurred",
            service=SERVICE_NAME,
            operation=_operation(),
            correlation_id=current_correlation_id(),
            details={"error_type": type(error).__name__},
        )
        _record(500)
        return create_error_response(error_detail, status_code=500)
