"""Factory for building ErrorDetail instances with consistent context."""

from __future__ import annotations

import traceback
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from algovista_service_libs.error_handling.error_models import ErrorCode, ErrorDetail


def create_error_detail_with_context(
    error_code: ErrorCode,
    message: str,
    service: str,
    operation: str,
    correlation_id: UUID,
    details: dict[str, Any] | None = None,
    capture_stack: bool = True,
) -> ErrorDetail:
    """Create an ErrorDetail stamped with the current UTC time.

    Args:
        error_code: Error classification
        message: Human-readable error message
        service: Name of the service raising the error
        operation: Operation that failed
        correlation_id: Request correlation ID
        details: Additional structured context
        capture_stack: Include the current stack trace (disable at API boundaries)

    Returns:
        Immutable ErrorDetail
    """
    stack_trace = "".join(traceback.format_stack()) if capture_stack else None

    return ErrorDetail(
        error_code=error_code,
        message=message,
        correlation_id=correlation_id,
        timestamp=datetime.now(timezone.utc),
        service=service,
        operation=operation,
        details=details or {},
        stack_trace=stack_trace,
    )
