"""Error handling utilities for AlgoVista services."""

from algovista_service_libs.error_handling.error_detail_factory import (
    create_error_detail_with_context,
)
from algovista_service_libs.error_handling.error_models import ErrorCode, ErrorDetail
from algovista_service_libs.error_handling.quart_handlers import (
    build_error_envelope,
    create_error_response,
)

__all__ = [
    "ErrorCode",
    "ErrorDetail",
    "build_error_envelope",
    "create_error_detail_with_context",
    "create_error_response",
]
