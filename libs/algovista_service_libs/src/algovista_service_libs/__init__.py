"""
AlgoVista Service Libraries Package.

Shared infrastructure used by AlgoVista services: structured logging and the
standard JSON error envelope.
"""

from .logging_utils import configure_service_logging, create_service_logger

__all__ = [
    "configure_service_logging",
    "create_service_logger",
]
