"""Startup and shutdown procedures for the AlgoVista equation service."""

from __future__ import annotations

from algovista_service_libs.logging_utils import configure_service_logging, create_service_logger
from dishka import make_async_container
from quart import Quart
from quart_cors import cors
from quart_dishka import QuartDishka

from services.algovista_service.config import Settings
from services.algovista_service.di import AlgoVistaServiceProvider
from services.algovista_service.metrics import get_metrics


def setup_cors(app: Quart, settings: Settings) -> Quart:
    """Allow the browser UI on the configured origins to call the API."""
    return cors(
        app,
        allow_origin=set(settings.CORS_ALLOWED_ORIGINS),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Correlation-ID"],
        expose_headers=["Retry-After"],
    )


async def initialize_services(app: Quart, settings: Settings) -> None:
    """Initialize logging, configuration checks and the DI container.

    Raises:
        ConfigurationError: When LLM_API_ENDPOINT is not set; the server refuses to start
    """
    # Configure centralized structured logging before any logging operations
    configure_service_logging(
        settings.SERVICE_NAME,
        environment=settings.ENVIRONMENT.value,
        log_level=settings.LOG_LEVEL,
    )
    logger = create_service_logger("algovista_service.startup")

    logger.info(f"Starting {settings.SERVICE_NAME} initialization...")

    endpoint = settings.require_llm_endpoint()
    logger.info(f"Upstream LLM endpoint: {endpoint} (model {settings.LLM_MODEL})")

    # Initialize metrics
    _ = get_metrics()
    logger.info("Metrics initialized")

    # Create and setup DI container
    container = make_async_container(AlgoVistaServiceProvider(settings))
    QuartDishka(app=app, container=container)
    logger.info("Dependency injection container initialized")

    # Store container reference for cleanup
    app.extensions["dishka_container"] = container

    logger.info(f"{settings.SERVICE_NAME} initialization complete")


async def shutdown_services(app: Quart) -> None:
    """Gracefully shutdown all services."""
    logger = create_service_logger("algovista_service.startup")
    logger.info("Starting graceful shutdown...")

    # Closing the container drains the request queue and closes the HTTP session
    if "dishka_container" in app.extensions:
        container = app.extensions.pop("dishka_container")
        await container.close()
        logger.info("DI container closed")

    logger.info("Graceful shutdown complete")
