"""Health check and metrics routes for the AlgoVista equation service."""

from typing import Any, Dict

from algovista_service_libs.logging_utils import create_service_logger
from dishka import FromDishka
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from quart import Blueprint, Response, jsonify
from quart_dishka import inject

from services.algovista_service.config import Settings
from services.algovista_service.protocols import RequestQueueProtocol, ResponseCacheProtocol

health_bp = Blueprint("health", __name__)


@health_bp.route("/healthz", methods=["GET"])
@inject
async def health_check(
    settings: FromDishka[Settings],
    queue: FromDishka[RequestQueueProtocol],
    cache: FromDishka[ResponseCacheProtocol],
) -> tuple[Response, int]:
    """Health check endpoint."""
    logger = create_service_logger("algovista_service.api.health")
    logger.debug("Health check requested")

    upstream_configured = bool(settings.LLM_API_ENDPOINT.strip())
    health_status: Dict[str, Any] = {
        "service": settings.SERVICE_NAME,
        "status": "healthy" if upstream_configured else "unhealthy",
        "message": (
            "AlgoVista service is healthy"
            if upstream_configured
            else "AlgoVista service is unhealthy"
        ),
        "environment": settings.ENVIRONMENT.value,
        "checks": {"service_responsive": True, "upstream_configured": upstream_configured},
        "upstream": {
            "model": settings.LLM_MODEL,
            "timeout_seconds": settings.LLM_REQUEST_TIMEOUT_SECONDS,
            "max_attempts": settings.LLM_MAX_ATTEMPTS,
        },
        "queue": dict(queue.stats()),
    }

    if settings.RESPONSE_CACHE_ENABLED:
        health_status["cache"] = await cache.get_stats()

    if not upstream_configured:
        health_status["warnings"] = ["LLM_API_ENDPOINT is not configured"]

    status_code = 200 if upstream_configured else 503
    return jsonify(health_status), status_code


@health_bp.route("/metrics", methods=["GET"])
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    logger = create_service_logger("algovista_service.api.health")
    try:
        metrics_output = generate_latest()
        return Response(metrics_output, content_type=CONTENT_TYPE_LATEST)
    except Exception as e:
        logger.exception("Error generating metrics")
        return Response(f"Error generating metrics: {str(e)}", status=500)
