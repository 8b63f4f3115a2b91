"""Equation API routes: solve, visualize and the visualization type listing."""

from __future__ import annotations

import uuid
from typing import Any, Type, TypeVar

from algovista_service_libs.logging_utils import bind_request_context, create_service_logger
from dishka import FromDishka
from pydantic import BaseModel, ValidationError
from quart import Blueprint, Response, g, jsonify, request
from quart_dishka import inject

from services.algovista_service.api_models import (
    SolveRequest,
    VisualizationType,
    VisualizationTypesResponse,
    VisualizeRequest,
)
from services.algovista_service.config import Settings
from services.algovista_service.exceptions import RequestValidationError
from services.algovista_service.implementations.rate_limiter_impl import create_rate_limit_key
from services.algovista_service.metrics import get_metrics
from services.algovista_service.protocols import LLMGatewayProtocol, RateLimiterProtocol

logger = create_service_logger("algovista_service.api")

equation_bp = Blueprint("equations", __name__)

RequestModelT = TypeVar("RequestModelT", bound=BaseModel)


def _bind_correlation_id() -> uuid.UUID:
    """Use X-Correlation-ID when it is a valid UUID, otherwise generate one."""
    correlation_header = request.headers.get("X-Correlation-ID")
    correlation_id: uuid.UUID | None = None
    if correlation_header:
        try:
            correlation_id = uuid.UUID(correlation_header)
        except ValueError:
            logger.warning(f"Ignoring invalid X-Correlation-ID header: {correlation_header}")
    if correlation_id is None:
        correlation_id = uuid.uuid4()

    g.correlation_id = correlation_id
    bind_request_context(str(correlation_id), path=request.path)
    return correlation_id


async def _enforce_rate_limit(settings: Settings, rate_limiter: RateLimiterProtocol) -> None:
    if not settings.RATE_LIMIT_ENABLED:
        return
    client = request.remote_addr or "unknown"
    await rate_limiter.hit(create_rate_limit_key("api", client))


async def _parse_body(model: Type[RequestModelT]) -> RequestModelT:
    """Validate the JSON body against model or raise RequestValidationError."""
    data = await request.get_json(silent=True)
    allowed_types = [t.value for t in VisualizationType]

    if not isinstance(data, dict):
        raise RequestValidationError(
            "Request body must be a JSON object",
            details={"received": data, "allowed_visualization_types": allowed_types},
        )

    try:
        return model.model_validate(data)
    except ValidationError as e:
        errors: list[dict[str, Any]] = [
            {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
            for error in e.errors(include_url=False)
        ]
        raise RequestValidationError(
            f"Invalid request: {errors[0]['field']}: {errors[0]['message']}",
            details={
                "errors": errors,
                "received": data,
                "allowed_visualization_types": allowed_types,
            },
        ) from e


def _record(status_code: int) -> None:
    get_metrics()["http_requests_total"].labels(
        method=request.method, endpoint=request.path, status_code=str(status_code)
    ).inc()


@equation_bp.route("/solve", methods=["POST"])
@inject
async def solve_equation(
    gateway: FromDishka[LLMGatewayProtocol],
    rate_limiter: FromDishka[RateLimiterProtocol],
    settings: FromDishka[Settings],
) -> tuple[Response, int]:
    """Return a step-by-step solution.

    Upstream failures never surface as errors here: the gateway substitutes a
    single-step fallback solution, sent with SOLVE_FALLBACK_STATUS_CODE.
    """
    _bind_correlation_id()
    await _enforce_rate_limit(settings, rate_limiter)
    solve_request = await _parse_body(SolveRequest)

    logger.info(
        "Processing solve request",
        visualization_type=solve_request.visualization_type,
        equation_length=len(solve_request.equation),
    )
    result = await gateway.solve(solve_request)

    status_code = settings.SOLVE_FALLBACK_STATUS_CODE if result.is_fallback else 200
    _record(status_code)
    return jsonify(result.model_dump(exclude_unset=True)), status_code


@equation_bp.route("/visualize", methods=["POST"])
@inject
async def visualize_equation(
    gateway: FromDishka[LLMGatewayProtocol],
    rate_limiter: FromDishka[RateLimiterProtocol],
    settings: FromDishka[Settings],
) -> tuple[Response, int]:
    """Return a 3D visualization specification; failures become error envelopes."""
    _bind_correlation_id()
    await _enforce_rate_limit(settings, rate_limiter)
    visualize_request = await _parse_body(VisualizeRequest)

    logger.info(
        "Processing visualize request",
        visualization_type=visualize_request.visualization_type,
        equation_length=len(visualize_request.equation),
    )
    result = await gateway.visualize(visualize_request)

    _record(200)
    return jsonify(result.model_dump(exclude_unset=True)), 200


@equation_bp.route("/visualization-types", methods=["GET"])
async def list_visualization_types() -> tuple[Response, int]:
    """List the accepted visualization_type values."""
    response = VisualizationTypesResponse(
        visualization_types=[t.value for t in VisualizationType]
    )
    _record(200)
    return jsonify(response.model_dump()), 200
