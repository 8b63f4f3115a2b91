"""Shared metrics module for the AlgoVista equation service."""

from __future__ import annotations

from typing import Any

from algovista_service_libs.logging_utils import create_service_logger
from prometheus_client import REGISTRY, Counter, Gauge, Histogram

logger = create_service_logger("algovista_service.metrics")

_metrics: dict[str, Any] | None = None


def get_metrics() -> dict[str, Any]:
    """Get or create shared metrics instances (Singleton Pattern)."""
    global _metrics
    if _metrics is None:
        logger.info("Initializing shared AlgoVista service metrics registry.")
        _metrics = _create_metrics()
    return _metrics


def _create_metrics() -> dict[str, Any]:
    """Create all Prometheus metrics for the AlgoVista equation service."""
    return {
        "http_requests_total": Counter(
            "algovista_http_requests_total",
            "Total HTTP requests to the AlgoVista service",
            ["method", "endpoint", "status_code"],
            registry=REGISTRY,
        ),
        "llm_requests_total": Counter(
            "algovista_llm_requests_total",
            "Total gateway calls to the upstream LLM by response kind and outcome",
            ["kind", "status"],
            registry=REGISTRY,
        ),
        "llm_response_duration_seconds": Histogram(
            "algovista_llm_response_duration_seconds",
            "Upstream LLM attempt duration in seconds",
            ["kind"],
            buckets=(0.1, 0.5, 1, 2.5, 5, 10, 30, 60, 120, 300),
            registry=REGISTRY,
        ),
        "llm_retries_total": Counter(
            "algovista_llm_retries_total",
            "Retried upstream attempts",
            ["operation"],
            registry=REGISTRY,
        ),
        "queue_depth": Gauge(
            "algovista_queue_depth",
            "Operations waiting in the single-flight queue",
            registry=REGISTRY,
        ),
        "queue_wait_seconds": Histogram(
            "algovista_queue_wait_seconds",
            "Time an operation waited in the queue before executing",
            buckets=(0.01, 0.1, 0.5, 1, 5, 10, 30, 60, 300),
            registry=REGISTRY,
        ),
        "validation_failures_total": Counter(
            "algovista_validation_failures_total",
            "LLM responses rejected by the response validator",
            ["kind", "reason"],
            registry=REGISTRY,
        ),
        "solve_fallbacks_total": Counter(
            "algovista_solve_fallbacks_total",
            "Solve requests answered with the fallback payload",
            registry=REGISTRY,
        ),
        "cache_lookups_total": Counter(
            "algovista_cache_lookups_total",
            "Look-aside cache lookups by result",
            ["result"],
            registry=REGISTRY,
        ),
        "rate_limit_rejections_total": Counter(
            "algovista_rate_limit_rejections_total",
            "Requests rejected by the rate limiter",
            registry=REGISTRY,
        ),
    }
