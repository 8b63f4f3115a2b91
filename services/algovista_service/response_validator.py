"""Response validation utilities for the AlgoVista equation service.

Turns the raw text returned by the LLM into one of the two response models.
String content is normalised before parsing because local models routinely
wrap JSON in code fences, wrap lines inside strings and leave trailing commas.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Literal, overload

from algovista_service_libs.logging_utils import create_service_logger
from pydantic import BaseModel, ValidationError

from services.algovista_service.api_models import (
    ResponseKind,
    SolveResponse,
    VisualizationResponse,
)
from services.algovista_service.exceptions import MalformedResponseError, SchemaViolationError
from services.algovista_service.metrics import get_metrics

logger = create_service_logger("algovista_service.response_validator")

# Pre-compiled regex patterns
CODE_FENCE_PATTERN = re.compile(r"^\s*```[a-zA-Z]*\s*|\s*```\s*$")
WHITESPACE_PATTERN = re.compile(r"\s+")
TRAILING_COMMA_PATTERN = re.compile(r",\s*([}\]])")

_RESPONSE_MODELS: Dict[ResponseKind, type[BaseModel]] = {
    ResponseKind.SOLVE: SolveResponse,
    ResponseKind.VISUALIZATION: VisualizationResponse,
}


def normalize_llm_content(content: str) -> str:
    """Apply the pre-parse clean-up policy to string content.

    1. strip leading/trailing code-fence markers
    2. collapse whitespace and newlines to single spaces
    3. drop trailing commas before ``}`` or ``]``
    """
    cleaned = CODE_FENCE_PATTERN.sub("", content)
    cleaned = WHITESPACE_PATTERN.sub(" ", cleaned).strip()
    return TRAILING_COMMA_PATTERN.sub(r"\1", cleaned)


def parse_llm_content(raw_content: str | Dict[str, Any]) -> Any:
    """Parse raw LLM content into Python data.

    Raises:
        MalformedResponseError: If the normalised content is not valid JSON
    """
    if not isinstance(raw_content, str):
        return raw_content

    try:
        return json.loads(normalize_llm_content(raw_content))
    except json.JSONDecodeError as e:
        raise MalformedResponseError(
            f"Invalid JSON format: {e}", raw_excerpt=raw_content[:200]
        ) from e


@overload
def validate_llm_response(
    raw_content: str | Dict[str, Any], kind: Literal[ResponseKind.SOLVE]
) -> SolveResponse: ...


@overload
def validate_llm_response(
    raw_content: str | Dict[str, Any], kind: Literal[ResponseKind.VISUALIZATION]
) -> VisualizationResponse: ...


def validate_llm_response(
    raw_content: str | Dict[str, Any], kind: ResponseKind
) -> SolveResponse | VisualizationResponse:
    """Validate raw LLM content against the contract selected by ``kind``.

    Args:
        raw_content: JSON text (possibly fenced) or an already-parsed dict
        kind: Which response contract to enforce

    Returns:
        The validated response model

    Raises:
        MalformedResponseError: On JSON parse failures
        SchemaViolationError: When a required field is missing or mistyped
    """
    metrics = get_metrics()

    try:
        parsed = parse_llm_content(raw_content)
    except MalformedResponseError:
        metrics["validation_failures_total"].labels(kind=kind.value, reason="malformed").inc()
        raise

    if not isinstance(parsed, dict):
        metrics["validation_failures_total"].labels(kind=kind.value, reason="schema").inc()
        raise SchemaViolationError(
            f"Expected a JSON object at the top level, got {type(parsed).__name__}",
            field_path="<root>",
        )

    model = _RESPONSE_MODELS[kind]
    try:
        validated = model.model_validate(parsed)
    except ValidationError as e:
        metrics["validation_failures_total"].labels(kind=kind.value, reason="schema").inc()
        field_path = _first_error_path(e)
        raise SchemaViolationError(
            f"Missing or invalid required field: {field_path} ({_format_validation_errors(e)})",
            field_path=field_path,
        ) from e

    logger.debug(f"Validated {kind.value} response")
    return validated  # type: ignore[return-value]


def validate_solve_response(raw_content: str | Dict[str, Any]) -> SolveResponse:
    return validate_llm_response(raw_content, ResponseKind.SOLVE)


def validate_visualization_response(raw_content: str | Dict[str, Any]) -> VisualizationResponse:
    return validate_llm_response(raw_content, ResponseKind.VISUALIZATION)


def _dotted_path(loc: tuple[int | str, ...]) -> str:
    return ".".join(str(part) for part in loc) or "<root>"


def _first_error_path(e: ValidationError) -> str:
    return _dotted_path(e.errors()[0]["loc"])


def _format_validation_errors(e: ValidationError) -> str:
    """Format pydantic errors as ``path: message`` pairs."""
    return "; ".join(f"{_dotted_path(error['loc'])}: {error['msg']}" for error in e.errors())
