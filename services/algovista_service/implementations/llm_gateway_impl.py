"""LLM gateway: the only path from the HTTP layer to the upstream model.

Each call builds a chat-completions payload, runs the retry-protected network
call plus validation as one operation in the single-flight queue, and returns
a validated response model.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from algovista_service_libs.logging_utils import create_service_logger

from services.algovista_service.api_models import (
    ResponseKind,
    SolutionStep,
    SolveRequest,
    SolveResponse,
    VisualizationResponse,
    VisualizationType,
    VisualizeRequest,
)
from services.algovista_service.config import Settings
from services.algovista_service.metrics import get_metrics
from services.algovista_service.prompt_utils import (
    TUTOR_SYSTEM_PROMPT,
    build_chat_payload,
    build_messages,
    compute_cache_key,
    format_solve_prompt,
    format_visualize_prompt,
)
from services.algovista_service.protocols import (
    LLMClientProtocol,
    LLMGatewayProtocol,
    RequestQueueProtocol,
    ResponseCacheProtocol,
    RetryManagerProtocol,
)
from services.algovista_service.response_formats import (
    generate_solve_format,
    generate_visualization_format,
)
from services.algovista_service.response_validator import validate_llm_response

logger = create_service_logger("algovista_service.llm_gateway")

FALLBACK_FINAL_ANSWER = "Unable to process the equation due to an error."


def build_fallback_solve_response(error_message: str) -> SolveResponse:
    """Placeholder solution whose single step records the failure."""
    step = SolutionStep(
        step=1,
        action="Error occurred",
        equation="N/A",
        explanation=(
            f"An error occurred while processing the equation: {error_message}. "
            "Please ensure the LLM server is running and try again."
        ),
    )
    response = SolveResponse(solution=[step.model_dump()], final_answer=FALLBACK_FINAL_ANSWER)
    response._is_fallback = True
    return response


class LLMGatewayImpl(LLMGatewayProtocol):
    """Builds upstream requests and routes them through retry, queue and validator."""

    def __init__(
        self,
        client: LLMClientProtocol,
        queue: RequestQueueProtocol,
        retry_manager: RetryManagerProtocol,
        settings: Settings,
        cache: Optional[ResponseCacheProtocol] = None,
    ):
        self.client = client
        self.queue = queue
        self.retry_manager = retry_manager
        self.settings = settings
        self.cache = cache
        self._metrics = get_metrics()

    async def solve(self, request: SolveRequest) -> SolveResponse:
        """Return a validated solution; any failure yields the fallback solution."""
        try:
            return await self._generate(
                kind=ResponseKind.SOLVE,
                equation=request.equation,
                visualization_type=request.visualization_type,
                user_prompt=format_solve_prompt(
                    equation=request.equation,
                    visualization_type=request.visualization_type,
                ),
                response_format=generate_solve_format(),
            )
        except Exception as e:
            logger.error(
                f"Solve request failed, returning fallback solution: {e}",
                error_type=type(e).__name__,
            )
            self._metrics["solve_fallbacks_total"].inc()
            return build_fallback_solve_response(str(e))

    async def visualize(self, request: VisualizeRequest) -> VisualizationResponse:
        """Return a validated visualization specification. Errors propagate."""
        return await self._generate(
            kind=ResponseKind.VISUALIZATION,
            equation=request.equation,
            visualization_type=request.visualization_type,
            user_prompt=format_visualize_prompt(
                equation=request.equation,
                visualization_type=request.visualization_type,
            ),
            response_format=generate_visualization_format(),
        )

    async def _generate(
        self,
        *,
        kind: ResponseKind,
        equation: str,
        visualization_type: Optional[VisualizationType],
        user_prompt: str,
        response_format: Dict[str, Any],
    ) -> Any:
        cache_key: Optional[str] = None
        if self.cache is not None:
            cache_key = compute_cache_key(
                kind=kind, equation=equation, visualization_type=visualization_type
            )
            cached = await self.cache.get(cache_key)
            if cached is not None:
                logger.info(f"Serving {kind.value} response from cache")
                return validate_llm_response(cached, kind)

        system_prompt = TUTOR_SYSTEM_PROMPT if self.settings.LLM_SYSTEM_PROMPT_ENABLED else None
        payload = build_chat_payload(
            model=self.settings.LLM_MODEL,
            messages=build_messages(user_prompt, system_prompt),
            response_format=response_format,
            temperature=self.settings.LLM_TEMPERATURE,
            max_tokens=self.settings.LLM_MAX_TOKENS,
        )

        async def _call_and_validate() -> Any:
            content = await self.retry_manager.with_retry(
                self.client.complete,
                operation_name=f"llm_{kind.value}",
                payload=payload,
            )
            return validate_llm_response(content, kind)

        try:
            validated = await self.queue.enqueue(
                _call_and_validate, operation_name=f"llm_{kind.value}"
            )
        except Exception:
            self._metrics["llm_requests_total"].labels(kind=kind.value, status="failed").inc()
            raise

        self._metrics["llm_requests_total"].labels(kind=kind.value, status="success").inc()
        logger.info(f"Upstream {kind.value} request succeeded")

        if self.cache is not None and cache_key is not None:
            await self.cache.set(cache_key, validated.model_dump(exclude_unset=True))

        return validated
