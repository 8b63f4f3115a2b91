"""Retry manager implementation for upstream LLM requests."""

import asyncio
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from algovista_service_libs.logging_utils import create_service_logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from services.algovista_service.config import Settings
from services.algovista_service.metrics import get_metrics
from services.algovista_service.protocols import RetryManagerProtocol

logger = create_service_logger("algovista_service.retry_manager")

SleepFn = Callable[[float], Awaitable[None]]


class RetryManagerImpl(RetryManagerProtocol):
    """Tenacity-based retry manager with capped exponential backoff.

    The delay before attempt ``i + 1`` (0-indexed ``i``) is
    ``min(base * 2**i, max_delay)``. Nothing is slept after the final attempt.
    """

    def __init__(
        self,
        settings: Settings,
        retryable_exceptions: Tuple[Type[BaseException], ...] = (Exception,),
        sleep: SleepFn = asyncio.sleep,
    ):
        """Initialize retry manager.

        Args:
            settings: Service settings
            retryable_exceptions: Only these exception types trigger another attempt
            sleep: Awaitable sleep used between attempts (replaceable in tests)
        """
        self.settings = settings
        self.retryable_exceptions = retryable_exceptions
        self._sleep = sleep
        self._metrics = get_metrics()

    async def with_retry(
        self,
        operation: Callable[..., Awaitable[Any]],
        operation_name: str,
        max_attempts: Optional[int] = None,
        **kwargs: Any,
    ) -> Any:
        """Execute operation with retry logic.

        Args:
            operation: Async operation to execute
            operation_name: Name of operation for logging
            max_attempts: Override for ``Settings.LLM_MAX_ATTEMPTS``
            **kwargs: Arguments to pass to operation

        Returns:
            Result from operation

        Raises:
            The error of the final attempt, unchanged, once attempts are exhausted.
            Non-retryable errors propagate immediately.
        """
        attempts = max_attempts if max_attempts is not None else self.settings.LLM_MAX_ATTEMPTS
        if attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        def _before_sleep(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
            self._metrics["llm_retries_total"].labels(operation=operation_name).inc()
            logger.warning(
                f"{operation_name} attempt {retry_state.attempt_number}/{attempts} failed, "
                f"retrying in {delay:.1f}s: {error}"
            )

        retry_config = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(
                multiplier=self.settings.RETRY_BASE_DELAY_SECONDS,
                max=self.settings.RETRY_MAX_DELAY_SECONDS,
            ),
            retry=retry_if_exception_type(self.retryable_exceptions),
            before_sleep=_before_sleep,
            sleep=self._sleep,
            reraise=True,
        )

        attempt_number = 0

        async for attempt in retry_config:
            with attempt:
                attempt_number += 1
                result = await operation(**kwargs)

                if attempt_number > 1:
                    logger.info(
                        f"Successfully completed {operation_name} after {attempt_number} attempts"
                    )

                return result

        # Unreachable with reraise=True
        raise RuntimeError(f"Retry logic failed for {operation_name}")
