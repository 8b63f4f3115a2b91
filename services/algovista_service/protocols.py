"""Protocol definitions for the AlgoVista equation service."""

from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, TypeVar

from services.algovista_service.api_models import (
    SolveRequest,
    SolveResponse,
    VisualizationResponse,
    VisualizeRequest,
)
from services.algovista_service.queue_models import QueueStats

T = TypeVar("T")


class RetryManagerProtocol(Protocol):
    """Protocol for retrying upstream operations with exponential backoff."""

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
            max_attempts: Override for the configured attempt count
            **kwargs: Arguments to pass to operation

        Returns:
            Result of the first successful attempt

        Raises:
            The last error unchanged once attempts are exhausted
        """
        ...


class RequestQueueProtocol(Protocol):
    """Protocol for the queue that serialises upstream calls."""

    async def enqueue(
        self, operation: Callable[[], Awaitable[T]], operation_name: str = "operation"
    ) -> T:
        """Run operation once every previously enqueued operation has settled.

        Returns:
            The operation's result

        Raises:
            Whatever the operation raised
        """
        ...

    def stats(self) -> QueueStats:
        """Return a snapshot of queue state."""
        ...

    async def close(self) -> None:
        """Cancel waiting callers and let the in-flight operation finish."""
        ...


class LLMClientProtocol(Protocol):
    """Protocol for a single chat-completions round trip."""

    async def complete(self, payload: Dict[str, Any]) -> str | Dict[str, Any]:
        """POST payload to the upstream endpoint and return the first choice's content.

        Raises:
            TransientNetworkError: Timeouts, connection failures, 429 and 5xx
            UpstreamRequestError: Other non-2xx statuses or a malformed envelope
        """
        ...


class ResponseCacheProtocol(Protocol):
    """Protocol for the look-aside cache of validated LLM responses."""

    async def get(self, key: str) -> Dict[str, Any] | None:
        """Return the cached payload or None when missing or expired."""
        ...

    async def set(self, key: str, value: Dict[str, Any], ttl: int | None = None) -> None:
        """Store payload under key for ttl seconds (service default when None)."""
        ...

    async def get_stats(self) -> Dict[str, Any]:
        """Return cache statistics."""
        ...


class RateLimiterProtocol(Protocol):
    """Protocol for per-client request budgets."""

    async def hit(self, client_key: str) -> None:
        """Record one request for client_key.

        Raises:
            RateLimitExceededError: When the client's budget for the window is spent
        """
        ...


class LLMGatewayProtocol(Protocol):
    """Protocol for the public solve/visualize operations."""

    async def solve(self, request: SolveRequest) -> SolveResponse:
        """Return a validated solution, or the fallback solution on any failure."""
        ...

    async def visualize(self, request: VisualizeRequest) -> VisualizationResponse:
        """Return a validated visualization specification.

        Raises:
            AlgoVistaServiceError: On any upstream or validation failure
        """
        ...
