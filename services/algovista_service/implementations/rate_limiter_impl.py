"""Rate limiter implementation using an in-process fixed window."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Callable, Dict

from algovista_service_libs.logging_utils import create_service_logger

from services.algovista_service.config import Settings
from services.algovista_service.exceptions import RateLimitExceededError
from services.algovista_service.metrics import get_metrics
from services.algovista_service.protocols import RateLimiterProtocol

logger = create_service_logger("algovista_service.rate_limiter")


@dataclass
class _Window:
    started_at: float
    count: int = 0


class RateLimiterImpl(RateLimiterProtocol):
    """Fixed-window request counter per client key.

    State lives in the process, which matches the single-worker deployment of
    the service.
    """

    def __init__(self, settings: Settings, clock: Callable[[], float] = time.monotonic):
        """
        Initialize rate limiter.

        Args:
            settings: Service settings (window length and request budget)
            clock: Monotonic time source (replaceable in tests)
        """
        self.limit = settings.RATE_LIMIT_MAX_REQUESTS
        self.window_seconds = settings.RATE_LIMIT_WINDOW_SECONDS
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._metrics = get_metrics()

    def _current_window(self, key: str) -> _Window:
        now = self._clock()
        window = self._windows.get(key)
        if window is None or now - window.started_at >= self.window_seconds:
            window = _Window(started_at=now)
            self._windows[key] = window
            self._prune(now)
        return window

    def _prune(self, now: float) -> None:
        expired = [
            key
            for key, window in self._windows.items()
            if now - window.started_at >= self.window_seconds
        ]
        for key in expired:
            del self._windows[key]

    async def check_rate_limit(self, key: str) -> tuple[bool, int]:
        """
        Check whether another request from key fits in the current window.

        Returns:
            Tuple of (allowed, remaining_requests)
        """
        window = self._current_window(key)
        remaining = self.limit - window.count
        return remaining > 0, max(remaining, 0)

    async def increment(self, key: str) -> int:
        """Count one request for key and return the new count."""
        window = self._current_window(key)
        window.count += 1
        return window.count

    async def hit(self, client_key: str) -> None:
        """
        Record one request for client_key.

        Raises:
            RateLimitExceededError: When the budget of the current window is spent
        """
        allowed, _ = await self.check_rate_limit(client_key)
        if not allowed:
            window = self._windows[client_key]
            retry_after = math.ceil(window.started_at + self.window_seconds - self._clock())
            self._metrics["rate_limit_rejections_total"].inc()
            logger.warning(
                "Rate limit exceeded",
                client_key=client_key,
                limit=self.limit,
                window_seconds=self.window_seconds,
                retry_after=retry_after,
            )
            raise RateLimitExceededError(
                retry_after_seconds=max(retry_after, 1),
                limit=self.limit,
                window_seconds=self.window_seconds,
            )

        await self.increment(client_key)

    async def reset(self, key: str) -> bool:
        """
        Reset the window of key.

        Returns:
            True if a window existed, False otherwise
        """
        return self._windows.pop(key, None) is not None


def create_rate_limit_key(action: str, identifier: str, namespace: str = "algovista") -> str:
    """
    Create a standardized rate limit key.

    Args:
        action: The action being rate limited (e.g., "api")
        identifier: The identifier to rate limit (e.g., client IP address)
        namespace: The namespace for the key (default: "algovista")

    Returns:
        Formatted rate limit key
    """
    return f"{namespace}:rate_limit:{action}:{identifier}"
