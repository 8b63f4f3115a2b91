"""Dependency injection configuration for the AlgoVista equation service using Dishka."""

from __future__ import annotations

from typing import AsyncIterator

from aiohttp import ClientSession
from dishka import Provider, Scope, provide

from services.algovista_service.config import Settings, settings
from services.algovista_service.exceptions import TransientNetworkError
from services.algovista_service.implementations.llm_client_impl import ChatCompletionsClientImpl
from services.algovista_service.implementations.llm_gateway_impl import LLMGatewayImpl
from services.algovista_service.implementations.local_cache_manager_impl import (
    LocalCacheManagerImpl,
)
from services.algovista_service.implementations.rate_limiter_impl import RateLimiterImpl
from services.algovista_service.implementations.request_queue_impl import (
    SingleFlightRequestQueue,
)
from services.algovista_service.implementations.retry_manager_impl import RetryManagerImpl
from services.algovista_service.protocols import (
    LLMClientProtocol,
    LLMGatewayProtocol,
    RateLimiterProtocol,
    RequestQueueProtocol,
    ResponseCacheProtocol,
    RetryManagerProtocol,
)


class AlgoVistaServiceProvider(Provider):
    """Dishka provider for AlgoVista service dependencies.

    Everything is APP scoped: the queue in particular must be a single
    instance so that every request shares the same FIFO and busy flag.
    """

    def __init__(self, service_settings: Settings | None = None) -> None:
        super().__init__()
        self._settings = service_settings or settings

    @provide(scope=Scope.APP)
    def provide_settings(self) -> Settings:
        """Provide service settings."""
        return self._settings

    @provide(scope=Scope.APP)
    async def provide_http_session(self) -> AsyncIterator[ClientSession]:
        """Provide the shared HTTP session, closed when the container closes."""
        session = ClientSession()
        yield session
        await session.close()

    @provide(scope=Scope.APP)
    def provide_retry_manager(self, settings: Settings) -> RetryManagerProtocol:
        """Provide retry manager; only transient network failures are retried."""
        return RetryManagerImpl(settings, retryable_exceptions=(TransientNetworkError,))

    @provide(scope=Scope.APP)
    async def provide_request_queue(self) -> AsyncIterator[RequestQueueProtocol]:
        """Provide the process-wide single-flight queue."""
        queue = SingleFlightRequestQueue()
        yield queue
        await queue.close()

    @provide(scope=Scope.APP)
    def provide_llm_client(self, session: ClientSession, settings: Settings) -> LLMClientProtocol:
        """Provide chat-completions client."""
        return ChatCompletionsClientImpl(session, settings)

    @provide(scope=Scope.APP)
    def provide_response_cache(self, settings: Settings) -> ResponseCacheProtocol:
        """Provide in-memory response cache."""
        return LocalCacheManagerImpl(settings)

    @provide(scope=Scope.APP)
    def provide_rate_limiter(self, settings: Settings) -> RateLimiterProtocol:
        """Provide per-client rate limiter."""
        return RateLimiterImpl(settings)

    @provide(scope=Scope.APP)
    def provide_llm_gateway(
        self,
        client: LLMClientProtocol,
        queue: RequestQueueProtocol,
        retry_manager: RetryManagerProtocol,
        cache: ResponseCacheProtocol,
        settings: Settings,
    ) -> LLMGatewayProtocol:
        """Provide the LLM gateway; the cache is attached only when enabled."""
        return LLMGatewayImpl(
            client=client,
            queue=queue,
            retry_manager=retry_manager,
            settings=settings,
            cache=cache if settings.RESPONSE_CACHE_ENABLED else None,
        )
