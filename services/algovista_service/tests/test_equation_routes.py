"""
End-to-end tests for the equation routes.

The app is assembled with the real gateway, queue, retry manager, client and
validator; only the upstream chat-completions endpoint is faked with
aioresponses and backoff sleeps are recorded instead of awaited.
"""

from __future__ import annotations

import asyncio
import copy
import uuid
from collections.abc import AsyncGenerator
from typing import Any, Callable, Dict

import aiohttp
import pytest
from aioresponses import aioresponses
from dishka import Provider, Scope, make_async_container
from quart import Quart
from quart.typing import TestClientProtocol as QuartTestClient
from quart_dishka import QuartDishka

from services.algovista_service.api.equation_routes import equation_bp
from services.algovista_service.api_models import VisualizationType
from services.algovista_service.config import Settings
from services.algovista_service.error_handlers import register_error_handlers
from services.algovista_service.exceptions import TransientNetworkError
from services.algovista_service.implementations.llm_client_impl import ChatCompletionsClientImpl
from services.algovista_service.implementations.llm_gateway_impl import LLMGatewayImpl
from services.algovista_service.implementations.rate_limiter_impl import RateLimiterImpl
from services.algovista_service.implementations.request_queue_impl import (
    SingleFlightRequestQueue,
)
from services.algovista_service.implementations.retry_manager_impl import RetryManagerImpl
from services.algovista_service.protocols import LLMGatewayProtocol, RateLimiterProtocol
from services.algovista_service.startup_setup import setup_cors

LLM_ENDPOINT = "http://llm.test/v1/chat/completions"
GRADIENT = VisualizationType.MULTIVARIABLE_GRADIENT.value
UI_ORIGIN = "http://localhost:3000"


async def build_client(
    settings: Settings, sleep: Any
) -> AsyncGenerator[QuartTestClient, None]:
    """Assemble the app with the real pipeline wired through dishka."""
    session = aiohttp.ClientSession()
    queue = SingleFlightRequestQueue()
    gateway = LLMGatewayImpl(
        client=ChatCompletionsClientImpl(session, settings),
        queue=queue,
        retry_manager=RetryManagerImpl(
            settings, retryable_exceptions=(TransientNetworkError,), sleep=sleep
        ),
        settings=settings,
    )
    rate_limiter = RateLimiterImpl(settings)

    provider = Provider()
    provider.provide(lambda: settings, scope=Scope.APP, provides=Settings)
    provider.provide(lambda: gateway, scope=Scope.APP, provides=LLMGatewayProtocol)
    provider.provide(lambda: rate_limiter, scope=Scope.APP, provides=RateLimiterProtocol)

    app = Quart(__name__)
    app.config.update({"TESTING": True})
    register_error_handlers(app)
    setup_cors(app, settings)
    app.register_blueprint(equation_bp, url_prefix="/api")

    container = make_async_container(provider)
    QuartDishka(app=app, container=container)

    async with app.test_client() as client:
        yield client

    await container.close()
    await queue.close()
    await session.close()


@pytest.fixture
async def app_client(
    test_settings: Settings, sleep_recorder: Any
) -> AsyncGenerator[QuartTestClient, None]:
    async for client in build_client(test_settings, sleep_recorder):
        yield client


class TestSolveRoute:
    async def test_valid_upstream_solution_is_returned_unchanged(
        self,
        app_client: QuartTestClient,
        valid_solve_payload: Dict[str, Any],
        chat_completion: Callable[[Any], Dict[str, Any]],
    ) -> None:
        # Arrange
        expected = copy.deepcopy(valid_solve_payload)

        with aioresponses() as mocked:
            mocked.post(LLM_ENDPOINT, payload=chat_completion(valid_solve_payload))

            # Act
            response = await app_client.post(
                "/api/solve", json={"equation": "f(x) = x^2", "visualization_type": GRADIENT}
            )

        # Assert
        assert response.status_code == 200
        data = await response.get_json()
        assert data == expected
        assert len(data["solution"]) == 3

    async def test_upstream_500_on_every_attempt_yields_fallback(
        self, app_client: QuartTestClient, sleep_recorder: Any
    ) -> None:
        with aioresponses() as mocked:
            mocked.post(LLM_ENDPOINT, status=500, body="internal error", repeat=True)

            response = await app_client.post("/api/solve", json={"equation": "f(x) = x^2"})

            upstream_calls = len(next(iter(mocked.requests.values())))

        assert response.status_code == 200
        data = await response.get_json()
        assert len(data["solution"]) == 1
        assert "error" in data["solution"][0]["explanation"]
        assert data["final_answer"] == "Unable to process the equation due to an error."
        assert upstream_calls == 3
        assert sleep_recorder.delays == [1.0, 2.0]

    async def test_fallback_status_code_is_configurable(
        self, test_settings: Settings, sleep_recorder: Any
    ) -> None:
        settings = test_settings.model_copy(update={"SOLVE_FALLBACK_STATUS_CODE": 500})

        async for client in build_client(settings, sleep_recorder):
            with aioresponses() as mocked:
                mocked.post(LLM_ENDPOINT, status=503, repeat=True)

                response = await client.post("/api/solve", json={"equation": "x = 1"})

            assert response.status_code == 500
            data = await response.get_json()
            assert set(data) == {"solution", "final_answer"}

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"equation": ""},
            {"equation": "x" * 1001},
            {"equation": "x = 1", "visualization_type": "Topology"},
            ["x = 1"],
        ],
    )
    async def test_invalid_body_returns_400_envelope(
        self, app_client: QuartTestClient, body: Any
    ) -> None:
        response = await app_client.post("/api/solve", json=body)

        assert response.status_code == 400
        data = await response.get_json()
        assert data["error"] == "Validation Error"
        assert data["message"]
        assert data["details"]["error_code"] == "VALIDATION_ERROR"
        assert data["details"]["received"] == body
        assert GRADIENT in data["details"]["allowed_visualization_types"]


class TestVisualizeRoute:
    async def test_valid_visualization_is_returned_unchanged(
        self,
        app_client: QuartTestClient,
        valid_visualization_payload: Dict[str, Any],
        chat_completion: Callable[[Any], Dict[str, Any]],
    ) -> None:
        expected = copy.deepcopy(valid_visualization_payload)

        with aioresponses() as mocked:
            mocked.post(LLM_ENDPOINT, payload=chat_completion(valid_visualization_payload))

            response = await app_client.post(
                "/api/visualize",
                json={"equation": "f(x, y) = x^2 + y^2", "visualization_type": GRADIENT},
            )

        assert response.status_code == 200
        assert await response.get_json() == expected

    async def test_upstream_500_on_every_attempt_returns_error_envelope(
        self, app_client: QuartTestClient
    ) -> None:
        with aioresponses() as mocked:
            mocked.post(LLM_ENDPOINT, status=500, body="internal error", repeat=True)

            response = await app_client.post(
                "/api/visualize", json={"equation": "z = x*y", "visualization_type": GRADIENT}
            )

        assert response.status_code == 500
        data = await response.get_json()
        assert set(data) == {"error", "message", "details"}
        assert data["error"] == "LLM API Error"
        assert "500" in data["message"]
        assert data["details"]["upstream_status"] == 500

    async def test_missing_nested_field_is_identified_by_path(
        self,
        app_client: QuartTestClient,
        valid_visualization_payload: Dict[str, Any],
        chat_completion: Callable[[Any], Dict[str, Any]],
    ) -> None:
        del valid_visualization_payload["visualization_config"]["resolution"]["y"]

        with aioresponses() as mocked:
            mocked.post(LLM_ENDPOINT, payload=chat_completion(valid_visualization_payload))

            response = await app_client.post(
                "/api/visualize", json={"equation": "z = x*y", "visualization_type": GRADIENT}
            )

        assert response.status_code == 500
        data = await response.get_json()
        assert data["details"]["field"] == "visualization_config.resolution.y"
        assert "visualization_config.resolution.y" in data["message"]

    async def test_upstream_timeout_maps_to_408(self, app_client: QuartTestClient) -> None:
        with aioresponses() as mocked:
            mocked.post(LLM_ENDPOINT, exception=asyncio.TimeoutError(), repeat=True)

            response = await app_client.post(
                "/api/visualize", json={"equation": "z = x*y", "visualization_type": GRADIENT}
            )

        assert response.status_code == 408
        data = await response.get_json()
        assert data["error"] == "Request Timeout"
        assert data["details"]["error_code"] == "TIMEOUT"

    async def test_visualization_type_is_required(self, app_client: QuartTestClient) -> None:
        response = await app_client.post("/api/visualize", json={"equation": "z = x*y"})

        assert response.status_code == 400
        data = await response.get_json()
        assert data["details"]["errors"][0]["field"] == "visualization_type"

    async def test_correlation_id_header_is_echoed_in_error_details(
        self, app_client: QuartTestClient
    ) -> None:
        correlation_id = str(uuid.uuid4())

        response = await app_client.post(
            "/api/visualize",
            json={"equation": "z = x*y"},
            headers={"X-Correlation-ID": correlation_id},
        )

        data = await response.get_json()
        assert data["details"]["correlation_id"] == correlation_id


class TestRoutingAndLimits:
    async def test_visualization_types_are_listed(self, app_client: QuartTestClient) -> None:
        response = await app_client.get("/api/visualization-types")

        assert response.status_code == 200
        data = await response.get_json()
        assert data["visualization_types"] == [t.value for t in VisualizationType]

    async def test_unknown_route_returns_404_envelope(self, app_client: QuartTestClient) -> None:
        response = await app_client.get("/api/does-not-exist")

        assert response.status_code == 404
        data = await response.get_json()
        assert data["error"] == "Not Found"
        assert data["details"]["error_code"] == "RESOURCE_NOT_FOUND"

    async def test_wrong_method_returns_405_envelope(self, app_client: QuartTestClient) -> None:
        response = await app_client.get("/api/solve")

        assert response.status_code == 405
        data = await response.get_json()
        assert data["details"]["error_code"] == "METHOD_NOT_ALLOWED"

    async def test_rate_limit_returns_429_with_retry_after(
        self,
        test_settings: Settings,
        sleep_recorder: Any,
        valid_solve_payload: Dict[str, Any],
        chat_completion: Callable[[Any], Dict[str, Any]],
    ) -> None:
        settings = test_settings.model_copy(
            update={"RATE_LIMIT_ENABLED": True, "RATE_LIMIT_MAX_REQUESTS": 2}
        )

        async for client in build_client(settings, sleep_recorder):
            with aioresponses() as mocked:
                mocked.post(
                    LLM_ENDPOINT, payload=chat_completion(valid_solve_payload), repeat=True
                )

                statuses = [
                    (await client.post("/api/solve", json={"equation": "x = 1"})).status_code
                    for _ in range(2)
                ]
                limited = await client.post("/api/solve", json={"equation": "x = 1"})

            assert statuses == [200, 200]
            assert limited.status_code == 429
            assert int(limited.headers["Retry-After"]) > 0
            data = await limited.get_json()
            assert data["error"] == "Rate Limit Exceeded"
            assert data["details"]["retry_after"] == int(limited.headers["Retry-After"])
            assert data["details"]["limit"] == 2


class TestCrossOrigin:
    async def test_solve_response_allows_browser_origin(
        self,
        app_client: QuartTestClient,
        valid_solve_payload: Dict[str, Any],
        chat_completion: Callable[[Any], Dict[str, Any]],
    ) -> None:
        with aioresponses() as mocked:
            mocked.post(LLM_ENDPOINT, payload=chat_completion(valid_solve_payload))

            response = await app_client.post(
                "/api/solve", json={"equation": "x = 1"}, headers={"Origin": UI_ORIGIN}
            )

        assert response.status_code == 200
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    async def test_error_envelope_also_carries_cors_headers(
        self, app_client: QuartTestClient
    ) -> None:
        response = await app_client.post(
            "/api/solve", json={"equation": ""}, headers={"Origin": UI_ORIGIN}
        )

        assert response.status_code == 400
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    async def test_only_configured_origins_are_allowed(
        self, test_settings: Settings, sleep_recorder: Any
    ) -> None:
        settings = test_settings.model_copy(update={"CORS_ALLOWED_ORIGINS": [UI_ORIGIN]})

        async for client in build_client(settings, sleep_recorder):
            allowed = await client.get(
                "/api/visualization-types", headers={"Origin": UI_ORIGIN}
            )
            rejected = await client.get(
                "/api/visualization-types", headers={"Origin": "http://evil.test"}
            )

            assert allowed.headers["Access-Control-Allow-Origin"] == UI_ORIGIN
            assert "Access-Control-Allow-Origin" not in rejected.headers
