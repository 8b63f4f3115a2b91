"""Shared fixtures for AlgoVista service tests."""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List

import pytest

from services.algovista_service.config import Settings

LLM_ENDPOINT = "http://llm.test/v1/chat/completions"


class SleepRecorder:
    """Drop-in for asyncio.sleep that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.delays)


@pytest.fixture
def test_settings() -> Settings:
    """Settings pointing at a fake upstream endpoint with rate limiting off."""
    return Settings(
        LLM_API_ENDPOINT=LLM_ENDPOINT,
        LLM_REQUEST_TIMEOUT_SECONDS=5.0,
        LLM_MAX_ATTEMPTS=3,
        RATE_LIMIT_ENABLED=False,
        RESPONSE_CACHE_ENABLED=False,
    )


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def valid_solve_payload() -> Dict[str, Any]:
    return {
        "solution": [
            {
                "step": 1,
                "action": "Apply the power rule",
                "equation": "$f'(x) = 2x^{2-1}$",
                "explanation": "Bring the exponent down and subtract one.",
            },
            {
                "step": 2,
                "action": "Simplify",
                "equation": "$f'(x) = 2x$",
                "explanation": "$x^1 = x$",
            },
            {
                "step": 3,
                "action": "State the result",
                "equation": "$$f'(x) = 2x$$",
                "explanation": "The derivative of $x^2$ is $2x$.",
            },
        ],
        "final_answer": "$f'(x) = 2x$",
    }


@pytest.fixture
def valid_visualization_payload() -> Dict[str, Any]:
    return {
        "function": {
            "raw": "f(x, y) = x^2 + y^2",
            "parsed": "x**2 + y**2",
            "variables": ["x", "y"],
        },
        "visualization_config": {
            "ranges": {"x": [-5.0, 5.0], "y": [-5.0, 5.0], "z": [0.0, 50.0]},
            "resolution": {"x": 50, "y": 50},
            "view_angles": {"theta": 45.0, "phi": 30.0},
        },
        "mathematical_properties": {
            "gradient": {"dx": "2*x", "dy": "2*y"},
            "critical_points": [{"x": 0.0, "y": 0.0, "z": 0.0, "type": "minimum"}],
        },
    }


@pytest.fixture
def chat_completion() -> Callable[[Any], Dict[str, Any]]:
    """Wrap content in an OpenAI-style chat-completions envelope."""

    def _build(content: Any) -> Dict[str, Any]:
        if not isinstance(content, str):
            content = json.dumps(content)
        return {
            "id": "chatcmpl-test",
            "object": "chat.completion",
            "choices": [
                {
                    "index": 0,
                    "message": {"role": "assistant", "content": content},
                    "finish_reason": "stop",
                }
            ],
        }

    return _build
