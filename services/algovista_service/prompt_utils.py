"""Shared helpers for building upstream prompts, payloads and cache keys."""

from __future__ import annotations

import json
import re
from hashlib import sha256
from typing import Any, Dict, Optional

from services.algovista_service.api_models import ResponseKind, VisualizationType
from services.algovista_service.response_formats import solve_schema

DEFAULT_SOLVE_TYPE = "calculus"

TUTOR_SYSTEM_PROMPT = """You are the world's greatest calculus tutor, known for your clear and detailed step-by-step solutions. Your task is to solve calculus problems with precision and clarity. Follow these instructions:

1. Analyze the given calculus problem carefully.
2. Provide a step-by-step solution, ensuring no steps are skipped.
3. Present your solution in a structured JSON format with the following fields:
   - "solution": An array of step objects, each containing:
     * "step": A sequential integer starting from 1
     * "action": A brief description of the mathematical operation performed
     * "equation": The resulting equation or expression after the action (in LaTeX format)
     * "explanation": A concise explanation of the step (may include LaTeX expressions)
   - "final_answer": The final result (in LaTeX format)
4. Use LaTeX notation for all mathematical expressions, surrounded by $ for inline math and $$ for display math.
5. Ensure both your response and all LaTeX is valid JSON."""  # noqa: E501

_WHITESPACE = re.compile(r"\s+")


def format_solve_prompt(
    *,
    equation: str,
    visualization_type: Optional[VisualizationType] = None,
) -> str:
    """Return the user message for a solve request with the solve schema embedded."""

    problem_type = visualization_type.value if visualization_type else DEFAULT_SOLVE_TYPE
    schema = json.dumps(solve_schema())
    return (
        f"Solve this {problem_type} equation: {equation}. "
        f"Format the response exactly according to this schema: {schema}"
    )


def format_visualize_prompt(*, equation: str, visualization_type: VisualizationType) -> str:
    """Return the user message for a visualization request."""

    return (
        f"Visualize this equation: {equation} using {visualization_type.value}. "
        "Format the response exactly according to the visualization schema for type: "
        f"{visualization_type.value}"
    )


def build_messages(user_prompt: str, system_prompt: Optional[str] = None) -> list[Dict[str, str]]:
    """Build the chat message list: optional system message, then one user message."""

    messages: list[Dict[str, str]] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": user_prompt})
    return messages


def build_chat_payload(
    *,
    model: str,
    messages: list[Dict[str, str]],
    response_format: Dict[str, Any],
    temperature: float,
    max_tokens: int,
) -> Dict[str, Any]:
    """Return the chat-completions request body."""

    return {
        "model": model,
        "messages": messages,
        "response_format": response_format,
        "temperature": temperature,
        "max_tokens": max_tokens,
        "stream": False,
    }


def normalize_equation(equation: str) -> str:
    """Collapse whitespace runs; case is kept since it distinguishes symbols."""

    return _WHITESPACE.sub(" ", equation).strip()


def compute_cache_key(
    *,
    kind: ResponseKind,
    equation: str,
    visualization_type: Optional[VisualizationType] = None,
) -> str:
    """Hash kind, type and normalised equation into a deterministic cache key."""

    type_part = visualization_type.value if visualization_type else ""
    material = "\x1f".join((kind.value, type_part, normalize_equation(equation)))
    return f"algovista:{kind.value}:{sha256(material.encode('utf-8')).hexdigest()}"
