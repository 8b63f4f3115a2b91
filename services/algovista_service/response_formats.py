"""JSON-schema ``response_format`` descriptors sent with every upstream request.

The upstream server constrains generation with these descriptors. They mirror
the response models in ``api_models`` but are kept as plain dicts because the
server expects this exact structure, including the string ``"true"`` for
``strict``.
"""

from __future__ import annotations

from typing import Any, Dict

SOLVE_FORMAT_NAME = "math_solution_response"
VISUALIZATION_FORMAT_NAME = "visualization_response"

_NUMBER_ARRAY: Dict[str, Any] = {"type": "array", "items": {"type": "number"}}


def solve_schema() -> Dict[str, Any]:
    """JSON schema of a step-by-step solution."""
    return {
        "type": "object",
        "required": ["solution", "final_answer"],
        "properties": {
            "solution": {
                "type": "array",
                "items": {
                    "type": "object",
                    "required": ["step", "action", "equation", "explanation"],
                    "properties": {
                        "step": {"type": "integer", "minimum": 1},
                        "action": {"type": "string", "minLength": 1},
                        "equation": {"type": "string", "minLength": 1},
                        "explanation": {"type": "string", "minLength": 1},
                    },
                },
                "minItems": 1,
            },
            "final_answer": {"type": "string", "minLength": 1},
        },
    }


def visualization_schema() -> Dict[str, Any]:
    """JSON schema of a 3D surface specification."""
    return {
        "type": "object",
        "required": ["function", "visualization_config", "mathematical_properties"],
        "properties": {
            "function": {
                "type": "object",
                "required": ["raw", "parsed", "variables"],
                "properties": {
                    "raw": {"type": "string"},
                    "parsed": {"type": "string"},
                    "variables": {"type": "array", "items": {"type": "string"}},
                },
            },
            "visualization_config": {
                "type": "object",
                "required": ["ranges", "resolution", "view_angles"],
                "properties": {
                    "ranges": {
                        "type": "object",
                        "required": ["x", "y"],
                        "properties": {"x": _NUMBER_ARRAY, "y": _NUMBER_ARRAY, "z": _NUMBER_ARRAY},
                    },
                    "resolution": {
                        "type": "object",
                        "required": ["x", "y"],
                        "properties": {"x": {"type": "integer"}, "y": {"type": "integer"}},
                    },
                    "view_angles": {
                        "type": "object",
                        "required": ["theta", "phi"],
                        "properties": {"theta": {"type": "number"}, "phi": {"type": "number"}},
                    },
                },
            },
            "mathematical_properties": {
                "type": "object",
                "required": ["gradient"],
                "properties": {
                    "critical_points": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "x": {"type": "number"},
                                "y": {"type": "number"},
                                "z": {"type": "number"},
                                "type": {"type": "string"},
                            },
                        },
                    },
                    "gradient": {
                        "type": "object",
                        "required": ["dx", "dy"],
                        "properties": {"dx": {"type": "string"}, "dy": {"type": "string"}},
                    },
                },
            },
        },
    }


def _json_schema_format(name: str, schema: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "json_schema",
        "json_schema": {"name": name, "strict": "true", "schema": schema},
    }


def generate_solve_format() -> Dict[str, Any]:
    return _json_schema_format(SOLVE_FORMAT_NAME, solve_schema())


def generate_visualization_format() -> Dict[str, Any]:
    return _json_schema_format(VISUALIZATION_FORMAT_NAME, visualization_schema())
