"""Request/response models for the AlgoVista equation service.

The two LLM response shapes are modelled here so that the validator, the
gateway and the routes share one definition. Extra keys returned by the model
are kept (``extra="allow"``) so a validated payload round-trips unchanged.
"""

from __future__ import annotations

from enum import Enum, StrEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, StrictStr


class VisualizationType(StrEnum):
    """Supported visualization categories."""

    MULTIVARIABLE_GRADIENT = "Multivariable Functions and Gradient Fields"
    COMPLEX_INTEGRATION = "Complex Integration and Residue Theory"
    DIFFERENTIAL_GEOMETRY = "Differential Geometry (Manifolds)"
    SERIES_CONVERGENCE = "Convergence of Series and Sequences"
    VECTOR_FIELDS = "Vector Fields and Flow Lines"


class ResponseKind(str, Enum):
    """Selects which response contract the validator enforces."""

    SOLVE = "solve"
    VISUALIZATION = "visualization"


# ---------------------------------------------------------------------------
# Incoming requests
# ---------------------------------------------------------------------------


class SolveRequest(BaseModel):
    """Body of POST /api/solve."""

    equation: str = Field(..., min_length=1, max_length=1000, description="Equation to solve")
    visualization_type: Optional[VisualizationType] = Field(
        default=None, description="Category used to steer the prompt"
    )

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "equation": "f(x, y) = x^2 + y^2",
                "visualization_type": "Multivariable Functions and Gradient Fields",
            }
        },
    )


class VisualizeRequest(BaseModel):
    """Body of POST /api/visualize."""

    equation: str = Field(..., min_length=1, max_length=1000)
    visualization_type: VisualizationType

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Solve response
# ---------------------------------------------------------------------------


class SolutionStep(BaseModel):
    """Documented shape of one solution step."""

    step: int = Field(ge=1)
    action: str
    equation: str
    explanation: str

    model_config = ConfigDict(extra="allow")


class SolveResponse(BaseModel):
    """Step-by-step solution returned by the LLM.

    Only the container is enforced: ``solution`` must be a non-empty array and
    ``final_answer`` a non-empty string. Steps are passed through untouched.
    """

    solution: list[Any] = Field(min_length=1)
    final_answer: StrictStr = Field(min_length=1)

    model_config = ConfigDict(extra="allow")

    _is_fallback: bool = PrivateAttr(default=False)

    @property
    def is_fallback(self) -> bool:
        """True when this is the placeholder returned after an upstream failure."""
        return self._is_fallback


# ---------------------------------------------------------------------------
# Visualization response
# ---------------------------------------------------------------------------


class FunctionSpec(BaseModel):
    raw: StrictStr = Field(min_length=1)
    parsed: StrictStr = Field(min_length=1)
    variables: list[str]

    model_config = ConfigDict(extra="allow")


class AxisRanges(BaseModel):
    x: list[float]
    y: list[float]
    z: Optional[list[float]] = None

    model_config = ConfigDict(extra="allow")


class GridResolution(BaseModel):
    x: int
    y: int

    model_config = ConfigDict(extra="allow")


class ViewAngles(BaseModel):
    theta: float
    phi: float

    model_config = ConfigDict(extra="allow")


class VisualizationConfig(BaseModel):
    ranges: AxisRanges
    resolution: GridResolution
    view_angles: ViewAngles

    model_config = ConfigDict(extra="allow")


class Gradient(BaseModel):
    dx: StrictStr
    dy: StrictStr

    model_config = ConfigDict(extra="allow")


class CriticalPoint(BaseModel):
    x: float
    y: float
    z: Optional[float] = None
    type: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class MathematicalProperties(BaseModel):
    gradient: Gradient
    critical_points: Optional[list[CriticalPoint]] = None

    model_config = ConfigDict(extra="allow")


class VisualizationResponse(BaseModel):
    """3D surface specification returned by the LLM."""

    function: FunctionSpec
    visualization_config: VisualizationConfig
    mathematical_properties: MathematicalProperties

    model_config = ConfigDict(extra="allow")


class VisualizationTypesResponse(BaseModel):
    """Response model for GET /api/visualization-types."""

    visualization_types: list[str]
