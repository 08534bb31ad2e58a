"""
Request and response models for the HTTP API.
"""

from typing import Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, model_validator

from mathkit.core.errors import ErrorInfo
from mathkit.math.formatting import PrecisionResult, PrecisionSettings


class ExpressionRequest(BaseModel):
    """An expression with optional variable values"""
    expression: str = Field(..., description="Expression text, e.g. '2x + sin(pi/2)'")
    variables: Dict[str, float] = Field(default_factory=dict, description="Variable values by name")


class ValidateRequest(BaseModel):
    expression: str
    allow_unary_minus: Optional[bool] = Field(None, description="Override the server default")


class ValidateResponse(BaseModel):
    is_valid: bool
    error: Optional[ErrorInfo] = None
    hints: List[str] = Field(default_factory=list)


class EvaluateRequest(ExpressionRequest):
    settings: Optional[PrecisionSettings] = None


class LimitRequest(ExpressionRequest):
    variable: str = "x"
    approaching: Union[float, str] = Field(..., description="A number, or 'inf' / '-inf'")


class LimitResponse(BaseModel):
    expression: str
    variable: str
    approaching: Union[float, str]
    result: str


class FormatRequest(BaseModel):
    """Format either a raw value or the value of an expression"""
    value: Optional[float] = None
    expression: Optional[str] = None
    variables: Dict[str, float] = Field(default_factory=dict)
    settings: Optional[PrecisionSettings] = None

    @model_validator(mode="after")
    def _one_source(self) -> "FormatRequest":
        if (self.value is None) == (self.expression is None):
            raise ValueError("Provide exactly one of 'value' or 'expression'")
        return self


class FormatResponse(BaseModel):
    result: Optional[PrecisionResult] = None
    error: Optional[ErrorInfo] = None


MatrixOperation = Literal["add", "subtract", "multiply", "determinant", "inverse", "transpose"]


class MatrixRequest(BaseModel):
    a: List[List[float]]
    b: Optional[List[List[float]]] = None
    scalar: Optional[float] = Field(None, description="Scalar factor for 'multiply' when b is omitted")


class MatrixResponse(BaseModel):
    operation: MatrixOperation
    matrix: Optional[List[List[float]]] = None
    value: Optional[float] = None


class SolveRequest(BaseModel):
    coefficients: List[List[float]]
    constants: List[float]
    method: Literal["gaussian", "cramer"] = "gaussian"


class SolveResponse(BaseModel):
    solution: List[float]


class SurfaceRequest(ExpressionRequest):
    x_range: Tuple[float, float] = (-5.0, 5.0)
    y_range: Tuple[float, float] = (-5.0, 5.0)
    resolution: int = Field(50, ge=2)


class DifferentiateRequest(ExpressionRequest):
    variable: str = "x"


class DifferentiateResponse(BaseModel):
    expression: str
    variable: str
    derivative: str
    value: Optional[float] = Field(None, description="Derivative at the given variables, when they cover it")
