"""
MathKit - expression computation core.

Parses textual expressions into an AST, evaluates them against a variable
scope, approximates limits, solves small linear systems and renders results
under configurable precision settings.
"""

from .core.errors import ErrorInfo, ErrorKind, MathKitError
from .parser import (
    Context,
    StepTrace,
    Token,
    TokenType,
    ValidationResult,
    differentiate,
    evaluate,
    evaluate_with_steps,
    parse,
    to_string,
    tokenize,
    validate,
)
from .math import (
    Matrix,
    PrecisionResult,
    PrecisionSettings,
    SurfaceGrid,
    advise,
    autocorrect,
    count_significant_digits,
    format_with_precision,
    limit,
    sample_surface,
    solve_linear_system,
    suggest,
)
from .engine import CalculationResult, calculate

__version__ = "1.0.0"

__all__ = [
    "ErrorInfo",
    "ErrorKind",
    "MathKitError",
    "Context",
    "Token",
    "TokenType",
    "ValidationResult",
    "tokenize",
    "validate",
    "parse",
    "evaluate",
    "evaluate_with_steps",
    "differentiate",
    "to_string",
    "StepTrace",
    "Matrix",
    "PrecisionResult",
    "PrecisionSettings",
    "SurfaceGrid",
    "advise",
    "autocorrect",
    "count_significant_digits",
    "format_with_precision",
    "limit",
    "sample_surface",
    "solve_linear_system",
    "suggest",
    "CalculationResult",
    "calculate",
]
