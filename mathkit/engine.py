"""
One-call calculation: validate, parse, evaluate and format an expression.
"""

from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict

from .core.logging import get_context_logger
from .math.formatting import PrecisionResult, PrecisionSettings, get_default_settings, render
from .parser.ast import free_variables
from .parser.context import Context, default_context
from .parser.parser import Parser
from .parser.validator import Validator
from .parser.visitors import evaluate, to_string

logger = get_context_logger(__name__, component="engine")


class CalculationResult(BaseModel):
    """Outcome of a successful calculation"""

    model_config = ConfigDict(frozen=True)

    expression: str
    normalized: str
    variables: list[str]
    value: float
    formatted: PrecisionResult


def calculate(
    expression: str,
    scope: Optional[Mapping[str, float]] = None,
    settings: Optional[PrecisionSettings] = None,
    context: Optional[Context] = None,
) -> CalculationResult:
    """
    Calculate ``expression`` and render the result.

    Raises:
        MathKitError: The classified failure from whichever stage rejected it
    """
    context = context or default_context()
    settings = settings or get_default_settings()

    Validator(context).check(expression)
    ast = Parser(context).parse(expression)
    value = evaluate(ast, scope, context)

    logger.info("Calculated expression", extra_data={"expression": expression, "value": value})

    return CalculationResult(
        expression=expression,
        normalized=to_string(ast, context),
        variables=sorted(free_variables(ast) - set(context.constants)),
        value=value,
        formatted=render(value, settings),
    )
