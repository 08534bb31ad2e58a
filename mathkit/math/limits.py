"""
Numerical limit approximation.

The limit of an expression at a finite point is estimated by evaluating it a
small step ``delta`` either side of the point and comparing the two samples.
Limits at +/-infinity evaluate once at ``+/-1/delta``. This is a cheap
numerical proxy, not asymptotic analysis: it can be fooled by oscillation or
by behaviour that only appears at scales smaller than ``delta``.

``limit`` always returns a display string and never raises.
"""

import math
from decimal import Decimal
from typing import Mapping, Union

from ..core.config import get_settings
from ..core.errors import ErrorKind, InfiniteResultError, MathKitError
from ..core.logging import get_context_logger
from ..parser.ast import ASTNode
from ..parser.context import Context
from ..parser.visitors import evaluate

logger = get_context_logger(__name__, component="limits")

Approach = Union[float, int, str]

POSITIVE_INFINITY_NAMES = {"inf", "+inf", "infinity", "+infinity", "∞", "+∞"}
NEGATIVE_INFINITY_NAMES = {"-inf", "-infinity", "-∞"}

# Finite one-sided samples within this many deltas agree
AGREEMENT_FACTOR = 100


def to_precision(value: float, digits: int = 7) -> str:
    """
    Format ``value`` with ``digits`` significant figures.

    Fixed notation is used unless the decimal exponent is below -6 or at
    least ``digits``, in which case the mantissa/exponent form is used
    (``1.000000e+21``). Trailing zeros are kept.
    """
    if value == 0:
        return f"{0:.{digits - 1}f}"

    exponent = Decimal(f"{value:.{digits - 1}e}").adjusted()
    if exponent < -6 or exponent >= digits:
        mantissa, _, exp = f"{value:.{digits - 1}e}".partition("e")
        return f"{mantissa}e{int(exp):+d}"
    return f"{value:.{digits - 1 - exponent}f}"


def _direction(approaching: Approach) -> float:
    """Resolve ``approaching`` to a float (possibly +/-inf)."""
    if isinstance(approaching, str):
        text = approaching.strip().lower()
        if text in POSITIVE_INFINITY_NAMES:
            return math.inf
        if text in NEGATIVE_INFINITY_NAMES:
            return -math.inf
        return float(text)
    return float(approaching)


def _sample(
    ast: ASTNode,
    variable: str,
    point: float,
    scope: Mapping[str, float] | None,
    context: Context | None,
) -> Union[float, MathKitError]:
    values = dict(scope or {})
    values[variable.lower()] = point
    try:
        return evaluate(ast, {k.lower(): v for k, v in values.items()}, context)
    except MathKitError as exc:
        return exc


def _infinite_text(error: InfiniteResultError) -> str:
    return "∞" if error.sign > 0 else "-∞"


def limit(
    ast: ASTNode,
    variable: str,
    approaching: Approach,
    delta: float | None = None,
    scope: Mapping[str, float] | None = None,
    context: Context | None = None,
) -> str:
    """
    Approximate the limit of ``ast`` as ``variable`` approaches a point.

    Args:
        ast: Expression tree
        variable: Name of the variable that moves (case-insensitive)
        approaching: A number, or "inf"/"∞"/"-inf"/"-∞" (or +/-math.inf)
        delta: Sampling step (defaults to the LIMIT_DELTA setting)
        scope: Values for any other variables in the expression
        context: Mathematical context

    Returns:
        The estimated limit as text, or an explanatory message
    """
    if delta is None:
        delta = get_settings().LIMIT_DELTA

    try:
        target = _direction(approaching)
    except (TypeError, ValueError):
        return f"Invalid limit point: {approaching}"

    if math.isnan(target):
        return f"Invalid limit point: {approaching}"

    if math.isinf(target):
        return _limit_at_infinity(ast, variable, target, delta, scope, context)

    before_point = target - delta
    after_point = target + delta
    before = _sample(ast, variable, before_point, scope, context)
    after = _sample(ast, variable, after_point, scope, context)

    logger.debug(
        "Sampled limit",
        extra_data={"variable": variable, "target": target, "before": str(before), "after": str(after)},
    )

    non_finite = (ErrorKind.UNDEFINED_RESULT, ErrorKind.INFINITE_RESULT)
    failures = [
        (point, sample)
        for point, sample in ((before_point, before), (after_point, after))
        if isinstance(sample, MathKitError) and sample.kind not in non_finite
    ]
    if failures:
        message = "Limit could not be numerically determined."
        for point, error in failures:
            message += f" Evaluation at {variable}={point} resulted in: {error}."
        return message

    if any(isinstance(s, MathKitError) and s.kind == ErrorKind.UNDEFINED_RESULT for s in (before, after)):
        return "Result is NaN near the limit point."

    if isinstance(before, MathKitError) or isinstance(after, MathKitError):
        if (
            isinstance(before, InfiniteResultError)
            and isinstance(after, InfiniteResultError)
            and before.sign == after.sign
        ):
            return _infinite_text(before)
        return "Limit approaches Infinity or is undefined due to non-finite values near the point."

    if abs(before - after) < delta * AGREEMENT_FACTOR:
        return to_precision((before + after) / 2)

    return (
        "Limit may not exist or is a jump discontinuity "
        f"(approaching {to_precision(before)} from one side, {to_precision(after)} from the other)."
    )


def _limit_at_infinity(
    ast: ASTNode,
    variable: str,
    target: float,
    delta: float,
    scope: Mapping[str, float] | None,
    context: Context | None,
) -> str:
    point = math.copysign(1 / delta, target)
    where = "large values" if target > 0 else "large negative values"
    value = _sample(ast, variable, point, scope, context)

    if isinstance(value, InfiniteResultError):
        return _infinite_text(value)
    if isinstance(value, MathKitError):
        if value.kind == ErrorKind.UNDEFINED_RESULT:
            return f"Result is NaN at {where}"
        return f"Cannot evaluate at {where}: {value}"
    return to_precision(value)
