"""
Precision and formatting engine.

Renders a numeric result (or the value of an expression) in several forms
under a ``PrecisionSettings`` record:

- fixed: rounded to ``decimal_places`` with the chosen rounding mode
- scientific: 6-digit mantissa with an explicit exponent, e.g. ``1.234568e+03``
- engineering: exponent a multiple of 3, e.g. ``1.234568E+3``
- fraction: best-effort match against common simple fractions

Settings are immutable. The process-wide default lives in a
``PrecisionSettingsHandle`` that swaps whole records, so a reader always sees
one consistent set of settings.
"""

import re
import threading
from decimal import (
    ROUND_CEILING,
    ROUND_DOWN,
    ROUND_FLOOR,
    ROUND_HALF_EVEN,
    ROUND_HALF_UP,
    Decimal,
    localcontext,
)
from math import gcd, isinf, isnan
from typing import Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..core.config import get_settings
from ..core.errors import ErrorInfo, ErrorKind, EvaluationError, InfiniteResultError, MathKitError
from ..core.logging import get_context_logger
from ..parser.context import Context
from ..parser.parser import Parser
from ..parser.validator import Validator
from ..parser.visitors import evaluate

logger = get_context_logger(__name__, component="formatting")

RoundingMode = Literal["round", "floor", "ceil", "truncate", "banker"]
ErrorHandling = Literal["strict", "graceful", "silent"]

ROUNDING_MODES: dict[str, str] = {
    "round": ROUND_HALF_UP,
    "floor": ROUND_FLOOR,
    "ceil": ROUND_CEILING,
    "truncate": ROUND_DOWN,
    "banker": ROUND_HALF_EVEN,
}

# Denominators tried, smallest first, when looking for a simple fraction
FRACTION_DENOMINATORS = (2, 3, 4, 6, 8, 10)

# Values this close to zero switch the display to scientific notation
SMALL_DISPLAY_THRESHOLD = 1e-6

ERROR_PLACEHOLDER = "Error"


class PrecisionSettings(BaseModel):
    """Immutable formatting preferences"""

    model_config = ConfigDict(frozen=True)

    decimal_places: int = Field(
        default_factory=lambda: get_settings().DEFAULT_DECIMAL_PLACES, ge=0, le=100
    )
    rounding_mode: RoundingMode = Field(default_factory=lambda: get_settings().DEFAULT_ROUNDING_MODE)
    scientific_notation: bool = False
    thousands_separator: bool = False
    error_handling: ErrorHandling = Field(default_factory=lambda: get_settings().DEFAULT_ERROR_HANDLING)
    scientific_threshold: float = Field(default_factory=lambda: get_settings().SCIENTIFIC_THRESHOLD, gt=0)

    def with_changes(self, **changes: Any) -> "PrecisionSettings":
        """Return a validated copy with ``changes`` applied."""
        return PrecisionSettings(**{**self.model_dump(), **changes})


class PrecisionSettingsHandle:
    """
    Holder for the process-wide default settings.

    Writers replace the whole record under a lock; readers take the current
    reference without locking and never observe a partial update.
    """

    def __init__(self, initial: PrecisionSettings | None = None):
        self._settings = initial
        self._lock = threading.Lock()

    def get(self) -> PrecisionSettings:
        current = self._settings
        if current is None:
            with self._lock:
                if self._settings is None:
                    self._settings = PrecisionSettings()
                current = self._settings
        return current

    def set(self, settings: PrecisionSettings) -> PrecisionSettings:
        """Swap in ``settings``; returns the record it replaced."""
        with self._lock:
            previous = self._settings
            self._settings = settings
        return previous if previous is not None else settings

    def update(self, **changes: Any) -> PrecisionSettings:
        """Swap in a copy of the current record with ``changes`` applied."""
        with self._lock:
            base = self._settings if self._settings is not None else PrecisionSettings()
            self._settings = base.with_changes(**changes)
            return self._settings


_default_settings = PrecisionSettingsHandle()


def get_default_settings() -> PrecisionSettings:
    return _default_settings.get()


def set_default_settings(settings: PrecisionSettings) -> PrecisionSettings:
    return _default_settings.set(settings)


def update_default_settings(**changes: Any) -> PrecisionSettings:
    return _default_settings.update(**changes)


class PrecisionResult(BaseModel):
    """All renderings of one value"""

    model_config = ConfigDict(frozen=True)

    value: Optional[float] = Field(None, description="The unrounded value (None for the error placeholder)")
    fixed: str
    scientific: str
    engineering: str
    fraction: Optional[str] = None
    display: str
    significant_digits: int
    decimal_places: int
    rounding_mode: RoundingMode

    @classmethod
    def placeholder(cls, settings: PrecisionSettings) -> "PrecisionResult":
        return cls(
            value=None,
            fixed=ERROR_PLACEHOLDER,
            scientific=ERROR_PLACEHOLDER,
            engineering=ERROR_PLACEHOLDER,
            display=ERROR_PLACEHOLDER,
            significant_digits=0,
            decimal_places=settings.decimal_places,
            rounding_mode=settings.rounding_mode,
        )


def round_decimal(value: float, places: int, mode: RoundingMode = "round") -> Decimal:
    """
    Round ``value`` to ``places`` decimal places.

    The float's shortest repr is the starting point, so 2.675 rounds to 2.68
    in "round" mode rather than following its binary expansion.
    """
    with localcontext() as ctx:
        ctx.prec = 500
        quantum = Decimal(1).scaleb(-places)
        rounded = Decimal(repr(value)).quantize(quantum, rounding=ROUNDING_MODES[mode])
    if rounded == 0:
        rounded = abs(rounded)
    return rounded


def format_fixed(value: float, places: int, mode: RoundingMode = "round", separator: bool = False) -> str:
    rounded = round_decimal(value, places, mode)
    return format(rounded, ",f" if separator else "f")


def format_scientific(value: float) -> str:
    return f"{value:.6e}"


def format_engineering(value: float) -> str:
    """Mantissa with 6 decimals and an exponent that is a multiple of 3."""
    if value == 0:
        return "0.000000E+0"
    # Round to 7 significant digits first so the mantissa never reaches 1000
    scientific = Decimal(f"{value:.6e}")
    exponent = scientific.adjusted()
    exponent -= exponent % 3
    mantissa = scientific.scaleb(-exponent)
    return f"{mantissa:.6f}E{exponent:+d}"


def to_fraction(value: float, tolerance: float | None = None) -> str | None:
    """
    Match ``value`` against halves, thirds, quarters, sixths, eighths and tenths.

    Returns:
        "n/d" in lowest terms (improper when |value| > 1), or None for
        integers and values with no match within ``tolerance``
    """
    if tolerance is None:
        tolerance = get_settings().FRACTION_TOLERANCE
    if abs(value - round(value)) < tolerance:
        return None

    for denominator in FRACTION_DENOMINATORS:
        numerator = round(value * denominator)
        if abs(value - numerator / denominator) < tolerance:
            divisor = gcd(numerator, denominator)
            return f"{numerator // divisor}/{denominator // divisor}"
    return None


def count_significant_digits(text: str) -> int:
    """
    Count significant digits in a rendered number.

    Sign, separators and any exponent are ignored. Leading zeros are
    stripped from the integer part when there is no fractional part, else
    from the concatenation of both parts. Trailing zeros count.

    Examples:
        >>> count_significant_digits("0.00120")
        3
        >>> count_significant_digits("1,200")
        4
    """
    mantissa = re.split(r"[eE]", text.strip(), maxsplit=1)[0]
    cleaned = re.sub(r"[^\d.]", "", mantissa)
    integer, _, fraction = cleaned.partition(".")
    digits = integer + fraction if fraction else integer
    return len(digits.lstrip("0"))


def _wants_scientific(value: float, settings: PrecisionSettings) -> bool:
    magnitude = abs(value)
    return (
        settings.scientific_notation
        or magnitude >= settings.scientific_threshold
        or 0 < magnitude < SMALL_DISPLAY_THRESHOLD
    )


def render(value: float, settings: PrecisionSettings) -> PrecisionResult:
    """Produce every rendering of a finite ``value``."""
    fixed = format_fixed(value, settings.decimal_places, settings.rounding_mode, settings.thousands_separator)
    scientific = format_scientific(value)
    display = scientific if _wants_scientific(value, settings) else fixed

    return PrecisionResult(
        value=value,
        fixed=fixed,
        scientific=scientific,
        engineering=format_engineering(value),
        fraction=to_fraction(value),
        display=display,
        significant_digits=count_significant_digits(fixed),
        decimal_places=settings.decimal_places,
        rounding_mode=settings.rounding_mode,
    )


def _resolve(
    source: Union[str, float, int],
    scope: Mapping[str, float] | None,
    context: Context | None,
) -> float:
    if isinstance(source, str):
        Validator(context).check(source)
        ast = Parser(context).parse(source)
        return evaluate(ast, scope, context)

    try:
        value = float(source)
    except OverflowError:
        raise InfiniteResultError(sign=1 if source > 0 else -1, detail="Value is too large for a float") from None
    if isnan(value):
        raise EvaluationError(ErrorKind.UNDEFINED_RESULT, detail="Value is NaN")
    if isinf(value):
        raise InfiniteResultError(sign=1 if value > 0 else -1, detail="Value is infinite")
    return value


def format_with_precision(
    source: Union[str, float, int],
    settings: PrecisionSettings | None = None,
    scope: Mapping[str, float] | None = None,
    context: Context | None = None,
) -> Union[PrecisionResult, ErrorInfo]:
    """
    Format a value, or the value of an expression, under ``settings``.

    Args:
        source: A number, or expression text to validate, parse and evaluate
        settings: Formatting preferences (defaults to the process default)
        scope: Variable values for expression text
        context: Mathematical context for expression text

    Returns:
        PrecisionResult on success. On a classified failure the
        ``error_handling`` policy decides: "graceful" returns an ErrorInfo,
        "silent" returns a PrecisionResult filled with "Error".

    Raises:
        MathKitError: Only when ``error_handling`` is "strict"
    """
    settings = settings or get_default_settings()

    try:
        value = _resolve(source, scope, context)
    except MathKitError as exc:
        if settings.error_handling == "strict":
            raise
        logger.debug(
            "Formatting failed",
            extra_data={"kind": exc.kind.value, "policy": settings.error_handling},
        )
        if settings.error_handling == "graceful":
            return exc.to_info()
        return PrecisionResult.placeholder(settings)

    return render(value, settings)
