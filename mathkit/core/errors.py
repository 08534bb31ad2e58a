"""
Error taxonomy for the computation core.

Every failure in the core is classified by an ``ErrorKind``. Exceptions carry
the kind plus a human-readable message and optional detail, and convert to a
plain ``ErrorInfo`` value for callers that want data instead of exceptions.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorKind(str, Enum):
    """Classification of core failures"""

    EMPTY_EXPRESSION = "EmptyExpression"
    UNBALANCED_PARENTHESES = "UnbalancedParentheses"
    INVALID_OPERATOR = "InvalidOperator"
    CONSECUTIVE_OPERATORS = "ConsecutiveOperators"
    UNSUPPORTED_FUNCTION = "UnsupportedFunction"
    INVALID_TOKEN = "InvalidToken"
    UNEXPECTED_TOKEN = "UnexpectedToken"
    UNEXPECTED_END = "UnexpectedEnd"
    UNDEFINED_VARIABLE = "UndefinedVariable"
    DIVISION_BY_ZERO = "DivisionByZero"
    DOMAIN_ERROR = "DomainError"
    UNDEFINED_RESULT = "UndefinedResult"
    INFINITE_RESULT = "InfiniteResult"
    DIMENSION_MISMATCH = "DimensionMismatch"
    SINGULAR = "Singular"

    @property
    def default_message(self) -> str:
        return DEFAULT_MESSAGES[self]


DEFAULT_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.EMPTY_EXPRESSION: "Empty expression",
    ErrorKind.UNBALANCED_PARENTHESES: "Unbalanced parentheses",
    ErrorKind.INVALID_OPERATOR: "Invalid operator",
    ErrorKind.CONSECUTIVE_OPERATORS: "Consecutive operators are not allowed",
    ErrorKind.UNSUPPORTED_FUNCTION: "Invalid function",
    ErrorKind.INVALID_TOKEN: "Invalid character",
    ErrorKind.UNEXPECTED_TOKEN: "Syntax error",
    ErrorKind.UNEXPECTED_END: "Incomplete expression",
    ErrorKind.UNDEFINED_VARIABLE: "Undefined variable",
    ErrorKind.DIVISION_BY_ZERO: "Division by zero",
    ErrorKind.DOMAIN_ERROR: "Domain error",
    ErrorKind.UNDEFINED_RESULT: "Undefined result",
    ErrorKind.INFINITE_RESULT: "Infinite result",
    ErrorKind.DIMENSION_MISMATCH: "Dimension mismatch",
    ErrorKind.SINGULAR: "Singular matrix",
}


class ErrorInfo(BaseModel):
    """Plain-data view of a classified error"""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str
    detail: Optional[str] = None
    position: Optional[int] = Field(None, description="Source offset for parse errors")


class MathKitError(Exception):
    """Base exception for all classified core errors"""

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        detail: Optional[str] = None,
        position: Optional[int] = None,
    ):
        self.kind = kind
        self.message = message or kind.default_message
        self.detail = detail
        self.position = position
        super().__init__(self.message)

    def __str__(self) -> str:
        text = self.message
        if self.detail:
            text = f"{text}: {self.detail}"
        if self.position is not None:
            text = f"{text} (at position {self.position})"
        return text

    def to_info(self) -> ErrorInfo:
        """Convert to an ErrorInfo value"""
        return ErrorInfo(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
            position=self.position,
        )


class ParseError(MathKitError):
    """Raised by the lexer, validator and parser"""


class EvaluationError(MathKitError):
    """Raised while reducing an AST to a number"""


class InfiniteResultError(EvaluationError):
    """Raised when a step overflows to +/- infinity"""

    def __init__(self, sign: int = 1, detail: Optional[str] = None):
        self.sign = 1 if sign >= 0 else -1
        super().__init__(ErrorKind.INFINITE_RESULT, detail=detail)


class LinearAlgebraError(MathKitError):
    """Raised by matrix operations"""


def dimension_mismatch(detail: str) -> LinearAlgebraError:
    return LinearAlgebraError(ErrorKind.DIMENSION_MISMATCH, detail=detail)
