"""
Structural validation of raw expression text.

The validator runs before (or instead of) a full parse and reports the first
problem it finds, checked in this order:

1. empty input
2. unbalanced parentheses (missing opening vs. missing closing)
3. invalid operators (an operator run that is not a single + - * / ^ %)
4. consecutive operators separated only by whitespace
5. unsupported function names

A single '-' written right after another operator is a unary minus and is
accepted by checks 3 and 4 unless ``allow_unary_minus`` is turned off.
"""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict

from ..core.config import get_settings
from ..core.errors import ErrorInfo, ErrorKind, ParseError
from .context import Context, default_context
from .tokenizer import OPERATOR_CHARS

# Characters that look like operators; anything beyond OPERATOR_CHARS is rejected
_OPERATOR_LIKE = r"+\-*/^%&|<>~!="
_OPERATOR_RUN = re.compile(f"[{_OPERATOR_LIKE}]+")
_SPACED_OPERATOR_RUN = re.compile(f"[{_OPERATOR_LIKE}](?:\\s*[{_OPERATOR_LIKE}])+")
_FUNCTION_CALL = re.compile(r"(?<![A-Za-z_])([A-Za-z_][A-Za-z0-9_]*)\s*\(")


class ValidationResult(BaseModel):
    """Outcome of validating an expression"""

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    error: Optional[ErrorInfo] = None


class Validator:
    """
    Early structural checks on raw expression text.

    Args:
        context: Context whose function table is the allow-list
        allow_unary_minus: Accept '-' directly after another operator
    """

    def __init__(self, context: Context | None = None, allow_unary_minus: bool | None = None):
        self.context = context or default_context()
        if allow_unary_minus is None:
            allow_unary_minus = get_settings().ALLOW_UNARY_MINUS
        self.allow_unary_minus = allow_unary_minus

    def validate(self, text: str) -> ValidationResult:
        """Validate ``text`` and return a result value (never raises)."""
        try:
            self.check(text)
        except ParseError as exc:
            return ValidationResult(is_valid=False, error=exc.to_info())
        return ValidationResult(is_valid=True)

    def check(self, text: str) -> None:
        """
        Validate ``text``.

        Raises:
            ParseError: classified by the first failing check
        """
        if not text.strip():
            raise ParseError(ErrorKind.EMPTY_EXPRESSION, detail="Please enter an expression")

        self._check_parentheses(text)
        self._check_operator_runs(text)
        self._check_consecutive_operators(text)
        self._check_functions(text)

    def _check_parentheses(self, text: str) -> None:
        stack: list[int] = []
        for index, char in enumerate(text):
            if char == "(":
                stack.append(index)
            elif char == ")":
                if not stack:
                    raise ParseError(
                        ErrorKind.UNBALANCED_PARENTHESES,
                        detail="Missing opening parenthesis",
                        position=index,
                    )
                stack.pop()
        if stack:
            raise ParseError(
                ErrorKind.UNBALANCED_PARENTHESES,
                detail="Missing closing parenthesis",
                position=stack[-1],
            )

    def _is_unary_pair(self, ops: str) -> bool:
        return (
            self.allow_unary_minus
            and len(ops) == 2
            and ops[0] in OPERATOR_CHARS
            and ops[1] == "-"
        )

    def _check_operator_runs(self, text: str) -> None:
        for match in _OPERATOR_RUN.finditer(text):
            run = match.group()
            if len(run) == 1 and run in OPERATOR_CHARS:
                continue
            if self._is_unary_pair(run):
                continue
            raise ParseError(
                ErrorKind.INVALID_OPERATOR,
                detail=f'Operator "{run}" is not supported',
                position=match.start(),
            )

    def _check_consecutive_operators(self, text: str) -> None:
        for match in _SPACED_OPERATOR_RUN.finditer(text):
            ops = re.sub(r"\s+", "", match.group())
            if self._is_unary_pair(ops):
                continue
            raise ParseError(
                ErrorKind.CONSECUTIVE_OPERATORS,
                detail=f'Operators "{match.group()}" appear back to back',
                position=match.start(),
            )

    def _check_functions(self, text: str) -> None:
        for match in _FUNCTION_CALL.finditer(text):
            name = match.group(1)
            if not self.context.is_function(name):
                raise ParseError(
                    ErrorKind.UNSUPPORTED_FUNCTION,
                    detail=f'Function "{name}" is not supported',
                    position=match.start(1),
                )


def validate(text: str, context: Context | None = None) -> ValidationResult:
    """Validate ``text`` with default settings."""
    return Validator(context).validate(text)
