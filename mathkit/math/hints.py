"""
Offline hints and automatic correction for failed expressions.

``suggest`` maps an error to short, user-facing advice and, when a simple
rewrite of the input would validate, offers it as a "Did you mean" hint.
``advise`` consults an optional external ``Advisor`` (e.g. a remote
assistant) first and falls back to the offline hints on any failure.
"""

import re
from typing import Optional, Protocol, Sequence, Union, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from ..core.errors import ErrorInfo, ErrorKind, MathKitError
from ..core.logging import get_context_logger
from ..parser.context import Context, default_context
from ..parser.parser import insert_implicit_multiplication
from ..parser.tokenizer import TokenType, tokenize
from ..parser.validator import Validator

logger = get_context_logger(__name__, component="hints")

HINTS: dict[ErrorKind, list[str]] = {
    ErrorKind.EMPTY_EXPRESSION: ["Please enter an expression, e.g. 2 + 3 * 4"],
    ErrorKind.UNBALANCED_PARENTHESES: [
        "Check that every opening parenthesis has a matching closing parenthesis",
    ],
    ErrorKind.INVALID_OPERATOR: [
        "Supported operators are + - * / ^ %",
        "Use ^ for powers instead of **",
    ],
    ErrorKind.CONSECUTIVE_OPERATORS: [
        "Remove the extra operator or add a number between the operators",
    ],
    ErrorKind.UNSUPPORTED_FUNCTION: [
        "Supported functions: sin, cos, tan, log, ln, sqrt, abs, floor, ceil, round, max, min",
    ],
    ErrorKind.INVALID_TOKEN: ["Remove characters that are not numbers, names, operators or parentheses"],
    ErrorKind.UNEXPECTED_TOKEN: ["Check the expression near the reported position"],
    ErrorKind.UNEXPECTED_END: ["The expression ends too early; complete the last operation"],
    ErrorKind.UNDEFINED_VARIABLE: ["Give every variable a value, or use the constants pi and e"],
    ErrorKind.DIVISION_BY_ZERO: [
        "Division by zero is undefined",
        "Check the denominator is not zero",
    ],
    ErrorKind.DOMAIN_ERROR: [
        "The function is not defined for this input",
        "sqrt needs a non-negative argument; log and ln need a positive one",
    ],
    ErrorKind.UNDEFINED_RESULT: ["The result is not a real number"],
    ErrorKind.INFINITE_RESULT: ["The result is too large to represent"],
    ErrorKind.DIMENSION_MISMATCH: ["Check the matrix dimensions are compatible for this operation"],
    ErrorKind.SINGULAR: [
        "The matrix is singular (determinant is zero)",
        "The system may have no solution or infinitely many solutions",
    ],
}

# Whole-word rewrites for common typos
TYPOS: dict[str, str] = {
    "senx": "sin(x)",
    "cosx": "cos(x)",
    "tanx": "tan(x)",
    "sen": "sin",
    "tg": "tan",
    "squareroot": "sqrt",
    "sqr": "sqrt",
}

_TYPO_PATTERN = re.compile(r"\b(" + "|".join(sorted(TYPOS, key=len, reverse=True)) + r")\b")


class Correction(BaseModel):
    """Result of an automatic rewrite"""

    model_config = ConfigDict(frozen=True)

    original: str
    corrected: str
    changes: list[str] = Field(default_factory=list)

    @property
    def was_fixed(self) -> bool:
        return self.corrected != self.original


@runtime_checkable
class Advisor(Protocol):
    """External source of suggestions for a failed expression"""

    def suggest(self, expression: str, error: ErrorInfo) -> Sequence[str]:
        ...


def _fix_typos(text: str, changes: list[str]) -> str:
    def replace(match: re.Match) -> str:
        changes.append(f"replaced '{match.group(1)}' with '{TYPOS[match.group(1)]}'")
        return TYPOS[match.group(1)]

    return _TYPO_PATTERN.sub(replace, text)


def _fix_implicit_multiplication(text: str, context: Context, changes: list[str]) -> str:
    try:
        tokens = tokenize(text)
    except MathKitError:
        return text

    positions = []
    expanded = insert_implicit_multiplication(tokens)
    index = 0
    for token in expanded:
        if token.type == TokenType.OPERATOR and token.value == "*" and (
            index >= len(tokens) or tokens[index] is not token
        ):
            positions.append(tokens[index].pos)
            continue
        index += 1

    # A variable followed by '(' is a product, not a call
    for current, following in zip(tokens, tokens[1:]):
        if (
            current.type == TokenType.IDENTIFIER
            and following.type == TokenType.LPAREN
            and not context.is_function(current.value)
        ):
            positions.append(following.pos)

    if not positions:
        return text

    changes.append("inserted explicit multiplication")
    for pos in sorted(set(positions), reverse=True):
        text = text[:pos] + "*" + text[pos:]
    return text


def _balance_parentheses(text: str, changes: list[str]) -> str:
    depth = 0
    missing_open = 0
    for char in text:
        if char == "(":
            depth += 1
        elif char == ")":
            if depth == 0:
                missing_open += 1
            else:
                depth -= 1

    if missing_open:
        text = "(" * missing_open + text
        changes.append(f"added {missing_open} opening parenthesis")
    if depth:
        text = text + ")" * depth
        changes.append(f"added {depth} closing parenthesis")
    return text


def autocorrect(text: str, context: Context | None = None) -> Correction:
    """
    Apply simple rewrites to ``text``.

    Fixes common function-name typos, makes implicit products explicit
    (``2x`` → ``2*x``, ``(a)(b)`` → ``(a)*(b)``) and balances parentheses.
    The result is not guaranteed to be valid.
    """
    context = context or default_context()
    changes: list[str] = []

    corrected = text.strip()
    corrected = _fix_typos(corrected, changes)
    corrected = _fix_implicit_multiplication(corrected, context, changes)
    corrected = _balance_parentheses(corrected, changes)

    return Correction(original=text, corrected=corrected, changes=changes)


def _as_info(error: Union[ErrorInfo, MathKitError]) -> ErrorInfo:
    return error.to_info() if isinstance(error, MathKitError) else error


def hints_for(kind: ErrorKind) -> list[str]:
    """Generic advice for an error kind."""
    return list(HINTS.get(kind, []))


def suggest(
    text: str,
    error: Union[ErrorInfo, MathKitError],
    context: Context | None = None,
) -> list[str]:
    """Offline suggestions for ``error`` raised by ``text``."""
    info = _as_info(error)
    hints = hints_for(info.kind)

    correction = autocorrect(text, context)
    if correction.was_fixed and Validator(context).validate(correction.corrected).is_valid:
        hints.insert(0, f"Did you mean: {correction.corrected}")

    return hints


def advise(
    text: str,
    error: Union[ErrorInfo, MathKitError],
    advisor: Optional[Advisor] = None,
    context: Context | None = None,
) -> list[str]:
    """
    Suggestions from ``advisor`` when it answers, else the offline hints.

    Advisor failures are logged and never reach the caller.
    """
    info = _as_info(error)
    if advisor is not None:
        try:
            advice = [str(item) for item in advisor.suggest(text, info)]
        except Exception as exc:
            logger.warning(
                "Advisor failed, using offline hints",
                extra_data={"error": str(exc), "kind": info.kind.value},
            )
        else:
            if advice:
                return advice

    return suggest(text, info, context)
