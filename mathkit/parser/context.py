"""
Context system for expression parsing and evaluation.

A context defines the mathematical environment:
- Available functions, their arity and implementation
- Named constants and their values
- Operator precedence and associativity

The same context drives the validator's function allow-list, the parser's
precedence climbing and the evaluator's dispatch table, so the three always
agree on what an expression may contain.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Callable

import numpy as np
import yaml

from ..core.errors import ErrorKind, EvaluationError


class Associativity(Enum):
    """Operator associativity."""

    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class OperatorConfig:
    """Configuration for an operator."""

    symbol: str
    precedence: int
    associativity: Associativity
    binary: bool = True  # True for binary, False for unary


@dataclass(frozen=True)
class FunctionConfig:
    """Configuration for a function."""

    name: str
    evaluator: Callable[..., float]
    min_args: int = 1
    max_args: int | None = 1  # None means unlimited

    def accepts(self, count: int) -> bool:
        if count < self.min_args:
            return False
        return self.max_args is None or count <= self.max_args

    def arity_text(self) -> str:
        if self.max_args is None:
            return f"at least {self.min_args} argument(s)"
        if self.min_args == self.max_args:
            return f"{self.min_args} argument(s)"
        return f"{self.min_args} to {self.max_args} arguments"


def _sqrt(x: float) -> float:
    if x < 0:
        raise EvaluationError(
            ErrorKind.DOMAIN_ERROR,
            detail=f"sqrt of negative number {x:g}",
        )
    return math.sqrt(x)


def _round_half_up(x: float) -> float:
    # Halves round toward +infinity, unlike Python's round()
    return float(math.floor(x + 0.5))


def _largest(*xs: float) -> float:
    return max(xs)


def _smallest(*xs: float) -> float:
    return min(xs)


def _whole(x: float, name: str) -> int:
    if x < 0 or not float(x).is_integer():
        raise ValueError(f"{name}() needs a non-negative integer")
    return int(x)


def _factorial(n: float) -> float:
    k = _whole(n, "factorial")
    # 171! no longer fits in a double
    if k > 170:
        return math.inf
    return float(math.factorial(k))


def _ncr(n: float, r: float) -> float:
    return float(math.comb(_whole(n, "ncr"), _whole(r, "ncr")))


def _npr(n: float, r: float) -> float:
    return float(math.perm(_whole(n, "npr"), _whole(r, "npr")))


def _mode(*xs: float) -> float:
    return max(xs, key=xs.count)


BUILTIN_FUNCTIONS: dict[str, FunctionConfig] = {
    "sin": FunctionConfig("sin", math.sin),
    "cos": FunctionConfig("cos", math.cos),
    "tan": FunctionConfig("tan", math.tan),
    "log": FunctionConfig("log", math.log10),
    "ln": FunctionConfig("ln", math.log),
    "sqrt": FunctionConfig("sqrt", _sqrt),
    "abs": FunctionConfig("abs", abs),
    "floor": FunctionConfig("floor", lambda x: float(math.floor(x))),
    "ceil": FunctionConfig("ceil", lambda x: float(math.ceil(x))),
    "round": FunctionConfig("round", _round_half_up),
    "max": FunctionConfig("max", _largest, min_args=1, max_args=None),
    "min": FunctionConfig("min", _smallest, min_args=1, max_args=None),
}

# Scientific, combinatoric and statistical functions, opt-in via Context.extended()
EXTENDED_FUNCTIONS: dict[str, FunctionConfig] = {
    "exp": FunctionConfig("exp", math.exp),
    "asin": FunctionConfig("asin", math.asin),
    "acos": FunctionConfig("acos", math.acos),
    "atan": FunctionConfig("atan", math.atan),
    "sinh": FunctionConfig("sinh", math.sinh),
    "cosh": FunctionConfig("cosh", math.cosh),
    "tanh": FunctionConfig("tanh", math.tanh),
    "asinh": FunctionConfig("asinh", math.asinh),
    "acosh": FunctionConfig("acosh", math.acosh),
    "atanh": FunctionConfig("atanh", math.atanh),
    "log2": FunctionConfig("log2", math.log2),
    "log10": FunctionConfig("log10", math.log10),
    "pow": FunctionConfig("pow", math.pow, min_args=2, max_args=2),
    "factorial": FunctionConfig("factorial", _factorial),
    "ncr": FunctionConfig("ncr", _ncr, min_args=2, max_args=2),
    "npr": FunctionConfig("npr", _npr, min_args=2, max_args=2),
    "mean": FunctionConfig("mean", lambda *xs: float(np.mean(xs)), max_args=None),
    "median": FunctionConfig("median", lambda *xs: float(np.median(xs)), max_args=None),
    "mode": FunctionConfig("mode", _mode, max_args=None),
    "stddev": FunctionConfig("stddev", lambda *xs: float(np.std(xs)), max_args=None),
    "variance": FunctionConfig("variance", lambda *xs: float(np.var(xs)), max_args=None),
}

BUILTIN_CONSTANTS: dict[str, float] = {
    "pi": math.pi,
    "e": math.e,
}

UNARY_PRECEDENCE = 3


def _standard_operators() -> dict[str, OperatorConfig]:
    return {
        "+": OperatorConfig("+", precedence=1, associativity=Associativity.LEFT),
        "-": OperatorConfig("-", precedence=1, associativity=Associativity.LEFT),
        "*": OperatorConfig("*", precedence=2, associativity=Associativity.LEFT),
        "/": OperatorConfig("/", precedence=2, associativity=Associativity.LEFT),
        "%": OperatorConfig("%", precedence=2, associativity=Associativity.LEFT),
        "^": OperatorConfig("^", precedence=4, associativity=Associativity.RIGHT),
        # Unary minus sits between the multiplicative operators and ^
        "-u": OperatorConfig(
            "-u", precedence=UNARY_PRECEDENCE, associativity=Associativity.RIGHT, binary=False
        ),
        "+u": OperatorConfig(
            "+u", precedence=UNARY_PRECEDENCE, associativity=Associativity.RIGHT, binary=False
        ),
    }


@dataclass(frozen=True)
class Context:
    """
    Mathematical context defining the parsing and evaluation environment.

    Attributes:
        name: Context name (e.g., "Standard")
        constants: Named constants, keyed by lower-cased name
        functions: Available functions, keyed by lower-cased name
        operators: Operator precedence and associativity
    """

    name: str
    constants: dict[str, float] = field(default_factory=dict)
    functions: dict[str, FunctionConfig] = field(default_factory=dict)
    operators: dict[str, OperatorConfig] = field(default_factory=dict)

    @classmethod
    def standard(cls) -> "Context":
        """
        Create the standard context.

        Functions: sin cos tan log ln sqrt abs floor ceil round max min
        Constants: pi, e
        """
        return cls(
            name="Standard",
            constants=dict(BUILTIN_CONSTANTS),
            functions=dict(BUILTIN_FUNCTIONS),
            operators=_standard_operators(),
        )

    @classmethod
    def extended(cls) -> "Context":
        """
        Create the standard context plus the extended function table.

        Adds exp, inverse and hyperbolic trigonometry, log2/log10, pow,
        factorial/ncr/npr and mean/median/mode/stddev/variance.
        """
        return cls(
            name="Extended",
            constants=dict(BUILTIN_CONSTANTS),
            functions={**BUILTIN_FUNCTIONS, **EXTENDED_FUNCTIONS},
            operators=_standard_operators(),
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Context":
        """
        Load a context from a YAML file.

        The file may pick the extended table as its base, restrict the
        function table to a subset of the base functions and add constants::

            name: Trig
            base: extended
            functions: [sin, cos, tan, sqrt, sinh]
            constants:
              tau: 6.283185307179586

        Args:
            path: Path to YAML configuration file

        Returns:
            Context instance

        Raises:
            ValueError: If the file names a function with no implementation
        """
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        return cls.from_mapping(data)

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "Context":
        """Build a context from an already-parsed mapping (see from_yaml)."""
        base_name = str(data.get("base", "standard")).lower()
        if base_name == "standard":
            base = cls.standard()
        elif base_name == "extended":
            base = cls.extended()
        else:
            raise ValueError(f"Unknown base context: {base_name}")

        functions = base.functions
        if "functions" in data:
            functions = {}
            for entry in data["functions"] or []:
                func_name = entry["name"] if isinstance(entry, dict) else str(entry)
                key = func_name.lower()
                if key not in base.functions:
                    raise ValueError(f"Unknown function in context: {func_name}")
                functions[key] = base.functions[key]

        constants = dict(base.constants)
        for const_name, value in (data.get("constants") or {}).items():
            constants[str(const_name).lower()] = float(value)

        return replace(
            base,
            name=data.get("name", base.name),
            constants=constants,
            functions=functions,
        )

    def get_operator_precedence(self, op: str, is_unary: bool = False) -> int:
        """
        Get the precedence of an operator.

        Args:
            op: Operator symbol
            is_unary: Whether this is a unary operator

        Returns:
            Precedence value (higher = binds tighter)
        """
        key = f"{op}u" if is_unary else op
        if key in self.operators:
            return self.operators[key].precedence
        return 0  # Unknown operator

    def get_operator_associativity(self, op: str, is_unary: bool = False) -> Associativity:
        """Get the associativity of an operator."""
        key = f"{op}u" if is_unary else op
        if key in self.operators:
            return self.operators[key].associativity
        return Associativity.LEFT

    def is_binary_operator(self, op: str) -> bool:
        config = self.operators.get(op)
        return config is not None and config.binary

    def is_constant(self, name: str) -> bool:
        """Check if name is a constant in this context (case-insensitive)."""
        return name.lower() in self.constants

    def is_function(self, name: str) -> bool:
        """Check if name is a function in this context (case-insensitive)."""
        return name.lower() in self.functions

    def get_constant_value(self, name: str) -> float:
        """Get the value of a constant."""
        return self.constants[name.lower()]

    def get_function(self, name: str) -> FunctionConfig | None:
        return self.functions.get(name.lower())

    @property
    def function_names(self) -> list[str]:
        return sorted(self.functions)


_default_context: Context | None = None


def default_context() -> Context:
    """
    Return the process-wide default context.

    Uses ``MATHKIT_CONTEXT_FILE`` when set, else the standard context.
    """
    global _default_context
    if _default_context is None:
        from ..core.config import get_settings

        context_file = get_settings().CONTEXT_FILE
        _default_context = Context.from_yaml(context_file) if context_file else Context.standard()
    return _default_context
