"""
AST Visitor implementations.

Visitors traverse and operate on AST nodes:
- StringVisitor: Convert AST to canonical text that parses back to the same tree
- EvalVisitor: Evaluate AST to a float against a variable scope
- StepEvalVisitor: EvalVisitor that records each operation
- DiffVisitor: Symbolic derivative with respect to one variable
"""

import math
from typing import Any, Callable, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from ..core.errors import ErrorKind, EvaluationError, InfiniteResultError
from ..core.logging import get_context_logger
from .ast import ASTNode, BinaryOp, FunctionCall, Number, UnaryOp, Variable, free_variables
from .context import Context, default_context

logger = get_context_logger(__name__, component="evaluator")


class StringVisitor:
    """
    Convert AST to string representation.

    Examples:
    - BinaryOp('+', Number(2), Number(3)) → "2 + 3"
    - FunctionCall('sin', (Variable('x'),)) → "sin(x)"
    """

    def __init__(self, context: Context | None = None):
        self.context = context or default_context()

    def visit_number(self, node: Number) -> str:
        # Format number nicely (remove .0 for integers)
        if math.isfinite(node.value) and node.value == int(node.value):
            return str(int(node.value))
        return repr(node.value)

    def visit_variable(self, node: Variable) -> str:
        return node.name

    def visit_unary_op(self, node: UnaryOp) -> str:
        operand_str = node.operand.accept(self)

        if isinstance(node.operand, BinaryOp) and self._get_precedence(node.operand) < self.context.get_operator_precedence(node.op, is_unary=True):
            operand_str = f"({operand_str})"

        return f"{node.op}{operand_str}"

    def visit_binary_op(self, node: BinaryOp) -> str:
        left_str = node.left.accept(self)
        right_str = node.right.accept(self)

        left_prec = self._get_precedence(node.left)
        right_prec = self._get_precedence(node.right)
        op_prec = self.context.get_operator_precedence(node.op)

        if node.op == "^":
            # Right associative: only the left side needs protecting at equal precedence
            if left_prec and left_prec <= op_prec:
                left_str = f"({left_str})"
            if right_prec and right_prec < op_prec:
                right_str = f"({right_str})"
        else:
            if left_prec and left_prec < op_prec:
                left_str = f"({left_str})"
            if right_prec and right_prec <= op_prec:
                right_str = f"({right_str})"

        return f"{left_str} {node.op} {right_str}"

    def visit_function_call(self, node: FunctionCall) -> str:
        args_str = ", ".join(arg.accept(self) for arg in node.args)
        return f"{node.name}({args_str})"

    def _get_precedence(self, node: Any) -> int:
        """Get precedence of a node for parenthesization (0 = atom)."""
        if isinstance(node, BinaryOp):
            return self.context.get_operator_precedence(node.op)
        if isinstance(node, UnaryOp):
            return self.context.get_operator_precedence(node.op, is_unary=True)
        if isinstance(node, Number) and node.value < 0:
            return self.context.get_operator_precedence("-", is_unary=True)
        return 0


class EvalVisitor:
    """
    Evaluate AST to a float.

    Every intermediate result is checked: NaN raises UndefinedResult and
    +/-infinity raises InfiniteResult, so callers never see non-finite values.

    Args:
        scope: Variable name → value mappings (names are matched case-insensitively)
        context: Mathematical context
    """

    def __init__(self, scope: Mapping[str, float] | None = None, context: Context | None = None):
        self.scope = {str(name).lower(): value for name, value in (scope or {}).items()}
        self.context = context or default_context()

    def visit_number(self, node: Number) -> float:
        return self._checked(node.value, "number literal")

    def visit_variable(self, node: Variable) -> float:
        name = node.name.lower()
        if name in self.scope:
            return self._checked(float(self.scope[name]), f"variable '{node.name}'")
        if self.context.is_constant(name):
            return self.context.get_constant_value(name)
        raise EvaluationError(
            ErrorKind.UNDEFINED_VARIABLE,
            detail=f"'{node.name}' has no value",
        )

    def visit_unary_op(self, node: UnaryOp) -> float:
        operand = node.operand.accept(self)

        if node.op == "-":
            return -operand
        if node.op == "+":
            return operand
        raise EvaluationError(ErrorKind.UNEXPECTED_TOKEN, detail=f"Unknown unary operator: {node.op}")

    def visit_binary_op(self, node: BinaryOp) -> float:
        left = node.left.accept(self)
        right = node.right.accept(self)

        if node.op == "+":
            result = left + right
        elif node.op == "-":
            result = left - right
        elif node.op == "*":
            result = left * right
        elif node.op == "/":
            if right == 0:
                raise EvaluationError(ErrorKind.DIVISION_BY_ZERO, detail="Cannot divide by zero")
            result = left / right
        elif node.op == "%":
            if right == 0:
                raise EvaluationError(ErrorKind.DIVISION_BY_ZERO, detail="Modulo by zero")
            # Truncated remainder: the result takes the sign of the dividend
            result = math.fmod(left, right)
        elif node.op == "^":
            result = self._power(left, right)
        else:
            raise EvaluationError(ErrorKind.UNEXPECTED_TOKEN, detail=f"Unknown operator: {node.op}")

        return self._checked(result, f"'{node.op}'")

    def visit_function_call(self, node: FunctionCall) -> float:
        config = self.context.get_function(node.name)
        if config is None:
            raise EvaluationError(
                ErrorKind.UNSUPPORTED_FUNCTION,
                detail=f'Function "{node.name}" is not supported',
            )
        if not config.accepts(len(node.args)):
            raise EvaluationError(
                ErrorKind.UNSUPPORTED_FUNCTION,
                detail=f"{config.name}() takes {config.arity_text()}, got {len(node.args)}",
            )

        args = [arg.accept(self) for arg in node.args]

        try:
            result = config.evaluator(*args)
        except ValueError:
            raise EvaluationError(
                ErrorKind.DOMAIN_ERROR,
                detail=f"{config.name}() is undefined for {', '.join(f'{a:g}' for a in args)}",
            ) from None
        except OverflowError:
            raise InfiniteResultError(detail=f"{config.name}() overflowed") from None

        return self._checked(float(result), f"{config.name}()")

    def _power(self, base: float, exponent: float) -> float:
        if base == 0 and exponent < 0:
            raise EvaluationError(
                ErrorKind.DIVISION_BY_ZERO,
                detail="Zero raised to a negative power",
            )
        try:
            result = base ** exponent
        except OverflowError:
            odd = exponent.is_integer() and int(exponent) % 2 == 1
            raise InfiniteResultError(sign=-1 if base < 0 and odd else 1, detail="'^' overflowed") from None
        if isinstance(result, complex):
            raise EvaluationError(
                ErrorKind.UNDEFINED_RESULT,
                detail="Negative base with a fractional exponent",
            )
        return result

    @staticmethod
    def _checked(value: float, where: str) -> float:
        if math.isnan(value):
            raise EvaluationError(ErrorKind.UNDEFINED_RESULT, detail=f"{where} produced NaN")
        if math.isinf(value):
            raise InfiniteResultError(sign=1 if value > 0 else -1, detail=f"{where} produced infinity")
        return value


def evaluate(
    ast: ASTNode,
    scope: Mapping[str, float] | None = None,
    context: Context | None = None,
) -> float:
    """
    Evaluate ``ast`` against ``scope``.

    Raises:
        EvaluationError: classified failure; never returns NaN or infinity
    """
    result = ast.accept(EvalVisitor(scope, context))
    logger.debug("Evaluated expression", extra_data={"result": result})
    return result


def to_string(ast: ASTNode, context: Context | None = None) -> str:
    """Render ``ast`` as canonical expression text."""
    return ast.accept(StringVisitor(context))


def _call(name: str, arg: ASTNode) -> FunctionCall:
    return FunctionCall(name, (arg,))


def _reciprocal(denominator: ASTNode) -> BinaryOp:
    return BinaryOp("/", Number(1), denominator)


def _squared(node: ASTNode) -> BinaryOp:
    return BinaryOp("^", node, Number(2))


def _one_minus_square(u: ASTNode) -> BinaryOp:
    return BinaryOp("-", Number(1), _squared(u))


# f'(u) for each differentiable single-argument function
DERIVATIVES: dict[str, Callable[[ASTNode], ASTNode]] = {
    "sin": lambda u: _call("cos", u),
    "cos": lambda u: UnaryOp("-", _call("sin", u)),
    "tan": lambda u: _reciprocal(_squared(_call("cos", u))),
    "ln": lambda u: _reciprocal(u),
    "log": lambda u: _reciprocal(BinaryOp("*", u, _call("ln", Number(10)))),
    "log10": lambda u: _reciprocal(BinaryOp("*", u, _call("ln", Number(10)))),
    "log2": lambda u: _reciprocal(BinaryOp("*", u, _call("ln", Number(2)))),
    "exp": lambda u: _call("exp", u),
    "sqrt": lambda u: _reciprocal(BinaryOp("*", Number(2), _call("sqrt", u))),
    "abs": lambda u: BinaryOp("/", u, _call("abs", u)),
    "asin": lambda u: _reciprocal(_call("sqrt", _one_minus_square(u))),
    "acos": lambda u: UnaryOp("-", _reciprocal(_call("sqrt", _one_minus_square(u)))),
    "atan": lambda u: _reciprocal(BinaryOp("+", Number(1), _squared(u))),
    "sinh": lambda u: _call("cosh", u),
    "cosh": lambda u: _call("sinh", u),
    "tanh": lambda u: _reciprocal(_squared(_call("cosh", u))),
}


class DiffVisitor:
    """
    Symbolic derivative of an AST with respect to one variable.

    Applies the sum, product, quotient, power and chain rules. The result is
    a new tree that is not simplified, so ``d/dx x^2`` comes back as
    ``2 * x ^ 1 * 1``.

    Args:
        wrt: Name of the variable to differentiate by (case-insensitive)
    """

    def __init__(self, wrt: str = "x"):
        self.wrt = wrt.lower()

    def visit_number(self, node: Number) -> ASTNode:
        return Number(0)

    def visit_variable(self, node: Variable) -> ASTNode:
        return Number(1 if node.name.lower() == self.wrt else 0)

    def visit_unary_op(self, node: UnaryOp) -> ASTNode:
        return UnaryOp(node.op, node.operand.accept(self))

    def visit_binary_op(self, node: BinaryOp) -> ASTNode:
        u, v = node.left, node.right

        if node.op in ("+", "-"):
            return BinaryOp(node.op, u.accept(self), v.accept(self))
        if node.op == "*":
            return BinaryOp(
                "+",
                BinaryOp("*", u.accept(self), v),
                BinaryOp("*", u, v.accept(self)),
            )
        if node.op == "/":
            numerator = BinaryOp(
                "-",
                BinaryOp("*", u.accept(self), v),
                BinaryOp("*", u, v.accept(self)),
            )
            return BinaryOp("/", numerator, _squared(v))
        if node.op == "^":
            return self._power(node)

        raise EvaluationError(
            ErrorKind.UNSUPPORTED_FUNCTION,
            detail=f"Cannot differentiate the '{node.op}' operator",
        )

    def _power(self, node: BinaryOp) -> ASTNode:
        base, exponent = node.left, node.right

        if self.wrt not in free_variables(exponent):
            # n * u^(n-1) * u'
            if isinstance(exponent, Number):
                lowered: ASTNode = Number(exponent.value - 1)
            else:
                lowered = BinaryOp("-", exponent, Number(1))
            return BinaryOp(
                "*",
                BinaryOp("*", exponent, BinaryOp("^", base, lowered)),
                base.accept(self),
            )

        if self.wrt not in free_variables(base):
            # a^v * ln(a) * v'
            return BinaryOp(
                "*",
                BinaryOp("*", node, _call("ln", base)),
                exponent.accept(self),
            )

        # u^v * (v' * ln(u) + v * u' / u)
        return BinaryOp(
            "*",
            node,
            BinaryOp(
                "+",
                BinaryOp("*", exponent.accept(self), _call("ln", base)),
                BinaryOp("*", exponent, BinaryOp("/", base.accept(self), base)),
            ),
        )

    def visit_function_call(self, node: FunctionCall) -> ASTNode:
        rule = DERIVATIVES.get(node.name.lower())
        if rule is None or len(node.args) != 1:
            raise EvaluationError(
                ErrorKind.UNSUPPORTED_FUNCTION,
                detail=f"Cannot differentiate {node.name}() with {len(node.args)} argument(s)",
            )
        (arg,) = node.args
        return BinaryOp("*", rule(arg), arg.accept(self))


class EvaluationStep(BaseModel):
    """One recorded step of an evaluation"""

    model_config = ConfigDict(frozen=True)

    kind: Literal["original", "substitution", "operation", "result"]
    description: str
    expression: str
    result: Optional[float] = None


class StepTrace(BaseModel):
    """Value of an expression together with how it was reached"""

    model_config = ConfigDict(frozen=True)

    result: float
    steps: list[EvaluationStep]


class StepEvalVisitor(EvalVisitor):
    """
    EvalVisitor that records every operator and function application.

    Steps are appended in evaluation order (innermost first).
    """

    def __init__(self, scope: Mapping[str, float] | None = None, context: Context | None = None):
        super().__init__(scope, context)
        self.steps: list[EvaluationStep] = []
        self._renderer = StringVisitor(self.context)

    def visit_unary_op(self, node: UnaryOp) -> float:
        return self._record(node, super().visit_unary_op(node))

    def visit_binary_op(self, node: BinaryOp) -> float:
        return self._record(node, super().visit_binary_op(node))

    def visit_function_call(self, node: FunctionCall) -> float:
        return self._record(node, super().visit_function_call(node))

    def _record(self, node: ASTNode, result: float) -> float:
        text = node.accept(self._renderer)
        self.steps.append(
            EvaluationStep(kind="operation", description=f"Evaluate {text}", expression=text, result=result)
        )
        return result


def evaluate_with_steps(
    ast: ASTNode,
    scope: Mapping[str, float] | None = None,
    context: Context | None = None,
) -> StepTrace:
    """
    Evaluate ``ast`` and record the steps taken.

    The trace opens with the original expression, then the substituted
    values (when a scope is given), then one step per operation, and ends
    with the final result.

    Raises:
        EvaluationError: as for evaluate()
    """
    visitor = StepEvalVisitor(scope, context)
    text = ast.accept(StringVisitor(visitor.context))

    result = ast.accept(visitor)

    steps = [EvaluationStep(kind="original", description="Original expression", expression=text)]
    if scope:
        substitutions = ", ".join(f"{name} = {value:g}" for name, value in scope.items())
        steps.append(
            EvaluationStep(kind="substitution", description=f"Substitute values: {substitutions}", expression=text)
        )
    steps.extend(visitor.steps)
    steps.append(EvaluationStep(kind="result", description="Final result", expression=text, result=result))

    return StepTrace(result=result, steps=steps)


def differentiate(ast: ASTNode, wrt: str = "x") -> ASTNode:
    """
    Differentiate ``ast`` with respect to ``wrt``.

    Raises:
        EvaluationError: UnsupportedFunction for '%' and for functions with no derivative rule
    """
    return ast.accept(DiffVisitor(wrt))
