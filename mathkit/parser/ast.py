"""
Abstract Syntax Tree (AST) node definitions for mathematical expressions.

The tree is a closed set of five immutable variants:

    Number | Variable | UnaryOp | BinaryOp | FunctionCall

Nodes own their children exclusively and are never mutated after the parser
builds them. Operations over the tree (evaluation, rendering) are visitors.
"""

from dataclasses import dataclass
from typing import Any, Iterator, Protocol, Union


class ASTVisitor(Protocol):
    """
    Visitor protocol for traversing AST nodes.

    Implementations provide evaluation, string rendering, etc.
    """

    def visit_number(self, node: "Number") -> Any:
        ...

    def visit_variable(self, node: "Variable") -> Any:
        ...

    def visit_unary_op(self, node: "UnaryOp") -> Any:
        ...

    def visit_binary_op(self, node: "BinaryOp") -> Any:
        ...

    def visit_function_call(self, node: "FunctionCall") -> Any:
        ...


@dataclass(frozen=True)
class Number:
    """
    Represents a numeric literal.

    Examples: 42, 3.14, 1e-10
    """

    value: float

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_number(self)


@dataclass(frozen=True)
class Variable:
    """
    Represents a variable or a named constant.

    Examples: x, y, theta, pi
    """

    name: str

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_variable(self)


@dataclass(frozen=True)
class UnaryOp:
    """
    Represents a prefix operation.

    Operators: -, +
    """

    op: str
    operand: "ASTNode"

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_unary_op(self)


@dataclass(frozen=True)
class BinaryOp:
    """
    Represents a binary operation.

    Operators: +, -, *, /, %, ^
    """

    op: str
    left: "ASTNode"
    right: "ASTNode"

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_binary_op(self)


@dataclass(frozen=True)
class FunctionCall:
    """
    Represents a function call.

    Examples: sin(x), sqrt(2), max(a, b)
    """

    name: str
    args: tuple["ASTNode", ...] = ()

    def __post_init__(self) -> None:
        # Accept any sequence but always store an immutable tuple
        if not isinstance(self.args, tuple):
            object.__setattr__(self, "args", tuple(self.args))

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_function_call(self)


ASTNode = Union[Number, Variable, UnaryOp, BinaryOp, FunctionCall]

NODE_TYPES = (Number, Variable, UnaryOp, BinaryOp, FunctionCall)


def iter_nodes(node: ASTNode) -> Iterator[ASTNode]:
    """Yield every node of the tree in pre-order."""
    yield node
    if isinstance(node, UnaryOp):
        yield from iter_nodes(node.operand)
    elif isinstance(node, BinaryOp):
        yield from iter_nodes(node.left)
        yield from iter_nodes(node.right)
    elif isinstance(node, FunctionCall):
        for arg in node.args:
            yield from iter_nodes(arg)


def free_variables(node: ASTNode) -> set[str]:
    """Return the lower-cased names of all variables referenced by the tree."""
    return {n.name.lower() for n in iter_nodes(node) if isinstance(n, Variable)}


def depth(node: ASTNode) -> int:
    """Return the number of levels in the tree (a lone leaf has depth 1)."""
    deepest = 0
    stack: list[tuple[ASTNode, int]] = [(node, 1)]
    while stack:
        current, level = stack.pop()
        deepest = max(deepest, level)
        if isinstance(current, UnaryOp):
            stack.append((current.operand, level + 1))
        elif isinstance(current, BinaryOp):
            stack.append((current.left, level + 1))
            stack.append((current.right, level + 1))
        elif isinstance(current, FunctionCall):
            stack.extend((arg, level + 1) for arg in current.args)
    return deepest
