"""Tests for symbolic differentiation."""

import math

import pytest

from mathkit.core.errors import ErrorKind
from mathkit.parser import BinaryOp, Context, Number, Variable, differentiate, evaluate, parse, to_string


@pytest.fixture
def extended() -> Context:
    return Context.extended()


def slope(text: str, x: float, context: Context, h: float = 1e-6) -> float:
    """Central-difference slope of ``text`` at ``x``."""
    ast = parse(text, context)
    return (evaluate(ast, {"x": x + h}, context) - evaluate(ast, {"x": x - h}, context)) / (2 * h)


def derivative_at(text: str, x: float, context: Context, wrt: str = "x") -> float:
    return evaluate(differentiate(parse(text, context), wrt), {"x": x}, context)


class TestRules:
    """Test each differentiation rule against a numeric slope."""

    @pytest.mark.parametrize(
        "text,x",
        [
            ("x^3", 2),
            ("3*x^2 - 5*x + 1", 1.5),
            ("-x^2", 3),
            ("x^(1/2)", 4),
            ("sin(x)*cos(x)", 0.7),
            ("x/(1+x^2)", 0.5),
            ("2^x", 1.3),
            ("e^(2x)", 0.4),
            ("x^x", 1.7),
            ("sqrt(x^2+1)", 2),
            ("ln(x)", 3),
            ("log(x)", 3),
            ("tan(x)", 0.3),
            ("abs(x)", -2),
        ],
    )
    def test_standard_functions(self, context, text, x):
        assert derivative_at(text, x, context) == pytest.approx(slope(text, x, context), rel=1e-5)

    @pytest.mark.parametrize(
        "text,x",
        [
            ("exp(-x^2)", 0.8),
            ("asin(x/2)", 0.5),
            ("acos(x/2)", 0.5),
            ("atan(x)", 2),
            ("sinh(x) + cosh(x)", 1),
            ("tanh(x)", 0.5),
            ("log2(x)", 4),
            ("log10(x)", 4),
        ],
    )
    def test_extended_functions(self, extended, text, x):
        assert derivative_at(text, x, extended) == pytest.approx(slope(text, x, extended), rel=1e-5)

    def test_closed_form(self, context):
        """Test d/dx (x^3 + sin(x)) at 2 is 12 + cos(2)."""
        assert derivative_at("x^3 + sin(x)", 2, context) == pytest.approx(12 + math.cos(2))

    def test_cosine(self, context):
        assert derivative_at("cos(x)", 1, context) == pytest.approx(-math.sin(1))


class TestStructure:
    """Test the shape of derivative trees."""

    def test_power_rule_is_not_simplified(self):
        assert differentiate(parse("x^2")) == BinaryOp(
            "*",
            BinaryOp("*", Number(2), BinaryOp("^", Variable("x"), Number(1))),
            Number(1),
        )

    def test_chain_rule_rendering(self):
        assert to_string(differentiate(parse("sin(x)"))) == "cos(x) * 1"

    def test_constant(self):
        assert differentiate(parse("42")) == Number(0)

    def test_other_variable_is_constant(self, context):
        """Test variables other than the one differentiated by have slope 0."""
        ast = differentiate(parse("y^2 + 3y"), "x")
        assert evaluate(ast, {"y": 5}, context) == 0

    def test_by_named_variable(self, context):
        ast = differentiate(parse("t^2 * x"), "t")
        assert evaluate(ast, {"t": 3, "x": 2}, context) == pytest.approx(12)

    def test_case_insensitive_variable(self, context):
        assert evaluate(differentiate(parse("X^2"), "x"), {"x": 3}, context) == pytest.approx(6)


class TestUnsupported:
    """Test expressions with no derivative rule."""

    @pytest.mark.parametrize("text", ["x % 2", "floor(x)", "round(x)", "max(x, 1)"])
    def test_unsupported(self, assert_error_kind, text):
        assert_error_kind(ErrorKind.UNSUPPORTED_FUNCTION, differentiate, parse(text))
