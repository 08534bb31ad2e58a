"""Tests for structural expression validation."""

import pytest

from mathkit.core.errors import ErrorKind
from mathkit.parser import Context
from mathkit.parser.validator import Validator, validate


@pytest.fixture
def strict_validator(context):
    """Validator with unary minus after an operator rejected."""
    return Validator(context, allow_unary_minus=False)


@pytest.fixture
def validator(context):
    return Validator(context, allow_unary_minus=True)


class TestValidExpressions:
    """Test expressions that pass every check."""

    @pytest.mark.parametrize(
        "text",
        [
            "2+3*4",
            "(1 + 2) * (3 - 4)",
            "sin(x)^2 + cos(x)^2",
            "max(1, 2, 3) % 2",
            "-5 + sqrt(16)",
            "2x + 3y",
            "LOG(100) + Ln(e)",
            "1e-3 * 2",
            "abs(floor(-2.5)) + ceil(0.2) + round(1.5) + min(4, 5) + tan(0)",
        ],
    )
    def test_valid(self, validator, text):
        """Test balanced expressions with supported operators and functions."""
        result = validator.validate(text)
        assert result.is_valid
        assert result.error is None

    def test_module_function(self):
        """Test the module-level validate() helper."""
        assert validate("1 + 1").is_valid


class TestEmpty:
    """Test the empty-expression check."""

    @pytest.mark.parametrize("text", ["", "   ", "\t\n"])
    def test_empty(self, validator, text):
        """Test blank input is EmptyExpression."""
        result = validator.validate(text)
        assert not result.is_valid
        assert result.error.kind == ErrorKind.EMPTY_EXPRESSION


class TestParentheses:
    """Test parenthesis balance and the direction of the report."""

    def test_extra_closing(self, validator):
        """Test an unmatched ')' reports a missing opening parenthesis."""
        error = validator.validate("(1 + 2))").error
        assert error.kind == ErrorKind.UNBALANCED_PARENTHESES
        assert error.detail == "Missing opening parenthesis"
        assert error.position == 7

    def test_extra_opening(self, validator):
        """Test an unmatched '(' reports a missing closing parenthesis."""
        error = validator.validate("((1 + 2)").error
        assert error.kind == ErrorKind.UNBALANCED_PARENTHESES
        assert error.detail == "Missing closing parenthesis"

    def test_closing_before_opening(self, validator):
        """Test ')(' is unbalanced even though the counts match."""
        error = validator.validate(")1(").error
        assert error.detail == "Missing opening parenthesis"

    def test_parentheses_checked_before_operators(self, validator):
        """Test the parenthesis check takes precedence over operator checks."""
        assert validator.validate("(2 ** 3").error.kind == ErrorKind.UNBALANCED_PARENTHESES


class TestOperators:
    """Test operator-run and consecutive-operator checks."""

    @pytest.mark.parametrize("text,run", [("2 ** 3", "**"), ("1 && 2", "&&"), ("a == b", "=="), ("3 +* 4", "+*")])
    def test_invalid_operator(self, validator, text, run):
        """Test unsupported operator runs are InvalidOperator naming the run."""
        error = validator.validate(text).error
        assert error.kind == ErrorKind.INVALID_OPERATOR
        assert run in error.detail

    def test_single_unknown_operator(self, validator):
        """Test a lone operator-like character outside + - * / ^ % is rejected."""
        assert validator.validate("2 & 3").error.kind == ErrorKind.INVALID_OPERATOR

    @pytest.mark.parametrize("text,run", [("x=3", "="), ("2!", "!"), ("x != 3", "!=")])
    def test_assignment_and_factorial_marks(self, validator, text, run):
        """Test '=' and '!' are rejected as operators rather than left to the lexer."""
        error = validator.validate(text).error
        assert error.kind == ErrorKind.INVALID_OPERATOR
        assert f'"{run}"' in error.detail

    def test_spaced_operators(self, validator):
        """Test operators separated only by whitespace are ConsecutiveOperators."""
        error = validator.validate("3 + * 4").error
        assert error.kind == ErrorKind.CONSECUTIVE_OPERATORS

    @pytest.mark.parametrize("text", ["3*-2", "2^-1", "3 * -2", "4 - -1", "(1)/-2"])
    def test_unary_minus_accepted(self, validator, text):
        """Test a single '-' after another operator is a unary minus."""
        assert validator.validate(text).is_valid

    @pytest.mark.parametrize(
        "text,kind",
        [
            ("3*-2", ErrorKind.INVALID_OPERATOR),
            ("2^-1", ErrorKind.INVALID_OPERATOR),
            ("3 * -2", ErrorKind.CONSECUTIVE_OPERATORS),
        ],
    )
    def test_unary_minus_rejected_when_disabled(self, strict_validator, text, kind):
        """Test the restrictive mode rejects '-' after another operator."""
        assert strict_validator.validate(text).error.kind == kind

    def test_leading_minus_always_allowed(self, strict_validator):
        """Test a leading unary minus is never an operator run problem."""
        assert strict_validator.validate("-3 + 4").is_valid


class TestFunctions:
    """Test the function allow-list."""

    @pytest.mark.parametrize("text,name", [("foo(2)", "foo"), ("2 + sinh(x)", "sinh"), ("3exp(1)", "exp")])
    def test_unsupported(self, validator, text, name):
        """Test unknown function names are UnsupportedFunction."""
        error = validator.validate(text).error
        assert error.kind == ErrorKind.UNSUPPORTED_FUNCTION
        assert name in error.detail

    def test_allow_list_follows_context(self):
        """Test a restricted context narrows the allow-list."""
        trig = Context.from_mapping({"name": "Trig", "functions": ["sin", "cos"]})
        assert Validator(trig).validate("sin(1)").is_valid
        assert Validator(trig).validate("sqrt(4)").error.kind == ErrorKind.UNSUPPORTED_FUNCTION

    def test_check_raises(self, validator, assert_error_kind):
        """Test check() raises the same classified error."""
        assert_error_kind(ErrorKind.UNSUPPORTED_FUNCTION, validator.check, "bogus(1)")
