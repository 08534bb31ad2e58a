"""Tests for numerical limit approximation."""

import math

import pytest

from mathkit.math.limits import limit, to_precision
from mathkit.parser import parse


class TestFiniteLimits:
    """Test two-sided limits at finite points."""

    def test_sin_x_over_x(self):
        """Test lim x→0 sin(x)/x = 1."""
        result = limit(parse("sin(x)/x"), "x", 0)
        assert float(result) == pytest.approx(1, abs=1e-5)
        assert result == "1.000000"

    def test_removable_discontinuity(self):
        """Test lim x→1 (x^2-1)/(x-1) = 2."""
        assert float(limit(parse("(x^2-1)/(x-1)"), "x", 1)) == pytest.approx(2, abs=1e-5)

    def test_continuous_point(self):
        """Test a continuous function gives its value."""
        assert limit(parse("x^2 + 1"), "x", 3) == "10.00000"

    def test_variable_name_case_insensitive(self):
        """Test the moving variable is matched ignoring case."""
        assert float(limit(parse("X + 1"), "x", 2)) == pytest.approx(3)

    def test_other_variables_from_scope(self):
        """Test other variables take values from scope."""
        assert float(limit(parse("a*x"), "x", 2, scope={"a": 5})) == pytest.approx(10)

    def test_jump_discontinuity(self):
        """Test one-sided values that disagree are reported as a jump."""
        result = limit(parse("abs(x)/x"), "x", 0)
        assert result == (
            "Limit may not exist or is a jump discontinuity "
            "(approaching -1.000000 from one side, 1.000000 from the other)."
        )

    def test_same_sign_infinity(self):
        """Test both sides overflowing the same way give ∞."""
        assert limit(parse("10^(1/x^2)"), "x", 0) == "∞"

    def test_opposite_infinities(self):
        """Test mixed non-finite samples give the non-finite message."""
        assert limit(parse("x/abs(x) * 1e300 * 1e300"), "x", 0) == (
            "Limit approaches Infinity or is undefined due to non-finite values near the point."
        )

    def test_nan_near_point(self):
        """Test an undefined sample gives the NaN message."""
        assert limit(parse("(x-1)^0.5"), "x", 1) == "Result is NaN near the limit point."

    def test_evaluation_failure(self):
        """Test other failures name the failing sample."""
        result = limit(parse("sqrt(x)"), "x", 0)
        assert result.startswith("Limit could not be numerically determined.")
        assert "x=-1e-07" in result

    def test_custom_delta(self):
        """Test the sampling step can be widened."""
        assert limit(parse("abs(x)"), "x", 0, delta=1e-3) == "0.001000000"

    def test_never_raises_for_undefined_variable(self):
        """Test a missing variable becomes a message, not an exception."""
        assert limit(parse("x + y"), "x", 0).startswith("Limit could not be numerically determined.")


class TestInfiniteLimits:
    """Test limits at +/-infinity."""

    @pytest.mark.parametrize("approaching", ["inf", "+inf", "∞", math.inf, "Infinity"])
    def test_positive_infinity_spellings(self, approaching):
        """Test every spelling of +infinity samples at a large positive point."""
        assert float(limit(parse("1/x"), "x", approaching)) == pytest.approx(0, abs=1e-5)

    def test_rational_function(self):
        """Test lim x→∞ (2x+1)/x = 2."""
        assert float(limit(parse("(2x+1)/x"), "x", "∞")) == pytest.approx(2, abs=1e-5)

    def test_negative_infinity(self):
        """Test lim x→-∞ x^3 samples at -1/delta."""
        assert float(limit(parse("x^3"), "x", "-inf")) == pytest.approx(-1e21)

    def test_diverges(self):
        """Test a value that overflows at the sample point is ∞ / -∞."""
        assert limit(parse("x^100"), "x", "inf") == "∞"
        assert limit(parse("x^101"), "x", "-∞") == "-∞"

    def test_nan_at_large_values(self):
        """Test an undefined sample at -infinity."""
        assert limit(parse("x^0.5"), "x", "-inf") == "Result is NaN at large negative values"

    def test_failure_at_large_values(self):
        """Test a failing sample at +infinity."""
        assert limit(parse("ln(-x)"), "x", "inf").startswith("Cannot evaluate at large values:")


class TestInvalidPoint:
    """Test unusable targets."""

    @pytest.mark.parametrize("approaching", ["abc", math.nan, None])
    def test_invalid(self, approaching):
        """Test an unusable target is reported, not raised."""
        assert limit(parse("x"), "x", approaching).startswith("Invalid limit point")


class TestToPrecision:
    """Test seven-significant-figure formatting."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (1.0, "1.000000"),
            (0.0, "0.000000"),
            (123.456789, "123.4568"),
            (-2.5, "-2.500000"),
            (0.00012345678, "0.0001234568"),
            (1e-7, "1.000000e-7"),
            (1e21, "1.000000e+21"),
            (9999999.9, "1.000000e+7"),
        ],
    )
    def test_to_precision(self, value, expected):
        """Test fixed vs exponential selection and digit counts."""
        assert to_precision(value) == expected
