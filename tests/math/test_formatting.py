"""Tests for the precision and formatting engine."""

import math
import threading

import pytest
from pydantic import ValidationError

from mathkit.core.errors import ErrorInfo, ErrorKind, InfiniteResultError, MathKitError
from mathkit.math import formatting
from mathkit.math.formatting import (
    PrecisionResult,
    PrecisionSettings,
    PrecisionSettingsHandle,
    count_significant_digits,
    format_engineering,
    format_fixed,
    format_with_precision,
    to_fraction,
)


@pytest.fixture
def settings() -> PrecisionSettings:
    return PrecisionSettings(decimal_places=4, rounding_mode="round", error_handling="graceful")


class TestFixed:
    """Test fixed-point rendering under each rounding mode."""

    @pytest.mark.parametrize(
        "value,places,mode,expected",
        [
            (2.675, 2, "round", "2.68"),
            (-2.675, 2, "round", "-2.68"),
            (2.675, 2, "floor", "2.67"),
            (-2.671, 2, "floor", "-2.68"),
            (2.671, 2, "ceil", "2.68"),
            (-2.679, 2, "truncate", "-2.67"),
            (2.665, 2, "banker", "2.66"),
            (2.675, 2, "banker", "2.68"),
            (0.5, 0, "banker", "0"),
            (1.5, 0, "banker", "2"),
            (3.0, 3, "round", "3.000"),
            (-0.0001, 2, "round", "0.00"),
        ],
    )
    def test_rounding_modes(self, value, places, mode, expected):
        """Test decimal rounding by mode."""
        assert format_fixed(value, places, mode) == expected

    def test_thousands_separator(self):
        """Test grouping of the integer part."""
        assert format_fixed(1234567.891, 2, separator=True) == "1,234,567.89"
        assert format_fixed(-1234.5, 1, separator=True) == "-1,234.5"

    def test_huge_value(self):
        """Test very large values keep every integer digit."""
        assert format_fixed(1e30, 2) == "1" + "0" * 30 + ".00"

    @pytest.mark.parametrize("value", [math.pi, -123.456789, 1e-3, 98765.4321, 0.1 + 0.2])
    @pytest.mark.parametrize("places", [0, 2, 5, 10])
    def test_fixed_within_tolerance(self, value, places):
        """Test the fixed rendering is within 10^-places of the value."""
        rendered = format_with_precision(value, PrecisionSettings(decimal_places=places)).fixed
        assert abs(float(rendered) - value) <= 10 ** -places


class TestScientificAndEngineering:
    """Test exponent forms."""

    def test_scientific(self, settings):
        assert format_with_precision(1234.5678, settings).scientific == "1.234568e+03"

    @pytest.mark.parametrize(
        "value,expected",
        [
            (1234.5678, "1.234568E+3"),
            (0.00123, "1.230000E-3"),
            (12345, "12.345000E+3"),
            (-4.5e-7, "-450.000000E-9"),
            (999999.99, "1.000000E+6"),
            (0, "0.000000E+0"),
            (7, "7.000000E+0"),
        ],
    )
    def test_engineering(self, value, expected):
        """Test the exponent is always a multiple of 3."""
        assert format_engineering(value) == expected


class TestFraction:
    """Test best-effort simple fractions."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (0.5, "1/2"),
            (0.25, "1/4"),
            (0.75, "3/4"),
            (1 / 3, "1/3"),
            (2 / 3, "2/3"),
            (1 / 6, "1/6"),
            (0.375, "3/8"),
            (0.7, "7/10"),
            (1.5, "3/2"),
            (-0.5, "-1/2"),
            (0.6, "3/5"),
        ],
    )
    def test_matches(self, value, expected):
        assert to_fraction(value) == expected

    @pytest.mark.parametrize("value", [2.0, 0.0, -3.0, math.pi, 0.123, 1 / 7])
    def test_no_match(self, value):
        """Test integers and unmatched values give no fraction."""
        assert to_fraction(value) is None


class TestSignificantDigits:
    """Test significant-digit counting."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("123.45", 5),
            ("0.00120", 3),
            ("1200", 4),
            ("-0.5", 1),
            ("1,234.50", 6),
            ("1.234568e+03", 7),
            ("0", 0),
            ("007", 1),
            ("10.0", 3),
        ],
    )
    def test_count(self, text, expected):
        assert count_significant_digits(text) == expected


class TestDisplay:
    """Test choosing the display form."""

    def test_fixed_by_default(self, settings):
        result = format_with_precision(3.14159265, settings)
        assert result.display == "3.1416"
        assert result.significant_digits == 5

    @pytest.mark.parametrize("value", [1e6, -2.5e7, 1e-7])
    def test_threshold_switches_to_scientific(self, settings, value):
        """Test large and tiny magnitudes display in scientific form."""
        result = format_with_precision(value, settings)
        assert result.display == result.scientific

    def test_forced_scientific(self, settings):
        result = format_with_precision(12.5, settings.with_changes(scientific_notation=True))
        assert result.display == "1.250000e+01"

    def test_significant_digits_follow_fixed_form(self, settings):
        """Test the count comes from the fixed rendering, not the display."""
        result = format_with_precision(12.5, settings.with_changes(scientific_notation=True))
        assert result.fixed == "12.5000"
        assert result.significant_digits == 6

    def test_custom_threshold(self, settings):
        result = format_with_precision(5000, settings.with_changes(scientific_threshold=1000))
        assert result.display == "5.000000e+03"

    def test_deterministic(self, settings):
        """Test formatting the same input twice gives equal results."""
        assert format_with_precision(2 / 3, settings) == format_with_precision(2 / 3, settings)


class TestExpressions:
    """Test formatting expression text."""

    def test_expression_with_scope(self, settings):
        result = format_with_precision("x/4", settings, scope={"x": 3})
        assert isinstance(result, PrecisionResult)
        assert result.value == 0.75
        assert result.fixed == "0.7500"
        assert result.fraction == "3/4"

    def test_graceful_returns_error_info(self, settings):
        result = format_with_precision("1/0", settings)
        assert isinstance(result, ErrorInfo)
        assert result.kind == ErrorKind.DIVISION_BY_ZERO

    def test_silent_returns_placeholder(self, settings):
        result = format_with_precision("sqrt(-1)", settings.with_changes(error_handling="silent"))
        assert isinstance(result, PrecisionResult)
        assert result.value is None
        assert result.fixed == result.display == "Error"

    def test_strict_raises(self, settings):
        with pytest.raises(MathKitError) as exc_info:
            format_with_precision("2 ** 3", settings.with_changes(error_handling="strict"))
        assert exc_info.value.kind == ErrorKind.INVALID_OPERATOR

    @pytest.mark.parametrize("value,sign", [(10**400, 1), (-(10**400), -1)])
    def test_huge_integer(self, settings, value, sign):
        """Test an int beyond float range is InfiniteResult under every policy."""
        result = format_with_precision(value, settings)
        assert isinstance(result, ErrorInfo)
        assert result.kind == ErrorKind.INFINITE_RESULT

        placeholder = format_with_precision(value, settings.with_changes(error_handling="silent"))
        assert placeholder.display == "Error"

        with pytest.raises(InfiniteResultError) as exc_info:
            format_with_precision(value, settings.with_changes(error_handling="strict"))
        assert exc_info.value.sign == sign

    def test_deeply_nested_expression(self, settings):
        """Test nesting past the parser limit follows the error policy."""
        text = "(" * 400 + "1" + ")" * 400
        result = format_with_precision(text, settings.with_changes(error_handling="silent"))
        assert result.display == "Error"
        assert format_with_precision(text, settings).kind == ErrorKind.UNEXPECTED_TOKEN

    @pytest.mark.parametrize("value,kind", [(math.nan, ErrorKind.UNDEFINED_RESULT), (-math.inf, ErrorKind.INFINITE_RESULT)])
    def test_non_finite_values_never_printed(self, settings, value, kind):
        """Test NaN and infinity are classified instead of rendered."""
        result = format_with_precision(value, settings)
        assert isinstance(result, ErrorInfo)
        assert result.kind == kind


class TestSettings:
    """Test settings records and the process-wide default."""

    def test_defaults_from_configuration(self):
        settings = PrecisionSettings()
        assert settings.decimal_places == 10
        assert settings.rounding_mode == "round"
        assert settings.error_handling == "graceful"

    @pytest.mark.parametrize(
        "field,value",
        [("decimal_places", -1), ("decimal_places", 101), ("rounding_mode", "nearest"), ("error_handling", "loud")],
    )
    def test_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            PrecisionSettings(**{field: value})

    def test_frozen(self, settings):
        with pytest.raises(ValidationError):
            settings.decimal_places = 2

    def test_default_swap(self):
        """Test replacing the default affects later calls only."""
        formatting.set_default_settings(PrecisionSettings(decimal_places=2))
        assert format_with_precision(math.pi).fixed == "3.14"

        formatting.update_default_settings(decimal_places=3)
        assert format_with_precision(math.pi).fixed == "3.142"

    def test_explicit_settings_override_default(self):
        formatting.set_default_settings(PrecisionSettings(decimal_places=2))
        assert format_with_precision(math.pi, PrecisionSettings(decimal_places=1)).fixed == "3.1"

    def test_handle_readers_see_whole_records(self):
        """Test concurrent readers only ever observe complete settings records."""
        handle = PrecisionSettingsHandle(PrecisionSettings(decimal_places=1, rounding_mode="floor"))
        records = [
            PrecisionSettings(decimal_places=1, rounding_mode="floor"),
            PrecisionSettings(decimal_places=7, rounding_mode="ceil"),
        ]
        seen = set()

        def writer():
            for i in range(2000):
                handle.set(records[i % 2])

        def reader():
            for _ in range(2000):
                current = handle.get()
                seen.add((current.decimal_places, current.rounding_mode))

        threads = [threading.Thread(target=writer)] + [threading.Thread(target=reader) for _ in range(3)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert seen <= {(1, "floor"), (7, "ceil")}
