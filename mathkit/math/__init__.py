"""
Numerical routines built on the parser: limits, linear algebra,
formatting, surface sampling and hints.
"""

from .limits import limit, to_precision
from .linalg import Matrix, solve_linear_system
from .formatting import (
    PrecisionSettings,
    PrecisionSettingsHandle,
    PrecisionResult,
    count_significant_digits,
    format_with_precision,
    get_default_settings,
    set_default_settings,
    update_default_settings,
)
from .surface import SurfaceGrid, sample_surface
from .hints import Advisor, Correction, advise, autocorrect, hints_for, suggest

__all__ = [
    "limit",
    "to_precision",
    "Matrix",
    "solve_linear_system",
    "PrecisionSettings",
    "PrecisionSettingsHandle",
    "PrecisionResult",
    "count_significant_digits",
    "format_with_precision",
    "get_default_settings",
    "set_default_settings",
    "update_default_settings",
    "SurfaceGrid",
    "sample_surface",
    "Advisor",
    "Correction",
    "advise",
    "autocorrect",
    "hints_for",
    "suggest",
]
