"""
Shared pytest fixtures and utilities for testing the mathkit core.

This module provides:
- A standard evaluation context
- Helpers for evaluating expression text in one step
- A helper asserting that a call fails with a given ErrorKind
- Isolation of the process-wide precision settings
"""

import pytest
from typing import Any, Callable

from mathkit.core.errors import ErrorKind, MathKitError
from mathkit.math import formatting
from mathkit.parser import Context, evaluate, parse


@pytest.fixture
def context() -> Context:
    """The standard context (built fresh, independent of MATHKIT_CONTEXT_FILE)."""
    return Context.standard()


@pytest.fixture
def calc(context: Context) -> Callable[..., float]:
    """Parse and evaluate expression text."""
    def _calc(text: str, **scope: float) -> float:
        return evaluate(parse(text, context), scope, context)
    return _calc


@pytest.fixture
def assert_error_kind():
    """Helper to assert that a call raises MathKitError of the expected kind."""
    def _assert_kind(
        kind: ErrorKind,
        func: Callable[..., Any],
        *args: Any,
        **kwargs: Any,
    ) -> MathKitError:
        """
        Assert that ``func(*args, **kwargs)`` raises with ``kind``.

        Returns:
            The MathKitError that was raised
        """
        with pytest.raises(MathKitError) as exc_info:
            func(*args, **kwargs)

        assert exc_info.value.kind == kind, f"Expected {kind}, got {exc_info.value.kind}: {exc_info.value}"
        return exc_info.value

    return _assert_kind


@pytest.fixture(autouse=True)
def isolated_default_precision():
    """Restore the process-wide precision settings after each test."""
    saved = formatting.get_default_settings()
    yield
    formatting.set_default_settings(saved)
