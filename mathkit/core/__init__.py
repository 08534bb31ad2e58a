"""Core utilities package"""

from .config import settings, get_settings, Settings
from .logging import setup_logging, get_context_logger
from .errors import (
    ErrorKind,
    ErrorInfo,
    MathKitError,
    ParseError,
    EvaluationError,
    InfiniteResultError,
    LinearAlgebraError,
)

__all__ = [
    "settings",
    "get_settings",
    "Settings",
    "setup_logging",
    "get_context_logger",
    "ErrorKind",
    "ErrorInfo",
    "MathKitError",
    "ParseError",
    "EvaluationError",
    "InfiniteResultError",
    "LinearAlgebraError",
]
