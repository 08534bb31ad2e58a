"""
Application configuration.

Centralized configuration management with environment variables.
Every setting can be overridden with a ``MATHKIT_`` prefixed variable
(e.g. ``MATHKIT_LIMIT_DELTA=1e-6``) or through a ``.env`` file.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(
        env_prefix="MATHKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "MathKit API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"  # development, staging, production

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list[str] = ["*"]
    CORS_ALLOW_HEADERS: list[str] = ["*"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"
    LOG_FILE: Optional[str] = None

    # Formatting defaults
    DEFAULT_DECIMAL_PLACES: int = 10
    DEFAULT_ROUNDING_MODE: Literal["round", "floor", "ceil", "truncate", "banker"] = "round"
    DEFAULT_ERROR_HANDLING: Literal["strict", "graceful", "silent"] = "graceful"
    SCIENTIFIC_THRESHOLD: float = 1e6

    # Numerics
    LIMIT_DELTA: float = 1e-7
    SINGULAR_EPSILON: float = 1e-9
    FRACTION_TOLERANCE: float = 1e-6

    # Validation
    ALLOW_UNARY_MINUS: bool = True
    MAX_EXPRESSION_DEPTH: int = 100

    # Optional YAML file describing the evaluation context
    CONTEXT_FILE: Optional[str] = None

    # Surface sampling guard
    MAX_SURFACE_RESOLUTION: int = 200


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Global settings instance
settings = get_settings()
