"""
Configuration management for the Strategy Negotiation Engine.

Handles all environment variables and application settings.
"""

import logging
import sys
from functools import lru_cache
from typing import List

from pydantic import ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings

# Note: CorrelationIDFormatter import is deferred to setup_logging() to avoid circular imports


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Environment Configuration
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: development, staging, or production"
    )

    # API Configuration
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "Strategy Negotiation & Explainability Engine"
    VERSION: str = "0.1.0"
    DESCRIPTION: str = (
        "Ranks supply-chain mitigation strategies under competing objectives "
        "and explains the decision pipeline"
    )

    # Server Configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    RELOAD: bool = False
    WORKERS: int = 1

    # Logging
    LOG_LEVEL: str = "INFO"
    REDACT_PII: bool = Field(
        default=True,
        description="Hash user identifiers in log output"
    )

    # CORS Configuration
    CORS_ORIGINS: str = Field(
        default="http://localhost:3000,http://localhost:8080",
        description="Comma-separated list of allowed CORS origins"
    )

    # Negotiation
    NEGOTIATION_PRIORITY_BOOST: float = Field(
        default=3.0,
        gt=1.0,
        description="Multiplier applied to an objective's weight when it is prioritized"
    )
    NEGOTIATION_MIN_STRATEGIES: int = Field(
        default=3,
        ge=3,
        description="Minimum number of distinct candidate strategies"
    )
    NEAR_TIE_VARIANCE_THRESHOLD: float = Field(
        default=0.001,
        ge=0.0,
        description="Top-3 score variance below which a NEAR_TIE warning is attached"
    )

    # Audit
    ENABLE_AUDIT_LOGGING: bool = Field(
        default=True,
        description="Write a decision record for every negotiation"
    )

    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("CORS_ORIGINS")
    @classmethod
    def validate_cors_origins(cls, v, info):
        """Reject wildcard CORS origins in production."""
        env = info.data.get("ENVIRONMENT", "development") if info.data else "development"

        if "*" in v and env == "production":
            raise ValueError("Wildcard CORS origins not allowed in production")

        return v

    def get_cors_origins_list(self) -> List[str]:
        """Get CORS origins as a list."""
        if not self.CORS_ORIGINS:
            return []
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT.lower() == "production"

    def validate_production_config(self) -> List[str]:
        """
        Validate configuration for production environment.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not self.is_production():
            return errors

        if "*" in self.CORS_ORIGINS:
            errors.append("Wildcard CORS origins not allowed in production")

        cors_origins = self.get_cors_origins_list()
        localhost_origins = [o for o in cors_origins if "localhost" in o or "127.0.0.1" in o]
        if localhost_origins:
            errors.append(f"Localhost CORS origins not allowed in production: {localhost_origins}")

        if not self.ENABLE_AUDIT_LOGGING:
            errors.append("ENABLE_AUDIT_LOGGING=false is not allowed in production")

        return errors


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration
    """
    return Settings()


def setup_logging() -> logging.Logger:
    """
    Configure structured JSON logging with correlation ID injection.

    Uses CorrelationIDFormatter to automatically:
    - Inject correlation_id from request context
    - Hash user identifiers
    - Format timestamps in ISO 8601 format

    Returns:
        logging.Logger: Configured root logger
    """
    # Deferred import to avoid circular imports (secure_logging imports tracing)
    from src.utils.secure_logging import CorrelationIDFormatter

    settings = get_settings()

    logger = logging.getLogger()
    logger.setLevel(settings.LOG_LEVEL)

    # Remove existing handlers
    logger.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    formatter = CorrelationIDFormatter(
        "%(asctime)s %(name)s %(levelname)s %(message)s",
        rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
        redact_pii=settings.REDACT_PII,
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger
