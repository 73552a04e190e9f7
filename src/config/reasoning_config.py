"""
Reasoning service configuration.

Controls the external text-generation service used for natural-language
explanation summaries:
- Endpoint and credentials
- Request timeout (the only blocking point in an explanation request)
- Generation parameters
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ReasoningConfig(BaseSettings):
    """External reasoning service configuration."""

    enabled: bool = Field(
        default=True,
        description="Attempt the reasoning service before falling back to templates",
    )

    service_url: Optional[str] = Field(
        default=None,
        description="Full URL of the text generation endpoint",
    )
    api_key: Optional[str] = Field(
        default=None,
        description="Bearer token for the reasoning service",
    )

    model: str = Field(
        default="supply-chain-analyst",
        description="Model identifier forwarded to the service",
    )
    max_tokens: int = Field(
        default=1500,
        gt=0,
        description="Maximum tokens in the generated summary",
    )
    temperature: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Sampling temperature",
    )

    timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        description="Upper bound on a single reasoning call",
    )

    model_config = SettingsConfigDict(env_prefix="REASONING_", extra="ignore")

    def is_configured(self) -> bool:
        """Whether a call should be attempted at all."""
        return self.enabled and bool(self.service_url)


@lru_cache()
def get_reasoning_config() -> ReasoningConfig:
    """Get reasoning service configuration (cached)."""
    return ReasoningConfig()
