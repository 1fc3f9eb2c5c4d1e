"""
Shared configuration management for the travel advisory gateway.
"""

from typing import List

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ADVISORY_",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    # Environment
    env: str = "local"
    log_level: str = "info"

    # Generation service
    openai_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("ADVISORY_OPENAI_API_KEY", "OPENAI_API_KEY", "openai_api_key"),
    )
    model: str = Field(
        default="gpt-4o-mini",
        validation_alias=AliasChoices("ADVISORY_MODEL", "MODEL", "model"),
    )
    generation_service_url: str = "https://api.openai.com"
    advisory_max_attempts: int = Field(
        default=3,
        validation_alias=AliasChoices("ADVISORY_MAX_ATTEMPTS", "advisory_max_attempts"),
    )
    advisory_timeout_seconds: float = 15.0
    advisory_deadline_seconds: float = 45.0
    advisory_temperature: float = 0.2
    advisory_max_output_tokens: int = 900
    backoff_base_ms: int = 400
    backoff_increment_ms: int = 500
    backoff_jitter_ms: int = 200

    # Reference data service
    reference_service_url: str = "https://restcountries.com"
    reference_timeout_seconds: float = 10.0
    reference_max_attempts: int = 1

    # Edge cache
    redis_url: str = "redis://localhost:6379/0"
    cache_long_ttl_seconds: int = 86400
    cache_short_ttl_seconds: int = 300
    stale_while_revalidate_seconds: int = 600

    # HTTP surface
    allowed_origins_raw: str = Field(
        default="",
        validation_alias=AliasChoices("ADVISORY_ALLOWED_ORIGINS", "ALLOWED_ORIGINS", "allowed_origins_raw"),
    )
    preflight_max_age_seconds: int = 86400
    max_identifier_length: int = 50

    @property
    def allowed_origins(self) -> List[str]:
        """CORS allow-list parsed from the comma-separated setting."""
        return [origin.strip() for origin in self.allowed_origins_raw.split(",") if origin.strip()]


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
