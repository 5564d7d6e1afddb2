"""Application settings and environment configuration.

Uses pydantic-settings to load and validate configuration from environment
variables with type safety and validation.
"""

from enum import Enum
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class NarrativeMode(Enum):
    """How vintage narratives are produced.

    OFF: No narrative is stored
    TEMPLATE: Deterministic in-process summary
    LLM: Generated through OpenRouter (requires an API key)
    """

    OFF = "off"
    TEMPLATE = "template"
    LLM = "llm"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings are loaded from .env file or environment variables.
    Every field has a default so the CLI runs against a local database.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )

    # Database
    database_url: str = Field(
        default="postgresql://localhost/grapeyear",
        description="PostgreSQL (or SQLite for local runs) connection URL",
    )
    db_pool_size: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Database connection pool size",
    )
    db_max_overflow: int = Field(
        default=10,
        ge=0,
        le=100,
        description="Maximum overflow connections beyond pool size",
    )
    db_pool_timeout: int = Field(
        default=30,
        ge=5,
        le=300,
        description="Connection pool timeout in seconds",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "console"] = Field(
        default="json",
        description="Log output format",
    )

    # Weather provider
    open_meteo_archive_url: str = Field(
        default="https://archive-api.open-meteo.com/v1/archive",
        description="Open-Meteo historical archive endpoint",
    )
    weather_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Per-request timeout for weather fetches",
    )
    weather_requests_per_second: float = Field(
        default=2.0,
        gt=0,
        le=50,
        description="Pacing for weather requests (2.0 = one call every 500ms)",
    )

    # Ingestion
    region_delay_seconds: float = Field(
        default=60.0,
        ge=0,
        description="Pause between regions during a bulk backfill",
    )
    backfill_start_year: int = Field(
        default=1960,
        ge=1940,
        description="First vintage year of a full backfill",
    )
    backfill_end_year: int = Field(
        default=2024,
        ge=1940,
        description="Last vintage year of a full backfill",
    )
    regions_path: str = Field(
        default="data/regions/regions.json",
        description="Path to the region catalogue JSON file",
    )

    # Narrative generation
    narrative_mode: NarrativeMode = Field(
        default=NarrativeMode.TEMPLATE,
        description="Narrative mode: off, template, or llm",
    )
    openrouter_api_key: str | None = Field(
        default=None,
        description="OpenRouter API key (required for llm narrative mode)",
    )
    openrouter_model: str = Field(
        default="anthropic/claude-3-haiku",
        description="Model used for generated vintage narratives",
    )

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Ensure database URL uses a supported scheme."""
        if not v.startswith(("postgresql://", "postgresql+psycopg2://", "sqlite://")):
            raise ValueError("Database URL must use postgresql:// or sqlite:// scheme")
        return v

    @field_validator("backfill_end_year")
    @classmethod
    def validate_backfill_range(cls, v: int, info) -> int:
        start = info.data.get("backfill_start_year")
        if start is not None and v < start:
            raise ValueError("backfill_end_year must not precede backfill_start_year")
        return v


# Global settings instance - will be lazy loaded or use defaults
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
