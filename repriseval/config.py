"""
Application configuration using pydantic-settings.

Loads configuration from environment variables with sensible defaults.
The analysis engine never reads these directly; the API layer turns them
into ``EngineOptions``.
"""
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="REPRISEVAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "RepriseVal"
    debug: bool = False
    log_level: str = "INFO"
    log_json: bool = True

    # Engine
    low_confidence_threshold: float = 0.7
    vigilance_points_limit: int = 5
    calculation_tolerance: float = 1000.0

    # Year used when a request omits as_of_year (None = current calendar year)
    default_as_of_year: Optional[int] = None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
