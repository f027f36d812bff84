"""
API Configuration

Manages environment-based configuration for the API server.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Settings can be overridden with environment variables or .env file.
    """

    # API Settings
    app_name: str = "Fabricator API"
    app_version: str = "0.1.0"
    debug: bool = False

    # Database holding the tables to resample
    database_url: str

    # Resampling Limits
    max_rows_per_request: int = 100_000
    preview_rows: int = 20

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are loaded once and reused.
    """
    return Settings()
