"""
Library configuration.

Settings are read from FABRICATOR_* environment variables (or a .env file)
and control how identifier columns are named.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Fabrication settings.

    Override with environment variables, e.g. FABRICATOR_DEFAULT_ID_LABEL=row.
    """

    # Identifier column used by single-level fabricate() when ID_label is omitted
    default_id_label: str = "ID"

    # Identifier values are "<label><separator><n>"
    id_separator: str = "_"

    # Suffix of the column keeping source identifiers after resampling
    original_id_suffix: str = "_original"

    model_config = SettingsConfigDict(
        env_prefix="FABRICATOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    """
    return Settings()
