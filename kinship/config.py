"""
Configuration and settings for the Kinship API.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SESSION_SECRET = "kinship-dev-secret"


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Database (Postgres expected; any SQLAlchemy URL works)
    database_url: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")

    # Sessions
    session_secret: str = Field(
        default=DEFAULT_SESSION_SECRET, validation_alias="KINSHIP_SESSION_SECRET"
    )
    session_cookie: str = Field(
        default="kinship_session", validation_alias="KINSHIP_SESSION_COOKIE"
    )
    session_max_age_seconds: int = Field(
        default=14 * 24 * 3600, validation_alias="KINSHIP_SESSION_MAX_AGE"
    )

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, validation_alias="KINSHIP_USE_IN_MEMORY_BACKENDS"
    )
    seed_sample_data: bool = Field(
        default=True, validation_alias="KINSHIP_SEED_SAMPLE_DATA"
    )

    # Dev server
    host: str = Field(default="127.0.0.1", validation_alias="KINSHIP_HOST")
    port: int = Field(default=5000, validation_alias="KINSHIP_PORT")
    log_level: str = Field(default="INFO", validation_alias="KINSHIP_LOG_LEVEL")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
