"""Application configuration loaded via Pydantic settings."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed configuration sourced from environment variables."""

    model_config = SettingsConfigDict(env_file=".env")

    SUPABASE_URL: str = Field(...)
    SUPABASE_ANON_KEY: str = Field(...)
    OPENAI_API_KEY: str = Field(...)
    LOG_PSEUDONYM_SECRET: str = Field(...)
    OPENAI_MODEL: str = Field(default="gpt-4o")
    STUDY_COMPANION_LOG_LEVEL: str = Field(default="info")
    STUDY_COMPANION_LOG_DIR: Path | None = Field(default=None)

    # Scripture text API
    SCRIPTURE_API_BASE_URL: str = Field(default="https://bible-api.com")
    SCRIPTURE_API_TIMEOUT_SECONDS: float = Field(default=15.0)
    DEFAULT_TRANSLATION: str = Field(default="web")

    # Profile reads absorb replication lag right after sign-up
    PROFILE_FETCH_MAX_ATTEMPTS: int = Field(default=3)
    PROFILE_FETCH_TIMEOUT_SECONDS: float = Field(default=2.0)
    PROFILE_FETCH_BACKOFF_SECONDS: float = Field(default=0.5)

    # Session bootstrap
    SESSION_BOOTSTRAP_TIMEOUT_SECONDS: float = Field(default=3.0)
    AUTH_HANDLER_TIMEOUT_SECONDS: float = Field(default=4.0)

    DATA_DIR: Path = Field(default=Path("/data"))


settings = Settings()  # type: ignore[call-arg]
config = settings


__all__ = ["Settings", "settings", "config"]
