"""Application configuration."""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

MEMORY_DATABASE = ":memory:"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    database_path: str = "calorie_log.sqlite3"
    estimator_url: str | None = None
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    search_limit: int = 8
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def resolve_database_path(raw: str) -> str:
    """Expand the configured database path, keeping in-memory databases as-is."""
    cleaned = raw.strip()
    if not cleaned or cleaned == MEMORY_DATABASE:
        return MEMORY_DATABASE
    return str(Path(cleaned).expanduser())
