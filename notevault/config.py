"""Application configuration."""

import secrets
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, read from ``NOTEVAULT_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="NOTEVAULT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Project info
    PROJECT_NAME: str = "NoteVault API"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"

    # Tokens. An unset secret gets a random one, which invalidates every
    # outstanding token on restart.
    SECRET_KEY: str = Field(default_factory=lambda: secrets.token_urlsafe(32))
    TOKEN_TTL_DAYS: int = 7

    # Credentials
    PASSWORD_MIN_LENGTH: int = 6
    PASSWORD_HASH_ITERATIONS: int = 260_000

    # Notes
    MAX_TAGS: int = 10

    # Storage
    STORAGE_BACKEND: Literal["sqlite", "memory"] = "sqlite"
    DATABASE_PATH: str = "notevault.db"

    # CORS
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["console", "json"] = "console"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
