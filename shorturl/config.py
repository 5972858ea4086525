"""Configuration management for the shorturl service.

This module provides centralized configuration using Pydantic BaseSettings
with environment variable support and caching.

How to Use
===========
**Step 1 - Import**::
    from shorturl.config import get_settings

**Step 2 - Get settings**::
    settings = get_settings()
    db_url = settings.DATABASE_URL

Key Behaviours
===============
- Settings are cached after first access.
- Environment variables (or a ``.env`` file) override defaults.
- Tests build their own ``Settings`` instances instead of using the cache.

Classes:
    Settings:  Pydantic model for all configuration values.

"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "shorturl"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # PostgreSQL base vars (used by compose and available in env files)
    POSTGRES_USER: str = "shorturl"
    POSTGRES_PASSWORD: str = "shorturl"
    POSTGRES_DB: str = "shorturl"

    # Any SQLAlchemy async URL works, e.g. sqlite+aiosqlite:///./shorturl.db
    DATABASE_URL: str = "postgresql+asyncpg://shorturl:shorturl@db:5432/shorturl"
    DATABASE_ECHO: bool = False

    # Short code allocation
    SHORT_CODE_WIDTH: int = 9
    DUPLICATE_CODE_RETRIES: int = 0

    # URL validation
    VERIFY_URL_HOSTNAME: bool = False

    CORS_ALLOW_ORIGINS: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
