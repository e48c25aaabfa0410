"""
Environment configuration - single source of truth for all settings.

Uses pydantic-settings for type-safe config with .env file support.
All values have sensible defaults for local development.

Usage:
    from backend.app.core.config import settings
    print(settings.WEATHER_API_BASE_URL)
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application-wide settings loaded from environment variables or .env file.

    Precedence: env var > .env file > default value
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ── Application ──
    APP_NAME: str = "Disaster Risk Assessment Service"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development | staging | production
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"  # DEBUG | INFO | WARNING | ERROR | CRITICAL

    # ── Server ──
    HOST: str = "0.0.0.0"
    PORT: int = 5001
    RELOAD: bool = True

    # ── CORS ──
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8080",
    ]
    CORS_ALLOW_ALL: bool = True  # False in production

    # ── Weather provider (WeatherAPI.com vocabulary) ──
    WEATHER_API_KEY: Optional[str] = None
    WEATHER_API_BASE_URL: str = "https://api.weatherapi.com/v1"
    WEATHER_FETCH_TIMEOUT: float = 10.0  # seconds, fixed per call
    WEATHER_MAX_RETRIES: int = 2
    WEATHER_RETRY_BACKOFF: float = 0.5  # seconds; wait = base * 2^attempt
    WEATHER_MAX_FORECAST_DAYS: int = 10  # provider-side cap
    WEATHER_HEALTH_QUERY: str = "London"
    DEFAULT_COUNTRY: str = "India"

    # ── Advisory cache ──
    CACHE_BACKEND: str = "redis"  # redis | memory | none
    REDIS_URL: str = "redis://localhost:6379/0"
    WEATHER_CACHE_TTL: int = 600  # snapshot is fresh for 10 min
    WEATHER_STALE_RETENTION: int = 86400  # keep stale copies 24h for fallback

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()


settings = get_settings()
