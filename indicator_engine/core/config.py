"""
Application Configuration

All settings loaded from environment variables.
"""

from functools import lru_cache
from typing import Literal
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Application
    app_name: str = "Chart Indicator Engine"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS (Frontend URL)
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Chart state storage
    storage_backend: Literal["memory", "redis"] = "memory"
    storage_key_prefix: str = "chart_"
    redis_url: str = "redis://localhost:6379"

    # Persisted IndicatorsPayload / ChartState schema version
    state_version: int = 1

    # Request limits
    max_bars: int = 10_000

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
