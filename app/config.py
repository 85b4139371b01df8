"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # Record store
    RECORD_STORE_URL: str = "http://localhost:8081/api"
    RECORD_STORE_TOKEN: Optional[str] = None
    RECORD_STORE_TIMEOUT_SECONDS: float = 30.0

    # Grid sessions
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 500
    MAX_GRID_SESSIONS: int = 256

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # Application
    APP_NAME: str = "Record Grid Console"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8080"]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
