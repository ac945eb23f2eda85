"""
Application configuration using Pydantic Settings.

Environment-based infrastructure switching is controlled by the ENVIRONMENT variable.
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===========================================
    # Environment
    # ===========================================
    ENVIRONMENT: Literal["local", "test"] = "local"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # ===========================================
    # Database
    # ===========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./scheduler.db"

    # ===========================================
    # Server
    # ===========================================
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"]
    )

    # ===========================================
    # Business calendar
    # ===========================================
    # Per-firm values; fixed for the duration of a scheduling call.
    BUSINESS_START: str = "09:00"
    BUSINESS_END: str = "18:00"
    DAILY_CAPACITY_MINUTES: int = Field(540, ge=1)
    MAX_CASCADE_DAYS: int = Field(14, ge=0)
    MIN_GRANULARITY_MINUTES: int = Field(15, ge=1)

    # ===========================================
    # Concurrency
    # ===========================================
    # Attempts for a scheduling call before a version conflict is surfaced
    SCHEDULE_MAX_RETRIES: int = Field(3, ge=1)

    @property
    def is_local(self) -> bool:
        """Check if running in local environment."""
        return self.ENVIRONMENT == "local"

    @property
    def is_test(self) -> bool:
        """Check if running under the test suite."""
        return self.ENVIRONMENT == "test"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are loaded only once.
    """
    return Settings()
