"""
Configuration Management

Uses Pydantic Settings for environment-based configuration.
Loads from .env file automatically.

Analysis functions never read settings themselves; the HTTP layer and
the CLI pass these values in as explicit thresholds.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Application Settings
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Finder thresholds (minimum impressions / clicks)
    QUICK_WIN_MIN_IMPRESSIONS: int = 100
    CTR_OPPORTUNITY_MIN_IMPRESSIONS: int = 50
    CANNIBALIZATION_MIN_IMPRESSIONS: int = 20
    DECLINE_MIN_PREVIOUS_CLICKS: int = 10
    NEW_QUERY_MIN_IMPRESSIONS: int = 5
    CONTENT_GAP_MIN_IMPRESSIONS: int = 20
    BUILD_NEXT_MIN_IMPRESSIONS: int = 10

    # Limits
    MAX_RECOMMENDATIONS: int = 100

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra fields in .env file
        case_sensitive = False  # Allow both UPPERCASE and lowercase


@lru_cache
def get_settings() -> Settings:
    """Get or create cached settings instance."""
    return Settings()
