"""
Configuration Management

Uses Pydantic Settings for environment-based configuration.
Loads from .env file automatically.
"""

from typing import Optional
from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Database (SQLite fallback when unset)
    DATABASE_URL: Optional[str] = None

    # Cache store
    CACHE_BACKEND: str = "redis"  # redis | memory
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_NAMESPACE: str = "auditflow"
    ANALYSIS_CACHE_TTL_HOURS: float = 24.0

    # Claude API (required for rewrites)
    ANTHROPIC_API_KEY: Optional[str] = None
    CLAUDE_MODEL: str = "claude-sonnet-4-20250514"

    # Artifact storage
    STORAGE_PATH: Optional[str] = None
    PUBLIC_BASE_URL: str = "http://localhost:8000/files"

    # Application Settings
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Workers
    WORKER_CONCURRENCY: int = 4

    # Timeouts (seconds)
    FETCH_TIMEOUT: float = 30.0
    EXTERNAL_CALL_TIMEOUT: float = 60.0

    # Retry policy for transient collaborator failures
    MAX_RETRIES: int = 2
    RETRY_INITIAL_DELAY: float = 1.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra fields in .env file
        case_sensitive = False  # Allow both UPPERCASE and lowercase


@lru_cache
def get_settings() -> Settings:
    """Get or create cached settings instance."""
    return Settings()
