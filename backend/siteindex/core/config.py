"""
Site Index Application Configuration

Configuration management with environment variable support.
Implements secure defaults and validation for all settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import List
from functools import lru_cache
from dotenv import load_dotenv

from ..domain.cache.value_objects import TTL

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """Application settings with validation and secure defaults."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    # Environment settings
    ENVIRONMENT: str = Field(
        default="development", description="Application environment"
    )

    # Database configuration
    DATABASE_URL: str = Field(
        ...,
        description="Database connection URL with asyncpg driver",
    )
    DATABASE_POOL_SIZE: int = Field(
        default=10, ge=1, le=100, description="Database connection pool size"
    )
    DATABASE_MAX_OVERFLOW: int = Field(
        default=20, ge=0, le=100, description="Maximum overflow connections"
    )
    DATABASE_POOL_TIMEOUT: int = Field(
        default=30, ge=1, le=300, description="Connection pool timeout in seconds"
    )
    DATABASE_POOL_RECYCLE: int = Field(
        default=3600, ge=300, le=86400, description="Connection recycle time in seconds"
    )

    # Redis / cache configuration
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0", description="Redis connection URL"
    )
    REDIS_MAX_CONNECTIONS: int = Field(
        default=10, ge=1, le=50, description="Redis connection pool size"
    )
    REDIS_SOCKET_TIMEOUT: float = Field(
        default=5.0, gt=0, le=60, description="Redis socket timeout in seconds"
    )
    CACHE_BACKEND: str = Field(
        default="redis", description="Cache store backend (redis or memory)"
    )
    CACHE_NAMESPACE: str = Field(
        default="indexItems", min_length=1, description="Prefix for listing cache keys"
    )
    CACHE_TTL_SECONDS: int = Field(
        default=TTL.listing().seconds, ge=1, description="TTL for listing caches"
    )
    STATS_CACHE_TTL_SECONDS: int = Field(
        default=TTL.dashboard_stats().seconds,
        ge=1,
        description="TTL for dashboard statistics cache",
    )
    WARM_LETTERS: str = Field(
        default="A,B,C,D,E,F,L,P,S",
        description="Letters pre-loaded by the cache warmer (comma-separated)",
    )
    WARM_SEARCH_TERMS: str = Field(
        default="financial aid,library,admissions,registration",
        description="Search terms pre-loaded by the cache warmer (comma-separated)",
    )

    # Link checker configuration
    LINK_CHECK_BATCH_SIZE: int = Field(
        default=10, ge=1, le=100, description="Links checked concurrently per batch"
    )
    LINK_CHECK_TIMEOUT_SECONDS: float = Field(
        default=10.0, ge=1.0, le=30.0, description="Per-request timeout"
    )
    LINK_CHECK_BATCH_DELAY_SECONDS: float = Field(
        default=2.0, ge=0.0, le=60.0, description="Pause between batches"
    )
    LINK_CHECK_USER_AGENT: str = Field(
        default="SMCCCD Site Index Checker/1.0 (Educational Use)",
        description="User agent sent with link checks",
    )

    # Backup configuration
    BACKUP_DIRECTORY: str = Field(
        default="backups", description="Directory for JSON/CSV backups"
    )
    BACKUP_RETENTION_DAYS: int = Field(
        default=30, ge=1, le=365, description="Backup retention period in days"
    )

    # Rate limiting configuration
    RATE_LIMIT_ENABLED: bool = Field(
        default=True, description="Apply per-client sliding window limits to /api"
    )
    RATE_LIMIT_REQUESTS: int = Field(
        default=20, ge=1, description="Requests allowed per client and path per window"
    )
    RATE_LIMIT_WINDOW_SECONDS: int = Field(
        default=30, ge=1, le=3600, description="Sliding window length in seconds"
    )

    # Activity log configuration
    ACTIVITY_LOG_ENABLED: bool = Field(
        default=True, description="Record admin and write requests in the activity log"
    )
    ACTIVITY_LOG_MAX_RESULTS: int = Field(
        default=1000, ge=1, description="Upper bound on activity log search results"
    )

    # API configuration
    API_HOST: str = Field(default="0.0.0.0", description="API server host")
    API_PORT: int = Field(default=8000, ge=1, le=65535, description="API server port")

    # Security configuration
    SECRET_KEY: str = Field(
        ...,
        min_length=32,
        description="Secret used to sign CSRF tokens",
    )
    AUTH_EMAIL_HEADER: str = Field(
        default="X-Auth-Request-Email",
        description="Header carrying the authenticated user's email",
    )
    CORS_ORIGINS: str = Field(
        default="http://localhost:3000",
        description="CORS allowed origins (comma-separated)",
    )
    CORS_CREDENTIALS: bool = Field(default=True, description="Allow CORS credentials")

    # Development and debugging
    DEBUG: bool = Field(default=False, description="Enable debug mode")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_JSON: bool = Field(default=True, description="Render logs as JSON")

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v):
        """Validate database URL format."""
        if not v.startswith(("postgresql://", "postgresql+asyncpg://")):
            raise ValueError("DATABASE_URL must be a PostgreSQL connection URL")
        return v

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment value."""
        allowed = ["development", "test", "staging", "production"]
        if v not in allowed:
            raise ValueError(f"ENVIRONMENT must be one of: {allowed}")
        return v

    @field_validator("CACHE_BACKEND")
    @classmethod
    def validate_cache_backend(cls, v):
        """Validate cache backend name."""
        allowed = ["redis", "memory"]
        if v.lower() not in allowed:
            raise ValueError(f"CACHE_BACKEND must be one of: {allowed}")
        return v.lower()

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of: {allowed}")
        return v.upper()

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    @property
    def async_database_url(self) -> str:
        """Database URL with the asyncpg driver selected."""
        if self.DATABASE_URL.startswith("postgresql://"):
            return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1)
        return self.DATABASE_URL

    @property
    def cors_origins_list(self) -> List[str]:
        """Get CORS origins as list."""
        return _split_csv(self.CORS_ORIGINS)

    @property
    def warm_letters_list(self) -> List[str]:
        return [letter.upper() for letter in _split_csv(self.WARM_LETTERS)]

    @property
    def warm_search_terms_list(self) -> List[str]:
        return _split_csv(self.WARM_SEARCH_TERMS)


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
