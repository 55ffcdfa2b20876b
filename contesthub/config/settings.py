"""Application settings using Pydantic Settings for environment-based configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, RedisDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the contesthub application.

    All settings can be overridden via environment variables.
    Prefix is not used to allow standard env var names (e.g., REDIS_URL).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    debug: bool = False

    # CLIST (consolidated primary source)
    clist_username: str | None = None
    clist_api_key: str | None = None
    clist_rate_limit: int = 10  # requests per minute

    # Source adapters
    enabled_sources: str = Field(
        default="all",
        description="Comma-separated fallback sources to construct, or 'all'",
    )
    source_timeout_seconds: float = Field(default=10.0, gt=0.0, le=60.0)
    clist_timeout_seconds: float = Field(default=15.0, gt=0.0, le=60.0)
    adapter_deadline_seconds: float = Field(
        default=30.0,
        gt=0.0,
        le=300.0,
        description="Upper bound for one adapter run including retries",
    )

    # HTTP retry configuration
    max_http_retries: int = Field(default=1, ge=0, le=10)
    max_backoff_seconds: float = Field(default=5.0, ge=0.1, le=300.0)

    # Contest cache
    cache_backend: Literal["memory", "redis"] = "memory"
    redis_url: RedisDsn = Field(default="redis://localhost:6379/0")
    contests_cache_ttl_seconds: int = Field(default=300, ge=1)
    contests_cache_key: str = "all-contests-data"

    # History snapshots
    history_dir: str = ".contest-cache"
    history_retention_days: int = Field(default=30, ge=1)
    history_index_limit: int = Field(default=100, ge=1)

    # Webhooks
    webhook_timeout_seconds: float = Field(default=10.0, gt=0.0, le=60.0)
    webhook_max_failures: int = Field(default=5, ge=1)
    webhook_notify_on_first_run: bool = False

    # Background monitor (webhook checker + history snapshotter)
    monitor_enabled: bool = False
    monitor_interval_seconds: int = Field(default=300, ge=10)

    # API server
    api_host: str = "0.0.0.0"
    api_port: int = 8001
    cors_origins: str = "*"
    rate_limit_enabled: bool = False
    rate_limit_default: str = "100/minute"

    # Observability
    metrics_port: int = 8000

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def clist_configured(self) -> bool:
        """Check if CLIST credentials are configured."""
        return bool(self.clist_username and self.clist_api_key)

    @property
    def enabled_source_names(self) -> list[str]:
        """Parsed, lower-cased list of enabled fallback sources."""
        names = [s.strip().lower() for s in self.enabled_sources.split(",") if s.strip()]
        return names or ["all"]


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    Clear cache with get_settings.cache_clear() if needed.
    """
    return Settings()
