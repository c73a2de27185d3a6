"""
Application configuration using Pydantic Settings.
Loads from environment variables and .env file.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_PICKUP_MESSAGE = (
    "Pick up time is approaching, please come to the counter to pick up your items"
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "SmartQueue ETA"
    app_env: str = "development"  # development, staging, production
    debug: bool = True
    log_level: str = "INFO"

    # Storage
    database_url: str = "postgresql://localhost:5432/smartqueue"
    store_backend: str = "database"  # database, memory, none

    # ETA estimation
    eta_ema_alpha: float = 0.3
    eta_default_service_rate: float = 1.0  # tickets per minute
    eta_default_p50_minutes: int = 5
    eta_default_p90_minutes: int = 10
    eta_seed_p50_minutes: int = 3  # seeded into a fresh hour window
    eta_seed_p90_minutes: int = 5
    eta_timezone: str = "UTC"  # local clock for time-of-day heuristics

    # Ticket lifecycle scheduler
    eta_notification_threshold_minutes: int = 2
    eta_scheduler_interval_seconds: float = 60.0
    eta_scheduler_enabled: bool = True
    eta_retry_failed_notifications: bool = False

    # Notifications
    notification_webhook_url: Optional[str] = None  # unset = log only
    notification_message: str = DEFAULT_PICKUP_MESSAGE
    notification_timeout_seconds: float = 10.0

    @property
    def async_database_url(self) -> str:
        """Database URL rewritten for the asyncpg driver."""
        if self.database_url.startswith("postgresql://"):
            return self.database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return self.database_url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
