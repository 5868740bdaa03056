"""
ReliefWatch - Configuration Management
Centralized configuration using pydantic-settings.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite:///./reliefwatch.db"
    db_echo: bool = False

    # Bearer token verification
    jwt_secret: str = "dev-only-secret-change-me-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Proximity matching
    proximity_max_distance_m: float = 10_000.0
    proximity_limit: int = 5

    # Notifications
    notification_batch_size: int = 500
    notification_list_limit: int = 50

    # Assignment coordination
    assignment_max_retries: int = 5

    # Event publishing: "log", "webhook" or "firebase"
    event_backend: str = "log"
    event_webhook_url: Optional[str] = None
    event_webhook_timeout_seconds: float = 5.0

    # Firebase (topic push)
    firebase_credentials_path: Optional[str] = None
    firebase_topic_prefix: str = "reliefwatch"

    # API Settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
