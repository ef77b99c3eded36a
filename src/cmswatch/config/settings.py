"""Application configuration settings."""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ApiSettings(BaseSettings):
    """Remote file mapper API configuration."""

    base_url: str = Field(default="https://api.hubapi.com")
    access_token: Optional[str] = Field(default=None)
    timeout_seconds: float = Field(default=60.0)

    model_config = SettingsConfigDict(env_prefix="CMSWATCH_API_")


class WatchSettings(BaseSettings):
    """Watch engine tuning."""

    queue_concurrency: int = Field(default=10, ge=1)
    notify_debounce_seconds: float = Field(default=1.5, gt=0)
    ignore_file_name: str = Field(default=".cmsignore")

    model_config = SettingsConfigDict(env_prefix="CMSWATCH_WATCH_")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field(default="INFO")
    format: str = Field(default="console")
    file_path: Optional[str] = Field(default=None)

    model_config = SettingsConfigDict(env_prefix="CMSWATCH_LOG_")


class AppSettings(BaseSettings):
    """Main application settings."""

    name: str = Field(default="cms-watch")
    version: str = Field(default="1.0.0")
    environment: str = Field(default="development")

    # Sub-settings
    api: ApiSettings = Field(default_factory=ApiSettings)
    watch: WatchSettings = Field(default_factory=WatchSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_prefix="CMSWATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = AppSettings()


def get_settings() -> AppSettings:
    """Get application settings."""
    return settings


def reload_settings() -> AppSettings:
    """Re-read settings from the environment and replace the global instance."""
    global settings
    settings = AppSettings()
    return settings
