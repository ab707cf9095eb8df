"""
Application configuration with environment-based settings.
All configuration is explicit, validated, and logged at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults for development but require
    explicit configuration in production environments.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
    )

    # Application
    app_name: str = Field(default="Claims Platform", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")

    # CORS
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173", "http://localhost:8080"],
        description="Allowed CORS origins"
    )

    # Persistent store
    storage_backend: Literal["file", "memory"] = Field(
        default="file",
        description="Where the primary and backup slots live"
    )
    data_dir: Path = Field(default=Path("data"), description="Directory holding the storage slots")
    primary_slot_name: str = Field(default="claims_platform_data", description="Primary slot name")
    backup_slot_name: str = Field(default="claims_platform_backup", description="Backup slot name")
    storage_quota_bytes: int | None = Field(
        default=None,
        description="Maximum payload size per slot; writes above it fail like a full browser store"
    )

    # Background persistence
    autosave_enabled: bool = Field(default=True, description="Run the periodic flush timer")
    autosave_interval_seconds: float = Field(default=30.0, gt=0, description="Seconds between flushes")

    # Retention applied when a write fails
    activity_log_retention: int = Field(default=1000, ge=1, description="Activity logs kept on cleanup")
    chat_message_retention: int = Field(default=5000, ge=1, description="Chat messages kept on cleanup")

    # Document uploads
    upload_dir: Path = Field(default=Path("data/uploads"), description="Uploaded document storage")
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, description="Maximum upload size")

    # Remote AI functions
    ai_functions_url: str = Field(
        default="",
        description="Base URL of the AI function endpoints (empty runs in demo mode)"
    )
    ai_api_key: str = Field(default="", description="Bearer key for the AI function endpoints")
    ai_timeout_seconds: float = Field(default=60.0, description="AI request timeout")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def ai_configured(self) -> bool:
        """Check whether the remote AI endpoints are configured."""
        return bool(self.ai_functions_url)

    def get_safe_config_dict(self) -> dict:
        """Return configuration dict with secrets redacted for logging."""
        config = self.model_dump(mode="json")
        # Redact sensitive values
        if config.get("ai_api_key"):
            config["ai_api_key"] = "***REDACTED***"
        return config


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once and cached for the application lifetime.
    Use dependency injection in FastAPI routes for testability.
    """
    return Settings()


def reset_settings_cache() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    get_settings.cache_clear()
