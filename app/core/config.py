"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


APP_ENV = os.getenv("APP_ENV", "development")

PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Production may inject everything via real env vars
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    api_keys: str | None = Field(
        None,
        description="Comma-separated 'key:user_id' pairs used to resolve the caller",
    )
    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-user, per-action request rate limiting",
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class SendLimitSettings(BaseSettings):
    """Outbound send quota defaults.

    Per-user overrides stored in user settings take precedence over these.
    """

    max_per_day: int = Field(
        20,
        description="Sends allowed per accounting window",
        ge=1,
    )
    max_per_hour: int = Field(
        8,
        description="Sends allowed in any rolling hour",
        ge=1,
    )
    delay_seconds: int = Field(
        120,
        description="Minimum gap between two consecutive sends",
        ge=0,
    )
    bounce_threshold: int = Field(
        3,
        description="Bounces within the window that trigger a timed pause",
        ge=1,
    )
    bounce_pause_hours: int = Field(
        24,
        description="Length of the timed pause after too many bounces",
        ge=1,
    )
    window_mode: str = Field(
        "calendar",
        description="'calendar' (aligned to local midnight) or 'rolling'",
        pattern="^(calendar|rolling)$",
    )
    window_seconds: int = Field(
        86400,
        description="Accounting window length in seconds",
        ge=1,
    )
    window_timezone: str = Field(
        "UTC",
        description="IANA timezone used to align calendar windows",
    )
    retention_days: int = Field(
        30,
        description="How long send and bounce records are kept",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="SEND_",
        case_sensitive=False,
    )


class StoreSettings(BaseSettings):
    """Persistence backend configuration."""

    backend: str = Field(
        "sqlalchemy",
        description="'sqlalchemy' or 'memory'",
        pattern="^(sqlalchemy|memory)$",
    )
    database_url: str = Field(
        "sqlite:///./send_quota.db",
        description="SQLAlchemy database URL",
    )
    echo: bool = Field(
        False,
        description="Echo SQL statements (debugging only)",
    )

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="'json' or 'plain'")
    output: str = Field("stdout", description="'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(10_485_760, description="Rotate file after this size (0 disables)")
    backup_count: int = Field(5, description="Rotated files to keep")
    request_id_header: str = Field("X-Request-ID", description="Correlation header name")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


# Per-action request limits: action -> (max_requests, window_seconds)
ACTION_RATE_LIMITS: dict[str, tuple[int, int]] = {
    "send-email": (10, 60),
    "send-stats": (30, 60),
    "default": (30, 60),
}


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    send: SendLimitSettings = Field(default_factory=SendLimitSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


settings = Settings()
