"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
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
    admin_key_required: bool = Field(
        False,
        description="Whether credential management routes require X-Admin-Key",
    )
    admin_keys: str | None = Field(
        None,
        description="Comma-separated list of admin keys for credential management",
    )
    default_result_count: int = Field(
        100,
        description="Results requested per query when the caller omits count",
        ge=1,
    )
    max_result_count: int = Field(
        100,
        description="Upper bound for count (the upstream serves at most 100 results per query)",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class SearchSettings(BaseSettings):
    """Upstream search API configuration."""

    api_url: str = Field(
        "https://www.googleapis.com/customsearch/v1",
        description="Custom Search JSON API endpoint",
    )
    gl: str | None = Field(
        None,
        description="Geolocation (country) parameter sent upstream",
    )
    hl: str | None = Field(
        None,
        description="Interface language parameter; defaults to gl when unset",
    )
    page_size: int = Field(
        10,
        description="Fixed number of items per upstream page",
        ge=1,
    )
    timeout_seconds: float = Field(
        15.0,
        description="Transport timeout for one page fetch",
        gt=0,
    )
    rotation_mode: Literal["continue", "restart"] = Field(
        "continue",
        description=(
            "continue: later queries keep the last active credential; "
            "restart: every query selects the first eligible credential again"
        ),
    )
    serialize_calls: bool = Field(
        False,
        description="Run aggregation calls one at a time",
    )

    model_config = SettingsConfigDict(
        env_prefix="SEARCH_",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def _default_hl_to_gl(self) -> "SearchSettings":
        if self.hl is None:
            self.hl = self.gl
        return self


class StoreSettings(BaseSettings):
    """Credential store persistence configuration."""

    path: str = Field(
        "db.json",
        description="JSON document holding all collections",
    )
    collection: str = Field(
        "apikeys",
        description="Collection name for credentials",
    )
    flush_interval_seconds: float = Field(
        0.5,
        description="Minimum spacing between two flushes while dirty",
        gt=0,
    )
    quiet_period_seconds: float = Field(
        0.6,
        description="Idle time after the last mutation before the flush loop stops",
        gt=0,
    )
    default_quota: int = Field(
        100,
        description="Daily quota allotted to each credential",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        case_sensitive=False,
    )


class ResetSettings(BaseSettings):
    """Daily quota reset schedule (UTC)."""

    enabled: bool = Field(True, description="Run the daily reset job")
    hour_utc: int = Field(7, ge=0, le=23)
    minute_utc: int = Field(0, ge=0, le=59)

    model_config = SettingsConfigDict(
        env_prefix="RESET_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field("json", description="Log line format")
    output: Literal["stdout", "file"] = Field("stdout", description="Log destination")
    file_path: str | None = Field(None, description="Log file when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this size (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    reset: ResetSettings = Field(default_factory=ResetSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Nested settings are created via default_factory so env loading works.
settings = Settings()
