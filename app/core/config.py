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


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def parse_csv(value: str | None) -> list[str]:
    """Split a comma-separated setting into trimmed, non-empty items.

    Examples:
        >>> parse_csv("/api/submit, /api/contact")
        ['/api/submit', '/api/contact']
        >>> parse_csv(None)
        []
    """
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field(
        "json",
        description="Log format: 'json' for structured logs or 'plain' for text",
    )
    output: str = Field("stdout", description="Log destination: 'stdout' or 'file'")
    file_path: str | None = Field(
        None,
        description="Log file path when output is 'file'",
    )
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Number of rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    security_status_token: str | None = Field(
        None,
        description="Bearer token required by the security-status admin endpoint",
    )
    relay_url: str | None = Field(
        None,
        description="Spreadsheet script URL that receives accepted submissions",
    )
    relay_timeout_seconds: float = Field(
        15.0,
        description="Timeout for the submission relay call in seconds",
        gt=0,
    )
    relay_user_agent: str = Field(
        "Application-Intake/1.0",
        description="User-Agent sent with relayed submissions",
    )
    security_headers_enabled: bool = Field(
        True,
        description="Attach hardening headers (CSP, HSTS, frame options) to responses",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class AdmissionSettings(BaseSettings):
    """Rate limiting and abuse tracking policy."""

    enabled: bool = Field(
        True,
        description="Enable request admission control",
    )

    sensitive_window_seconds: int = Field(
        15 * 60,
        description="Window size for state-changing endpoints (form submission)",
        ge=1,
    )
    sensitive_max_requests: int = Field(
        3,
        description="Requests allowed per window on state-changing endpoints",
        ge=1,
    )
    sensitive_block_seconds: int = Field(
        60 * 60,
        description="Block duration after exceeding the sensitive quota",
        ge=1,
    )
    sensitive_message: str = Field(
        "Too many form submissions. Please try again later.",
        description="Message returned when the sensitive quota is exceeded",
    )

    general_window_seconds: int = Field(
        60,
        description="Window size for all other endpoints",
        ge=1,
    )
    general_max_requests: int = Field(
        30,
        description="Requests allowed per window on all other endpoints",
        ge=1,
    )
    general_block_seconds: int = Field(
        5 * 60,
        description="Block duration after exceeding the general quota",
        ge=1,
    )
    general_message: str = Field(
        "Rate limit exceeded. Please slow down.",
        description="Message returned when the general quota is exceeded",
    )

    abuse_threshold: int = Field(
        5,
        description="Flagged events per category tolerated before a client is blocked",
        ge=0,
    )
    abuse_block_seconds: int | None = Field(
        None,
        description="Abuse block duration; unset keeps blocks until an admin unblocks",
        ge=1,
    )
    manual_block_seconds: int = Field(
        24 * 60 * 60,
        description="Default duration for blocks applied through the admin endpoint",
        ge=1,
    )
    cleanup_interval_seconds: int = Field(
        0,
        description="Background sweep interval for stale rate-limit entries (0 disables)",
        ge=0,
    )

    sensitive_paths: str = Field(
        "/api/submit",
        description="Comma-separated paths whose POST requests use the sensitive profile",
    )
    exempt_paths: str = Field(
        "/health",
        description="Comma-separated paths that bypass admission control",
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* headers when throttling",
    )

    model_config = SettingsConfigDict(
        env_prefix="ADMISSION_",
        case_sensitive=False,
    )


def _build_log_settings() -> LogSettings:
    return LogSettings()  # type: ignore[call-arg]


def _build_app_settings() -> AppSettings:
    """Build app settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat fields as required constructor
    arguments, which is not how BaseSettings is intended to be used.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_admission_settings() -> AdmissionSettings:
    return AdmissionSettings()  # type: ignore[call-arg]


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    log: LogSettings = Field(default_factory=_build_log_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    admission: AdmissionSettings = Field(default_factory=_build_admission_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
