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


def _build_site_settings() -> "SiteSettings":
    """Build site metadata settings from environment."""

    return SiteSettings()


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment."""

    return AppSettings()


def _build_log_settings() -> "LogSettings":
    """Build logging settings from environment."""

    return LogSettings()


class SiteSettings(BaseSettings):
    """Public metadata shown in page templates and feeds."""

    name: str = Field(
        "Lexi's Website",
        description="Site name used in page titles and the RSS channel",
    )
    description: str = Field(
        "Software & Web Developer, Cosplayer, Anime Enthusiast, and Privacy Advocate.",
        description="Short site description for meta tags and feeds",
    )
    author: str = Field(
        "Lexi Rose Rogers",
        description="Author shown in the footer",
    )
    base_url: str = Field(
        "https://lrr.sh",
        description="Canonical base URL (no trailing slash) for sitemap and feed links",
    )

    model_config = SettingsConfigDict(
        env_prefix="SITE_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    changelog_path: Path = Field(
        PROJECT_ROOT / "CHANGELOG.md",
        description="Markdown document the changelog pages are rendered from",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-visitor rate limiting",
    )
    rate_limit_burst_size: int = Field(
        10,
        description="Requests allowed per window for a single visitor",
        ge=0,
    )
    rate_limit_window_seconds: float = Field(
        15.0,
        description="Window size in seconds; the bucket refills fully when it elapses",
        ge=0,
    )
    rate_limit_cleanup_interval_seconds: float = Field(
        300.0,
        description="How often idle visitor buckets are swept from memory",
        gt=0,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers on responses",
    )
    visitor_cookie_name: str = Field(
        "user_id",
        description="Cookie holding the long-lived visitor identifier",
    )

    security_headers_enabled: bool = Field(
        True,
        description="Attach hardening headers (HSTS, frame options, ...) to every response",
    )
    minify_html: bool = Field(
        True,
        description="Minify text/html responses before sending",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log destination: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10_485_760,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to accept and propagate the request id",
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
    site: SiteSettings = Field(default_factory=_build_site_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
