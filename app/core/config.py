"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each concern (regions, rate limiting, logging) has its own env prefix
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

# Production might inject everything via env vars only
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class RegionSettings(BaseSettings):
    """Region reference-data source and cache behaviour."""

    base_url: str = Field(
        "https://wilayah.id/api",
        description="Base URL of the administrative region API",
    )
    cache_ttl_seconds: float = Field(
        1800.0,
        description="How long a fetched region list is served without refetching",
        gt=0,
    )
    fetch_retries: int = Field(
        2,
        description="Retries after the first failed attempt (attempts = retries + 1)",
        ge=0,
    )
    backoff_base_delay_ms: int = Field(
        500,
        description="Base backoff delay; attempt i waits base * 2**i milliseconds",
        ge=0,
    )
    timeout_seconds: float = Field(
        10.0,
        description="Per-request timeout for the region API",
        gt=0,
    )
    single_flight: bool = Field(
        False,
        description="Share one in-flight fetch between concurrent misses for the same key",
    )

    model_config = SettingsConfigDict(
        env_prefix="REGION_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Per-action fixed-window rate limiting."""

    enabled: bool = Field(
        True,
        description="Enable rate-limit checks; when disabled every check is allowed",
    )
    sweep_interval_seconds: float = Field(
        60.0,
        description="Interval between sweeps that drop expired windows",
        gt=0,
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )
    anonymous_identifier: str = Field(
        "anonymous",
        description="Identifier used when the caller supplies none",
        min_length=1,
    )
    identifier_header: str = Field(
        "X-Session-ID",
        description="Request header carrying the caller identifier",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log destination: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Nested settings are created via default_factory so each one reads its own
    prefixed environment variables at construction time.
    """

    app_env: str = APP_ENV
    region: RegionSettings = Field(default_factory=RegionSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


settings = Settings()
