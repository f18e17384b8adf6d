"""Typed settings loader for the admin log monitor."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import AnyUrl, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigError

STATS_WINDOW_CHOICES = (1, 6, 24, 168)


class Settings(BaseSettings):
    """Application settings loaded from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_env: Literal["dev", "staging", "prod"] = Field(default="dev", alias="APP_ENV")
    admin_api_base_url: AnyUrl = Field(alias="ADMIN_API_BASE_URL")
    admin_api_token: str | None = Field(default=None, alias="ADMIN_API_TOKEN", repr=False)

    audit_logs_endpoint: str = Field(
        default="/admin/logs/audit",
        alias="ADMIN_AUDIT_LOGS_ENDPOINT",
    )
    audit_export_endpoint: str = Field(
        default="/admin/logs/export",
        alias="ADMIN_AUDIT_EXPORT_ENDPOINT",
    )
    system_logs_endpoint: str = Field(
        default="/admin/logs/system",
        alias="ADMIN_SYSTEM_LOGS_ENDPOINT",
    )
    activity_stats_endpoint: str = Field(
        default="/admin/logs/stats",
        alias="ADMIN_ACTIVITY_STATS_ENDPOINT",
    )
    activity_feed_endpoint: str = Field(
        default="/admin/logs/activity-feed",
        alias="ADMIN_ACTIVITY_FEED_ENDPOINT",
    )
    realtime_metrics_endpoint: str = Field(
        default="/admin/analytics/realtime",
        alias="ADMIN_REALTIME_METRICS_ENDPOINT",
    )
    daily_kpis_endpoint: str = Field(
        default="/admin/analytics/daily",
        alias="ADMIN_DAILY_KPIS_ENDPOINT",
    )

    admin_api_timeout_seconds: float = Field(default=15.0, alias="ADMIN_API_TIMEOUT_SECONDS")
    admin_api_max_retries: int = Field(default=1, alias="ADMIN_API_MAX_RETRIES")
    admin_api_retry_delay_seconds: float = Field(
        default=0.5,
        alias="ADMIN_API_RETRY_DELAY_SECONDS",
    )

    logs_page_size: int = Field(default=50, alias="LOGS_PAGE_SIZE")
    activity_feed_window_minutes: int = Field(default=15, alias="ACTIVITY_FEED_WINDOW_MINUTES")
    activity_feed_poll_seconds: float = Field(default=10.0, alias="ACTIVITY_FEED_POLL_SECONDS")
    realtime_metrics_poll_seconds: float = Field(
        default=60.0,
        alias="REALTIME_METRICS_POLL_SECONDS",
    )
    daily_kpis_poll_seconds: float = Field(default=300.0, alias="DAILY_KPIS_POLL_SECONDS")
    stats_window_hours: int = Field(default=24, alias="STATS_WINDOW_HOURS")
    tail_max_rows: int = Field(default=200, alias="TAIL_MAX_ROWS")

    export_trailing_days: int = Field(default=7, alias="EXPORT_TRAILING_DAYS")
    export_dir: Path = Field(default=Path("./data/exports"), alias="EXPORT_DIR")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
    )

    @field_validator("admin_api_token", mode="before")
    @classmethod
    def empty_string_to_none(cls, value: Any) -> Any:
        """Treat an empty token env value as unset."""
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @model_validator(mode="after")
    def validate_settings(self) -> Settings:
        """Validate endpoint shapes and polling/paging bounds."""
        endpoints = {
            "ADMIN_AUDIT_LOGS_ENDPOINT": self.audit_logs_endpoint,
            "ADMIN_AUDIT_EXPORT_ENDPOINT": self.audit_export_endpoint,
            "ADMIN_SYSTEM_LOGS_ENDPOINT": self.system_logs_endpoint,
            "ADMIN_ACTIVITY_STATS_ENDPOINT": self.activity_stats_endpoint,
            "ADMIN_ACTIVITY_FEED_ENDPOINT": self.activity_feed_endpoint,
            "ADMIN_REALTIME_METRICS_ENDPOINT": self.realtime_metrics_endpoint,
            "ADMIN_DAILY_KPIS_ENDPOINT": self.daily_kpis_endpoint,
        }
        for alias, value in endpoints.items():
            if not value.startswith("/"):
                raise ValueError(f"{alias} must start with '/'.")

        if self.admin_api_timeout_seconds <= 0:
            raise ValueError("ADMIN_API_TIMEOUT_SECONDS must be > 0.")
        if self.admin_api_max_retries < 0:
            raise ValueError("ADMIN_API_MAX_RETRIES must be >= 0.")
        if self.admin_api_retry_delay_seconds < 0:
            raise ValueError("ADMIN_API_RETRY_DELAY_SECONDS must be >= 0.")
        if self.logs_page_size <= 0:
            raise ValueError("LOGS_PAGE_SIZE must be > 0.")
        if self.activity_feed_window_minutes <= 0:
            raise ValueError("ACTIVITY_FEED_WINDOW_MINUTES must be > 0.")
        if self.activity_feed_poll_seconds <= 0:
            raise ValueError("ACTIVITY_FEED_POLL_SECONDS must be > 0.")
        if self.realtime_metrics_poll_seconds <= 0:
            raise ValueError("REALTIME_METRICS_POLL_SECONDS must be > 0.")
        if self.daily_kpis_poll_seconds <= 0:
            raise ValueError("DAILY_KPIS_POLL_SECONDS must be > 0.")
        if self.stats_window_hours not in STATS_WINDOW_CHOICES:
            raise ValueError(
                f"STATS_WINDOW_HOURS must be one of {', '.join(map(str, STATS_WINDOW_CHOICES))}."
            )
        if self.tail_max_rows <= 0:
            raise ValueError("TAIL_MAX_ROWS must be > 0.")
        if self.export_trailing_days <= 0:
            raise ValueError("EXPORT_TRAILING_DAYS must be > 0.")
        return self

    def safe_summary(self) -> dict[str, Any]:
        """Return config summary safe for logging (no credentials)."""
        return {
            "app_env": self.app_env,
            "base_url": str(self.admin_api_base_url),
            "token_configured": self.admin_api_token is not None,
            "timeout_seconds": self.admin_api_timeout_seconds,
            "max_retries": self.admin_api_max_retries,
            "logs_page_size": self.logs_page_size,
            "activity_feed_window_minutes": self.activity_feed_window_minutes,
            "activity_feed_poll_seconds": self.activity_feed_poll_seconds,
            "realtime_metrics_poll_seconds": self.realtime_metrics_poll_seconds,
            "daily_kpis_poll_seconds": self.daily_kpis_poll_seconds,
            "stats_window_hours": self.stats_window_hours,
            "export_trailing_days": self.export_trailing_days,
            "export_dir": str(self.export_dir),
        }


def load_settings() -> Settings:
    """Load and validate settings, raising ConfigError on failure."""
    try:
        settings = Settings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed reading environment/.env: {exc}") from exc

    try:
        settings.export_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigError(f"Failed creating EXPORT_DIR ({settings.export_dir}): {exc}") from exc
    return settings
