"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    project_name: str = "Heritage Realtime"
    database_url: str = Field(
        default="sqlite:///./heritage_realtime.db",
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    secret_key: str = Field(
        default="change-me",
        description="Secret key used to verify JWT bearer credentials",
        min_length=1,
    )
    jwt_algorithm: str = Field(default="HS256", min_length=1)
    access_token_expire_minutes: int = Field(
        default=60 * 24,
        description="Number of minutes before issued access tokens expire",
        gt=0,
    )
    app_timezone: str = Field(
        default="UTC",
        description="Timezone used to store and render notification timestamps",
    )
    log_level: str = Field(default="INFO")
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma separated list of origins allowed by the CORS middleware",
    )

    connection_send_buffer: int = Field(
        default=100,
        description="Maximum number of queued outbound messages per websocket connection",
        gt=0,
    )
    heartbeat_interval_seconds: float = Field(
        default=25.0,
        description="Seconds between server pings sent to every live connection",
        gt=0,
    )
    heartbeat_timeout_seconds: float = Field(
        default=60.0,
        description="Idle seconds after which a connection is forcibly closed",
        gt=0,
    )
    expiry_sweep_interval_seconds: float = Field(
        default=3600.0,
        description="Seconds between background sweeps of expired notifications",
        gt=0,
    )
    expiry_grace_seconds: float = Field(
        default=86400.0,
        description="How long an expired notification is retained before deletion",
        ge=0,
    )
    default_page_size: int = Field(default=20, gt=0)
    max_page_size: int = Field(default=100, gt=0)

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    @model_validator(mode="after")
    def _validate_timing(self) -> "Settings":
        if self.heartbeat_timeout_seconds <= self.heartbeat_interval_seconds:
            raise ValueError(
                "HEARTBEAT_TIMEOUT_SECONDS must be greater than HEARTBEAT_INTERVAL_SECONDS"
            )
        if self.default_page_size > self.max_page_size:
            raise ValueError("DEFAULT_PAGE_SIZE cannot exceed MAX_PAGE_SIZE")
        return self

    def allowed_origins(self) -> list[str]:
        """Return the configured CORS origins as a list."""

        return [item.strip() for item in self.cors_origins.split(",") if item.strip()]


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
