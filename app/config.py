"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    secret_key: str = Field(
        description="Secret key used to verify caregiver JWT access tokens", min_length=1
    )
    environment: Literal["development", "production"] = Field(
        default="production",
        description="Deployment environment; development turns invariant violations into errors",
    )
    app_timezone: str = Field(
        default="Asia/Tokyo",
        description="Timezone used to compute calendar days and greeting bands",
    )
    log_level: str = Field(default="INFO", description="Root logging level")
    internal_api_key: str | None = Field(
        default=None,
        description="Shared key required by the internal trigger endpoints",
    )
    sendgrid_api_key: str | None = Field(
        default=None,
        description="SendGrid API key used for sending transactional emails via the REST API",
    )
    sendgrid_sender: str | None = Field(
        default=None,
        description="Email address that will appear as the sender of transactional messages",
        min_length=3,
    )
    line_channel_access_token: str | None = Field(
        default=None,
        description="LINE Messaging API channel access token used to push check-in prompts",
    )
    line_api_base_url: str = Field(
        default="https://api.line.me",
        description="Base URL of the LINE Messaging API",
    )
    frontend_url: str = Field(
        default="http://localhost:3000",
        description="Public URL prefix used to build check-in response links",
    )
    response_token_ttl_hours: int = Field(
        default=24, gt=0, description="Lifetime of a check-in response token"
    )
    retry_sweep_interval_seconds: int = Field(
        default=60, gt=0, description="Seconds between two retry sweeps"
    )
    escalation_grace_period_minutes: int = Field(
        default=30,
        ge=0,
        description="Minutes to wait after the last prompt before alerting the caregiver",
    )
    escalation_claim_ttl_minutes: int = Field(
        default=10,
        gt=0,
        description="Minutes after which an unfinished escalation claim may be taken over",
    )
    default_max_retries: int = Field(
        default=2, ge=0, description="Retry count used when a policy leaves it unset"
    )
    default_retry_interval_minutes: int = Field(
        default=30, gt=0, description="Retry interval used when a policy leaves it unset"
    )
    external_send_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Timeout applied to messaging and email providers"
    )
    scheduler_enabled: bool = Field(
        default=True, description="Start the retry scheduler with the application"
    )
    scheduler_max_workers: int = Field(
        default=4, gt=0, description="Worker threads used to process records within a sweep"
    )

    @model_validator(mode="after")
    def _validate_sendgrid_pair(self) -> "Settings":
        if bool(self.sendgrid_api_key) ^ bool(self.sendgrid_sender):
            raise ValueError(
                "SENDGRID_API_KEY and SENDGRID_SENDER must both be provided to enable email"
            )
        if self.sendgrid_sender and "@" not in self.sendgrid_sender:
            raise ValueError("SENDGRID_SENDER must be a valid email address")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
