"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from reliable_queue.constants import MAX_WAIT_TIME_SECONDS, QUEUE_RECREATE_COOLDOWN_SECONDS


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # AWS
    aws_access_key_id: str | None = None
    aws_secret_access_key: SecretStr | None = None
    aws_region: str = "us-east-1"
    aws_api_version: str = "latest"
    aws_endpoint_url: str | None = None

    # Queue Configuration
    queue_default: Literal["sqs", "memory"] = "sqs"
    queue_codec: Literal["json", "pickle"] = "json"
    queue_name_prefix: str = ""
    queue_claim_timeout_seconds: int = Field(default=60, ge=0)
    queue_wait_time_seconds: int = Field(default=1, ge=0, le=MAX_WAIT_TIME_SECONDS)
    queue_recreate_backoff_seconds: float = Field(
        default=QUEUE_RECREATE_COOLDOWN_SECONDS, ge=0
    )
    queue_recreate_max_retries: int | None = Field(default=None, ge=0)

    # Worker Configuration
    worker_id: str | None = None
    worker_queue_name: str = "default"
    worker_lease_seconds: int = Field(default=0, ge=0)
    worker_poll_interval_seconds: float = 1.0

    # Observability
    otel_enabled: bool = False
    metrics_port: int | None = None
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"
    otel_service_name: str = "reliable-queue"
    log_level: str = "INFO"
    log_format: str = "json"  # json or console


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
