"""Shared configuration management for the billing client.

Based on Pydantic Settings v2 best practices:
https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings with environment variable support.

    All settings can be overridden via environment variables with the prefix 'BILLING_'.
    Example: BILLING_API_BASE_URL=https://billing.internal/api
    """

    model_config = SettingsConfigDict(
        env_prefix="BILLING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Service configuration
    service_name: str = Field(
        default="billing-client",
        description="Client identifier for metrics and logs",
    )
    service_version: str = Field(
        default="0.1.0",
        description="Client version",
    )

    # Backend configuration
    api_base_url: str = Field(
        default="http://localhost:5000/api",
        description="Base URL of the billing REST backend (all endpoints are relative to it)",
    )
    api_token: SecretStr | None = Field(
        default=None,
        description="Initial bearer token (use env var BILLING_API_TOKEN, e.g. for scripts)",
    )
    request_timeout_seconds: float | None = Field(
        default=None,
        description="Per-request timeout in seconds (None disables timeouts)",
        gt=0,
    )
    backend_retry_attempts: int = Field(
        default=3,
        description="Attempts for idempotent GET requests on transport errors",
        ge=1,
    )
    backend_retry_wait_seconds: float = Field(
        default=0.5,
        description="Initial backoff between GET retries (exponential with jitter)",
        ge=0,
    )

    # View configuration
    recent_invoices_limit: int = Field(
        default=5,
        description="Number of invoices shown by the recent-invoices widget",
        ge=1,
    )
    currency_symbol: str = Field(
        default="$",
        description="Symbol used when formatting amounts for display",
    )

    # Documents
    pdf_download_dir: Path = Field(
        default=Path("."),
        description="Default directory for downloaded invoice PDFs",
    )


def get_settings() -> Settings:
    """Factory function to get settings instance.

    Returns:
        Configured Settings instance
    """
    return Settings()
