"""
Application configuration loaded from environment variables.

All configuration is validated at startup to fail fast on misconfiguration.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from invoicing.domain.numbering import DEFAULT_MAX_RETRIES, DEFAULT_TEMPLATE, validate_template


class Settings(BaseSettings):
    """
    Application settings with validation.

    All settings are loaded from environment variables with the same name.
    Use .env file for local development.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./invoicing.db",
        description="SQLAlchemy connection string"
    )

    # Invoice numbering
    invoice_number_format: str = Field(
        default=DEFAULT_TEMPLATE,
        description="Number template used until one is stored in system preferences"
    )
    number_max_retries: int = Field(
        default=DEFAULT_MAX_RETRIES,
        ge=1,
        description="Attempts to find a free invoice number before using a timestamp suffix"
    )
    number_retry_backoff_min_ms: int = Field(
        default=10,
        ge=0,
        description="Lower bound of the random delay between numbering attempts"
    )
    number_retry_backoff_max_ms: int = Field(
        default=50,
        ge=0,
        description="Upper bound of the random delay between numbering attempts"
    )

    # Server
    debug: bool = Field(
        default=False,
        description="Enable debug mode with detailed error messages"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Root logging level"
    )
    cors_origins: list[str] = Field(
        default_factory=list,
        description="Allowed CORS origins outside debug mode (JSON list in env)"
    )

    @field_validator("invoice_number_format")
    @classmethod
    def _check_template(cls, value: str) -> str:
        validate_template(value)
        return value

    @model_validator(mode="after")
    def _check_backoff(self) -> "Settings":
        if self.number_retry_backoff_min_ms > self.number_retry_backoff_max_ms:
            raise ValueError("number_retry_backoff_min_ms must not exceed number_retry_backoff_max_ms")
        return self

    @property
    def retry_backoff_ms(self) -> tuple[int, int]:
        return (self.number_retry_backoff_min_ms, self.number_retry_backoff_max_ms)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once at startup and cached for subsequent calls.
    This ensures consistent configuration across the application lifecycle.
    """
    return Settings()
