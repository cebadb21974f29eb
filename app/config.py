"""
Configuration management for the Directus to Slack relay.
Uses Pydantic settings for type-safe environment variable handling.
"""

import re
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DIRECTUS_BASE_URL = "https://log.bula21.ch"
DEFAULT_SLACK_BASE_URL = "https://hooks.slack.com/services"

_BCRYPT_HASH = re.compile(r"^\$2[abxy]?\$\d{2}\$[./A-Za-z0-9]{53}$")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Authentication
    key_hash: str = Field(..., description="bcrypt hash of the caller key")

    # Link and webhook targets
    directus_base_url: str = Field(default=DEFAULT_DIRECTUS_BASE_URL)
    slack_base_url: str = Field(default=DEFAULT_SLACK_BASE_URL)

    # Server Configuration
    addr: str = Field(default="0.0.0.0")
    port: int = Field(default=8080, ge=1, le=65535)
    request_timeout_seconds: float = Field(default=2.0, gt=0)
    max_concurrent_requests: int = Field(default=50, ge=1)

    # Outbound dispatch
    dispatch_timeout_seconds: float = Field(default=10.0, gt=0)
    shutdown_grace_seconds: float = Field(default=5.0, ge=0)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @field_validator("key_hash")
    @classmethod
    def validate_key_hash(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("KEY_HASH must not be empty")
        if not _BCRYPT_HASH.match(value):
            raise ValueError("KEY_HASH is not a bcrypt hash")
        return value

    @field_validator("directus_base_url")
    @classmethod
    def strip_directus_base_url(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        return value or DEFAULT_DIRECTUS_BASE_URL

    @field_validator("slack_base_url")
    @classmethod
    def strip_slack_base_url(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        return value or DEFAULT_SLACK_BASE_URL

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        value = value.strip().upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return value


@lru_cache
def get_settings() -> Settings:
    """Load the settings once; raises if required configuration is missing."""
    return Settings()
