"""
Configuration management.

Centralized environment variable management and validation.
"""

from typing import Literal, Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from shared.errors import ConfigError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,  # Allow case-insensitive env var matching
        extra="ignore"
    )

    # Environment
    environment: Literal["development", "staging", "production", "test"] = "development"

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Resilient requests
    request_timeout: float = 30.0
    request_retries: int = 3
    request_retry_delay: float = 1.0

    # External services (stubs are used when unset)
    vision_service_url: Optional[str] = None
    openai_api_key: Optional[str] = None
    script_model: str = "gpt-4o-mini"

    # Export
    export_dir: str = "exports"
    simulated_encode_step: float = 0.1

    # Event stream
    event_queue_size: int = 100
    max_subscribers: int = 10
    sse_heartbeat_interval: float = 30.0

    # Upload validation
    max_upload_size_mb: int = 4096

    # Frontend configuration
    frontend_url: str = "http://localhost:3000"

    @field_validator("vision_service_url")
    @classmethod
    def validate_vision_service_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate vision service URL format."""
        if not v:
            return None
        if not v.startswith(("http://", "https://")):
            raise ConfigError("VISION_SERVICE_URL must be a valid HTTP/HTTPS URL")
        return v.rstrip("/")

    @field_validator("openai_api_key")
    @classmethod
    def validate_openai_api_key(cls, v: Optional[str]) -> Optional[str]:
        """Validate OpenAI API key format."""
        if not v:
            return None
        if not v.startswith("sk-"):
            raise ConfigError("OPENAI_API_KEY must start with 'sk-'")
        if len(v) < 20:
            raise ConfigError("OPENAI_API_KEY appears to be invalid")
        return v

    @field_validator("request_retries")
    @classmethod
    def validate_request_retries(cls, v: int) -> int:
        """Validate retry count."""
        if v < 0:
            raise ConfigError("REQUEST_RETRIES cannot be negative")
        return v

    @field_validator("request_timeout", "request_retry_delay", "simulated_encode_step", "sse_heartbeat_interval")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        """Validate durations are not negative."""
        if v < 0:
            raise ConfigError("Durations must not be negative")
        return v

    @field_validator("frontend_url")
    @classmethod
    def validate_frontend_url(cls, v: str) -> str:
        """Validate frontend URL format."""
        if not v:
            raise ConfigError("FRONTEND_URL is required")
        if not v.startswith(("http://", "https://")):
            raise ConfigError("FRONTEND_URL must be a valid HTTP/HTTPS URL")
        return v


# Singleton instance
try:
    settings = Settings()
except Exception as e:
    # Re-raise as ConfigError for consistency
    if isinstance(e, ConfigError):
        raise
    raise ConfigError(f"Failed to load configuration: {str(e)}") from e
