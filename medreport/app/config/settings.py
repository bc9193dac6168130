"""
Application settings using Pydantic Settings.

Loads configuration from environment variables and .env file.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from medreport.app.providers.types import ExecutorConfig


class Settings(BaseSettings):
    """Application settings with validation and defaults."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    host: str = Field(default="127.0.0.1", description="Server bind address")
    port: int = Field(default=8000, ge=1, le=65535, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="", description="Optional log file path")
    log_json: bool = Field(default=True, description="Emit JSON log lines")
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated CORS origins",
    )

    # Generation endpoint
    generate_url: str = Field(
        default="http://localhost:3002/api/generate",
        description="Remote text-generation endpoint",
    )

    # Retry policy
    max_attempts: int = Field(
        default=4, ge=1, le=10, description="Attempts per generation request"
    )
    base_delay_ms: int = Field(
        default=2000, ge=0, description="Base backoff delay in milliseconds"
    )
    timeout_ms: int = Field(
        default=30000, ge=0, description="Per-attempt timeout in milliseconds"
    )
    jitter_ms: int = Field(
        default=500, ge=0, description="Upper bound of random backoff jitter"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid:
            raise ValueError(f"log_level must be one of {valid}")
        return upper

    @field_validator("generate_url")
    @classmethod
    def validate_generate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("generate_url must be an http(s) URL")
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins into a list."""
        if not self.cors_origins:
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def executor_config(self) -> ExecutorConfig:
        """Retry policy for the generation executor."""
        return ExecutorConfig(
            max_attempts=self.max_attempts,
            base_delay_ms=self.base_delay_ms,
            timeout_ms=self.timeout_ms,
            jitter_ms=self.jitter_ms,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
