"""Application configuration using Pydantic Settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PREVIEW_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Server settings
    host: str = "127.0.0.1"
    port: int = 5680
    debug: bool = False
    log_level: str = "INFO"

    # Session limits
    max_sessions: int = Field(default=100, ge=1, le=10000)
    session_ttl_seconds: int = Field(default=30 * 60, ge=1)  # 30 minutes of inactivity
    sweep_interval_seconds: float = Field(default=5 * 60, gt=0)

    # Sandbox worker pool
    sandbox_workers: int = Field(default=2, ge=1, le=32)
    sandbox_memory_limit_mb: int = Field(default=1024, ge=0)  # 0 disables the cap
    format_timeout_seconds: float = Field(default=10.0, gt=0, le=300.0)
    lint_timeout_seconds: float = Field(default=10.0, gt=0, le=300.0)
    typecheck_timeout_seconds: float = Field(default=30.0, gt=0, le=600.0)

    # Payload limits
    max_code_length: int = Field(default=200_000, ge=1)  # characters, format/lint
    max_typecheck_bytes: int = Field(default=5_000_000, ge=1)  # whole snapshot

    @property
    def session_ttl_minutes(self) -> int:
        """Session inactivity window, as shown to end users."""
        return self.session_ttl_seconds // 60


# Global settings instance
settings = Settings()
