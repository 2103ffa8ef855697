"""Configuration management using Pydantic Settings."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class WorkerSettings(BaseSettings):
    """Worker settings loaded from DEFERRED_WORKER_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DEFERRED_WORKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Pool
    pool_size: int = Field(default=4, ge=1)
    queue_limit: Optional[int] = Field(default=None, ge=0)
    thread_name_prefix: str = Field(default="DeferredWorker", min_length=1)

    # Event loop
    use_uvloop: bool = True

    # Lifecycle
    enforce_completion: bool = True
    shutdown_timeout: float = Field(default=5.0, gt=0)


# Global settings instance
_settings: Optional[WorkerSettings] = None


def get_settings() -> WorkerSettings:
    """Get or create settings instance."""
    global _settings
    if _settings is None:
        _settings = WorkerSettings()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None
