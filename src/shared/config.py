"""
Application configuration using Pydantic Settings.
Loads from environment variables and .env file.
"""

import os
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Session store
    store_backend: Literal["mongo", "memory"] = Field(default="mongo")
    mongodb_uri: str = Field(default="mongodb://localhost:27017")
    mongodb_database: str = Field(default="cv_screening")
    mongodb_collection: str = Field(default="sessions")

    # OpenAI / LLM extraction
    openai_api_key: SecretStr = Field(default=SecretStr(""))
    openai_model: str = Field(default="gpt-4o-mini")
    openai_max_tokens: int = Field(default=4000)
    openai_temperature: float = Field(default=0.1)
    openai_timeout_seconds: float = Field(default=120.0)
    openai_max_retries: int = Field(default=3, description="Retries after the first attempt")
    openai_retry_delay_ms: int = Field(
        default=1000, description="Base delay, multiplied by the retry number"
    )

    # Queues
    document_queue_capacity: int = Field(default=10_000)
    analysis_queue_capacity: int = Field(default=1_000)

    # Workers
    document_workers: Optional[int] = Field(
        default=None, description="Concurrent document workers (default: CPU count)"
    )
    worker_error_backoff_seconds: float = Field(default=1.0)
    analysis_error_backoff_seconds: float = Field(default=5.0)

    # Scheduler
    scheduler_interval_seconds: float = Field(default=30.0)
    scheduler_error_backoff_seconds: float = Field(default=60.0)

    # Analysis
    recommendations_top_n: int = Field(default=5)

    # Notifications
    notification_webhook_url: Optional[str] = Field(
        default=None, description="Endpoint receiving processing events as JSON"
    )
    notification_timeout_seconds: float = Field(default=10.0)

    # Upload limits
    supported_extensions: str = Field(default=".pdf,.docx,.txt")
    max_file_size: int = Field(default=10 * 1024 * 1024)
    max_files_per_batch: int = Field(default=100)
    max_batch_size: int = Field(default=500 * 1024 * 1024)

    @property
    def supported_extensions_list(self) -> list[str]:
        """Parse comma-separated extensions into a lowercase list."""
        return [e.strip().lower() for e in self.supported_extensions.split(",") if e.strip()]

    @property
    def worker_count(self) -> int:
        """Number of document workers to start."""
        return self.document_workers or os.cpu_count() or 1

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
