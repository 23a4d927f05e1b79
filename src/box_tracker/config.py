"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_key: str
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_max_tokens: int = 1000
    analysis_requests_per_minute: int = 10
    analysis_max_retries: int = 3
    analysis_backoff_base_seconds: float = 1.0
    image_max_dimension: int = 800
    image_quality: int = 70
    store_max_attempts: int = 3
    store_retry_delay_seconds: float = 1.0
    base_url: str = "http://localhost:8000"
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
