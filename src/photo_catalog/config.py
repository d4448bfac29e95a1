"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    photos_table: str = "photo_items"
    enrichment_queue_name: str = "photo-enrichment"
    s3_bucket: str
    aws_region: str = "us-east-1"
    s3_endpoint_url: str | None = None
    openai_api_key: str
    openai_model: str = "gpt-4o-mini"
    openai_timeout_seconds: float = 30.0
    google_oauth_client_id: str
    storage_webhook_token: str
    presigned_url_ttl_seconds: int = 3600
    default_page_size: int = 20
    max_page_size: int = 100
    enrichment_concurrency: int = 4
    enrichment_max_attempts: int = 5
    enrichment_visibility_timeout_seconds: int = 120
    enrichment_retry_base_seconds: int = 5
    enrichment_retry_max_seconds: int = 300
    queue_poll_interval_seconds: float = 1.0
    run_worker_in_process: bool = True
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
