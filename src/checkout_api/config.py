"""Application configuration using Pydantic Settings."""

import os
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings

from gateway_queue import QueueConfig
from gateway_retry import RetryPolicy


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "clover-checkout"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")
    DEBUG: bool = ENVIRONMENT == "development"
    LOG_LEVEL: str = "INFO"

    # Server
    HOST: str = os.environ.get("HOST", "0.0.0.0")
    PORT: int = int(os.environ.get("PORT", "52000"))

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    # Gateway credentials (required per request, not at startup)
    CLOVER_AUTH_TOKEN: Optional[str] = None
    CLOVER_MERCHANT_ID: Optional[str] = None

    # Gateway endpoints
    CLOVER_API_BASE_URL: str = "https://api.clover.com"
    CLOVER_CHECKOUT_PATH: str = "/invoicingcheckoutservice/v1/checkouts"
    CLOVER_MERCHANT_PATH: str = "/v3/merchants/{merchant_id}"
    CHECKOUT_PROBE_ENABLED: bool = True
    CHECKOUT_IDEMPOTENCY_HEADER: Optional[str] = "Idempotency-Key"
    USER_AGENT: str = "CloverCheckout/1.0"
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # Retry policy
    RETRY_MAX_RETRIES: int = 3
    RETRY_BASE_DELAY_SECONDS: float = 2.0
    RETRY_MAX_DELAY_SECONDS: float = 60.0
    RETRY_MIN_SPACING_SECONDS: float = 1.0

    # Outbound request queue
    QUEUE_MAX_CONCURRENT: int = 1
    QUEUE_MIN_INTERVAL_SECONDS: float = 1.0

    class Config:
        case_sensitive = True
        env_file = None  # Use system env only

    @property
    def has_credentials(self) -> bool:
        return bool(self.CLOVER_AUTH_TOKEN) and bool(self.CLOVER_MERCHANT_ID)

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.RETRY_MAX_RETRIES,
            base_delay_seconds=self.RETRY_BASE_DELAY_SECONDS,
            max_delay_seconds=self.RETRY_MAX_DELAY_SECONDS,
            min_spacing_seconds=self.RETRY_MIN_SPACING_SECONDS,
        )

    def queue_config(self) -> QueueConfig:
        return QueueConfig(
            max_concurrent=self.QUEUE_MAX_CONCURRENT,
            min_interval_seconds=self.QUEUE_MIN_INTERVAL_SECONDS,
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
