"""
Application configuration using pydantic-settings.
Loads from environment variables / .env file.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "biologykingdom"
    app_env: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # API Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Postgres (empty disables the database layer)
    database_url: str = ""
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # Redis (Celery broker)
    redis_url: str = "redis://localhost:6379/0"

    # Razorpay
    razorpay_key_id: str
    razorpay_key_secret: str
    razorpay_webhook_secret: str

    # Supabase Auth (identity provider)
    supabase_url: str
    supabase_anon_key: str

    # Billing
    payment_currency: str = "INR"
    webhook_subscription_days: int = 30

    # Practice
    default_daily_target: int = 10

    # Admin
    admin_api_key: str = ""

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
