"""
Application Configuration

Centralized configuration management using Pydantic settings.
Loads from environment variables with fallback to .env file.
"""
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Note: get_settings() is cached. Tests that need different values
    must set the environment before the first import, or call
    get_settings.cache_clear().
    """

    # Database settings
    DATABASE_URL: str = "postgresql://localhost/homecare_dev"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 40

    # Security settings
    SECRET_KEY: str = "dev-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Redis for rate limiting
    REDIS_URL: str = "redis://localhost:6379/0"

    # Application settings
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    SITE_URL: str = "http://localhost:3000"

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 60
    RATE_LIMIT_BURST: int = 10
    # Tighter bucket for /auth/* (login, register, refresh), keyed by IP
    RATE_LIMIT_AUTH_PER_MINUTE: int = 5
    RATE_LIMIT_AUTH_BURST: int = 5

    # Stripe
    # Billing is switched off until the key and both price ids are present
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    STRIPE_PRICE_ID_CORE: Optional[str] = None
    STRIPE_PRICE_ID_RIVOPRO: Optional[str] = None
    # One-off property report purchases; optional even when billing is on
    STRIPE_PRICE_ID_REPORT: Optional[str] = None
    STRIPE_API_BASE: str = "https://api.stripe.com/v1"
    STRIPE_WEBHOOK_TOLERANCE: int = 300

    # File storage
    UPLOAD_DIR: str = "./uploads"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    MAX_BOOKING_IMAGES: int = 5

    # Scheduled jobs (reminders) authenticate with this shared secret
    REMINDER_JOB_SECRET: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def stripe_configured(self) -> bool:
        return bool(
            self.STRIPE_SECRET_KEY
            and self.STRIPE_PRICE_ID_CORE
            and self.STRIPE_PRICE_ID_RIVOPRO
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures we only instantiate settings once.
    """
    return Settings()
