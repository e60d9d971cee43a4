from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings."""

    # Application
    ENVIRONMENT: Literal["local", "development", "production", "test"] = "local"
    LOG_LEVEL: str = "INFO"
    ADMIN_EMAIL: str = "admin@rebooked.co.za"
    FRONTEND_URL: str = "http://localhost:3000"

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # Supabase
    # Placeholder values keep local/test runs working without real credentials.
    SUPABASE_JWT_SECRET: str = "test-jwt-secret"

    # Redis (ARQ workers and rate limit storage)
    REDIS_URL: str = "redis://localhost:6379/0"
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: Optional[str] = None

    # Paystack
    PAYSTACK_SECRET_KEY: Optional[str] = None
    PAYSTACK_API_BASE_URL: str = "https://api.paystack.co"
    PAYSTACK_CALLBACK_URL: Optional[str] = None
    # Who pays Paystack fees on split transactions: "account" or "subaccount"
    PAYSTACK_SPLIT_BEARER: Literal["account", "subaccount"] = "account"

    # Marketplace rules
    CURRENCY: str = "ZAR"
    PLATFORM_FEE_PERCENT: float = 10.0
    SELLER_SETTLEMENT_MODE: Literal["split", "transfer"] = "split"
    COMMIT_WINDOW_HOURS: int = 48
    COMMIT_REMINDER_HOURS: int = 24
    MIN_CHARGE_CENTS: int = 100
    MAX_REFUND_ATTEMPTS: int = 5

    # Couriers (live rates are used only when a key is configured)
    COURIER_GUY_API_KEY: Optional[str] = None
    COURIER_GUY_API_URL: str = "https://api.shiplogic.com/v2"
    FASTWAY_API_KEY: Optional[str] = None
    FASTWAY_API_URL: str = "https://sa.api.fastway.org/v3"
    COURIER_TIMEOUT_SECONDS: float = 10.0

    # Email (SMTP)
    SMTP_HOST: str = "smtp-relay.brevo.com"
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    DEFAULT_FROM_EMAIL: str = "no-reply@rebooked.co.za"
    DEFAULT_FROM_NAME: str = "ReBooked Solutions"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str]) -> str:
        if isinstance(v, str):
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+psycopg://", 1)
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Return the global settings instance, cached.
    """
    return Settings()
