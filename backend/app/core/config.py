"""Application configuration."""

import os
from typing import List, Optional, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "PortGuard"
    APP_ENV: str = "development"
    DEBUG: bool = False  # Secure default: disabled
    API_V1_PREFIX: str = "/api/v1"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # "json" or "text"

    # Database - Credentials must come from environment
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "portguard"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "portguard"

    # Database pool configuration
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE: int = 3600

    @property
    def DATABASE_URL(self) -> str:
        """Build async database URL. Uses DATABASE_URL env var if set."""
        external = os.environ.get("DATABASE_URL", "")
        if external:
            return external.replace("postgresql://", "postgresql+asyncpg://")
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # Redis (Celery broker + cron counters + price cache)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379

    @property
    def REDIS_URL(self) -> str:
        """Build Redis URL. Uses REDIS_URL env var if set."""
        external = os.environ.get("REDIS_URL", "")
        if external:
            return external
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/0"

    # CORS
    # Override with comma-separated env var: CORS_ORIGINS=https://mysite.com,https://www.mysite.com
    CORS_ORIGINS: Union[str, List[str]] = "http://localhost:3000,http://127.0.0.1:3000"

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    CORS_ALLOWED_METHODS: List[str] = ["GET", "POST", "PATCH", "DELETE", "OPTIONS"]
    CORS_ALLOWED_HEADERS: List[str] = [
        "Authorization",
        "Content-Type",
        "Accept",
        "Origin",
        "X-API-Key",
    ]

    # Alert engine
    ALERT_COOLDOWN_MINUTES: int = 10
    ALERT_CHECK_INTERVAL_SECONDS: float = 300.0  # Every 5 minutes
    ALERT_NOTIFICATION_EMAILS: str = "admin@portguard.app"
    ALERTS_CRON_API_KEY: Optional[str] = None

    @field_validator("ALERT_COOLDOWN_MINUTES")
    @classmethod
    def validate_cooldown(cls, v: int) -> int:
        """Cooldown window cannot be negative."""
        if v < 0:
            raise ValueError("ALERT_COOLDOWN_MINUTES must be >= 0")
        return v

    @property
    def alert_recipients(self) -> List[str]:
        """Recipients of alert emails."""
        return [
            email.strip()
            for email in self.ALERT_NOTIFICATION_EMAILS.split(",")
            if email.strip()
        ]

    # Price oracle (CoinGecko)
    COINGECKO_BASE_URL: str = "https://api.coingecko.com/api/v3"
    COINGECKO_API_KEY: Optional[str] = None
    PRICE_CACHE_TTL: int = 60  # 1 minute
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # Email (Resend)
    RESEND_API_URL: str = "https://api.resend.com/emails"
    RESEND_API_KEY: Optional[str] = None
    RESEND_FROM_EMAIL: str = "alerts@portguard.app"

    @property
    def email_enabled(self) -> bool:
        """Check if email is configured."""
        return bool(self.RESEND_API_KEY and self.RESEND_API_KEY.strip())

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
