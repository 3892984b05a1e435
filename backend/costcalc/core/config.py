"""
Application configuration using Pydantic BaseSettings.
Loads environment variables and provides typed configuration.
"""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Project metadata
    PROJECT_NAME: str = "Project Cost Calculator"
    VERSION: str = "0.1.0"
    API_V1_PREFIX: str = "/api/v1"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Logging
    LOG_LEVEL: str = "INFO"

    # Exchange rate sources ({base} is substituted with the base currency code)
    EXCHANGE_RATE_PRIMARY_URL: str = "https://api.exchangerate-api.com/v4/latest/{base}"
    EXCHANGE_RATE_FALLBACK_URL: str = "https://api.exchangerate.host/latest?base={base}"
    EXCHANGE_RATE_CACHE_TTL_SECONDS: int = 300
    EXCHANGE_RATE_HTTP_TIMEOUT: int = 10
    EXCHANGE_RATE_HTTP_RETRIES: int = 2
    EXCHANGE_RATE_HTTP_RETRY_DELAY: float = 0.5
    RATE_HISTORY_DAYS: int = 30

    # Project defaults
    PROJECT_RATE_TIMEOUT_SECONDS: float = 10.0
    DEFAULT_MONTHLY_HOURS: float = 160.0
    DEFAULT_CURRENCY: str = "USD"

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
