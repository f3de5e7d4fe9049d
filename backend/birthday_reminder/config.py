"""Application configuration via environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from .env or environment."""

    DATABASE_URL: str = "sqlite:///./birthdays.db"
    CORS_ORIGINS: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # Shared secret the external cron sends as "Authorization: Bearer <secret>"
    CRON_SECRET: str = ""

    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_API_BASE: str = "https://api.telegram.org"
    TELEGRAM_LINK_CODE_TTL_MINUTES: int = 10

    # Full service-account JSON for firebase-admin
    FIREBASE_SERVICE_ACCOUNT_KEY: str = ""
    PUSH_ICON_URL: str = "/icon-192x192.png"

    SCHEDULER_ENABLED: bool = False
    SCHEDULER_INTERVAL_SECONDS: int = 60

    class Config:
        env_file = ".env"


settings = Settings()
