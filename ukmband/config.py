"""
UKM Band – Application configuration.
Reads environment variables from a .env file via pydantic-settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # ── App ──
    APP_NAME: str = "UKM Band Dashboard"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # ── Database ──
    DATABASE_URL: str = "sqlite+aiosqlite:///./ukmband.db"

    # ── JWT session ──
    SECRET_KEY: str = "change-me-to-a-random-secret"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # ── Cron / self-invocation ──
    CRON_SECRET: str = ""
    NEXTAUTH_URL: str = "http://127.0.0.1:8000"

    # ── Push (FCM) ──
    PUBLIC_BASE_URL: str = "https://ukmbandbinusbekasi.vercel.app"
    FIREBASE_CREDENTIALS_FILE: str = ""
    FIREBASE_PROJECT_ID: str = ""

    # ── Notifications ──
    REMINDER_DEDUP_ENABLED: bool = False
    DISPATCH_CONCURRENCY: int = 20
    TIMEZONE: str = "Asia/Jakarta"

    # ── Caching ──
    DASHBOARD_CACHE_TTL_SECONDS: int = 180


settings = Settings()
