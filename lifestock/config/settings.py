from typing import List, Union
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Application
    ENVIRONMENT: str = "development"
    NAME: str = "LifeStock"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"
    WEB_SOCKET_PREFIX: str = "/ws"
    """Pydantic v2 doesn't support parsing List[str] from a plain comma-separated string by default anymore."""
    ALLOWED_HOSTS: Union[str, List[str]] = "http://localhost:3000,http://localhost:3001"
    LOG_LEVEL: str = "info"
    CLIENT_URL: str = "http://localhost:3000"

    # Database
    DATABASE_URL: str = "sqlite:///./lifestock.db"

    # Authentication & Security
    JWT_SECRET_KEY: str = "<your-jwt-secret-key>"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 30

    # Redis & Celery
    REDIS_PASSWORD: str = ""
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REALTIME_CHANNEL: str = "lifestock:realtime"

    # SendGrid email
    SENDGRID_API_KEY: str = ""
    SENDGRID_SENDER: str = "noreply@lifestock.com"

    # Web push (VAPID)
    VAPID_PUBLIC_KEY: str = ""
    VAPID_PRIVATE_KEY: str = ""
    VAPID_CONTACT_EMAIL: str = "support@lifestock.app"

    # Reminder scheduler
    TIMEZONE: str = "UTC"
    SCHEDULER_MODE: str = "inprocess"
    DAILY_SUMMARY_HOUR: int = 9
    DAILY_SUMMARY_MINUTE: int = 0
    DAILY_SUMMARY_PREVIEW_LIMIT: int = 5
    REMINDER_LOCK_TIMEOUT: int = 55 * 60

    @field_validator("ALLOWED_HOSTS", mode="before")
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if not v:
            return []
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        return v

    @field_validator("SCHEDULER_MODE", mode="before")
    def validate_scheduler_mode(cls, v: str) -> str:
        mode = (v or "inprocess").strip().lower()
        if mode not in {"inprocess", "celery", "disabled"}:
            raise ValueError(
                "SCHEDULER_MODE must be one of 'inprocess', 'celery' or 'disabled'"
            )
        return mode

    @property
    def redis_url(self) -> str:
        return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    @property
    def email_enabled(self) -> bool:
        return bool(self.SENDGRID_API_KEY and self.SENDGRID_SENDER)

    @property
    def push_enabled(self) -> bool:
        return bool(self.VAPID_PUBLIC_KEY and self.VAPID_PRIVATE_KEY)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
