"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment (development, staging, production)
    ENV: str = "development"

    # App Version
    VERSION: str = "1.0.1"

    # Database
    DATABASE_URL: str

    # Session Token (supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 8

    # CORS
    CORS_ORIGINS: str = "http://localhost:5173"

    # Assignment limits
    MAX_ACTIVE_CASES_PER_ADVOCATE: int = 50

    # Activity retention (days before entries are hidden)
    ACTIVITY_RETENTION_DAYS: int = 365

    # Days after a case goes on hold before assigned advocates are reminded
    ON_HOLD_REMINDER_DAYS: int = 7

    # Outbound notification delivery (email/SMS/WhatsApp gateway)
    NOTIFICATION_WEBHOOK_URL: str = ""  # Empty = dry run (log only)
    NOTIFICATION_WEBHOOK_TOKEN: str = ""
    NOTIFICATION_TIMEOUT_SECONDS: float = 10.0

    # Worker
    WORKER_POLL_INTERVAL: int = 10
    WORKER_BATCH_SIZE: int = 10
    JOB_MAX_ATTEMPTS: int = 3

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Returns list of valid secrets (current first, then previous if set)."""
        secrets = [self.JWT_SECRET]
        if self.JWT_SECRET_PREVIOUS:
            secrets.append(self.JWT_SECRET_PREVIOUS)
        return secrets

    @property
    def is_dev(self) -> bool:
        """Local development; enables the interactive API docs."""
        return self.ENV in ("dev", "development", "local")


settings = Settings()
