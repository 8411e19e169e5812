"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, PostgresDsn, RedisDsn, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

# Plan limits
FREE_MAX_PROJECTS = 3
FREE_MAX_IMAGES_PER_PROJECT = 5
PRO_MAX_IMAGES_PER_PROJECT = 10
FREE_MAX_IMAGE_BYTES = 5 * 1024 * 1024
PRO_MAX_IMAGE_BYTES = 10 * 1024 * 1024


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: Literal["development", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_workers: int = 1
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    app_url: str = "http://localhost:8000"  # Used in email links and portfolio URLs
    app_name: str = "DevStack Link"

    # Database
    database_url: PostgresDsn | str

    # Redis (optional; rate limiting falls back to process memory)
    redis_url: RedisDsn | None = None

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_backend: Literal["memory", "redis"] = "memory"

    # Authentication
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 43200  # 30 days
    session_cookie_name: str = "devstack_session"
    password_reset_expire_minutes: int = 60

    # Sentry
    sentry_dsn: str | None = None

    # Email (Resend)
    resend_api_key: str | None = None
    resend_api_url: str = "https://api.resend.com/emails"
    email_from_address: str = "noreply@devstack.link"
    email_from_name: str = "DevStack Link"
    email_timeout_seconds: float = 10.0

    # Uploads (local disk)
    upload_dir: str = "uploads"
    upload_url_prefix: str = "/uploads"

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.env == "production"

    @property
    def is_test(self) -> bool:
        """Check if running in test mode."""
        return self.env == "test"

    @property
    def email_enabled(self) -> bool:
        """Emails are only delivered in production with an API key."""
        return self.is_production and bool(self.resend_api_key)


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process."""
    try:
        settings = Settings()  # type: ignore[call-arg]
    except ValidationError as e:
        missing = sorted(
            str(err["loc"][0]).upper() for err in e.errors() if err["type"] == "missing"
        )
        if not missing:
            raise
        raise RuntimeError(
            f"Missing required environment variables: {', '.join(missing)} "
            "(REDIS_URL is only needed with RATE_LIMIT_BACKEND=redis)."
        ) from e
    # Verification and reset links only ever leave the process by email
    if settings.is_production and not settings.resend_api_key:
        raise RuntimeError("Missing required environment variables: RESEND_API_KEY.")
    return settings
