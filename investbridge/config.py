"""
InvestBridge Configuration.

Pydantic Settings v2 — loads from .env, environment variables.
"""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # ── Application ──────────────────────────────────────────────────────
    app_name: str = "InvestBridge Decision Engine"
    app_version: str = "1.0.0"
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")

    # ── API ───────────────────────────────────────────────────────────────
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8080, alias="API_PORT")
    allowed_origins: List[str] = Field(
        default=["http://localhost:5173", "http://localhost:8080"],
        alias="CORS_ORIGINS",
    )

    # ── Document store (SQL adapter) ─────────────────────────────────────
    database_url: str = Field(
        default="sqlite+aiosqlite:///./investbridge.db",
        alias="DATABASE_URL",
    )
    db_pool_size: int = Field(default=10, alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=20, alias="DB_MAX_OVERFLOW")
    db_pool_recycle: int = Field(default=3600, alias="DB_POOL_RECYCLE")
    store_max_batch_size: int = Field(
        default=500, alias="STORE_MAX_BATCH_SIZE",
        description="Maximum operations per atomic batch write",
    )

    # ── Identity (JWT) ────────────────────────────────────────────────────
    jwt_secret: str = Field(
        default="dev-jwt-secret-change-in-production",
        alias="JWT_SECRET",
    )
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = Field(default=60, alias="JWT_EXPIRE_MINUTES")

    # ── Store triggers ────────────────────────────────────────────────────
    trigger_api_key: str = Field(
        default="investbridge-dev-trigger-key",
        alias="TRIGGER_API_KEY",
    )

    # ── Push delivery ─────────────────────────────────────────────────────
    push_gateway_url: str = Field(default="", alias="PUSH_GATEWAY_URL")
    push_gateway_token: str = Field(default="", alias="PUSH_GATEWAY_TOKEN")
    push_timeout_seconds: float = Field(default=10.0, alias="PUSH_TIMEOUT_SECONDS")

    # ── Retention ─────────────────────────────────────────────────────────
    notification_retention_days: int = Field(default=30, alias="NOTIFICATION_RETENTION_DAYS")
    retention_batch_size: int = Field(default=500, alias="RETENTION_BATCH_SIZE")
    retention_max_batches: int = Field(
        default=20, alias="RETENTION_MAX_BATCHES",
        description="Upper bound on delete batches per sweep run",
    )

    # ── Scheduler ─────────────────────────────────────────────────────────
    scheduler_timezone: str = Field(default="Asia/Kolkata", alias="SCHEDULER_TIMEZONE")
    retention_cron_hour: int = Field(default=2, alias="RETENTION_CRON_HOUR")
    portfolio_cron_hour: int = Field(default=3, alias="PORTFOLIO_CRON_HOUR")

    # ── Analytics ─────────────────────────────────────────────────────────
    analytics_recent_log_limit: int = Field(default=1000, alias="ANALYTICS_RECENT_LOG_LIMIT")

    # ── Operational ────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="console", alias="LOG_FORMAT")

    @property
    def async_database_url(self) -> str:
        """Ensure the database URL uses an async driver."""
        url = self.database_url
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        if url.startswith("sqlite://"):
            url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return url


settings = Settings()
