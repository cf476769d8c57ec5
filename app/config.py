"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings read from the environment (or a local ``.env``)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="null",
    )

    app_name: str = Field(default="Clinic Queue API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG", description="Echo SQL statements")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")

    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # Ledger
    database_url: str = Field(..., alias="DATABASE_URL")

    # Serving counters and realtime fan-out
    redis_host: str = Field(..., alias="REDIS_HOST")
    redis_port: int = Field(..., alias="REDIS_PORT")
    redis_username: str = Field(default="default", alias="REDIS_USERNAME")
    redis_password: str = Field(default="", alias="REDIS_PASSWORD")
    redis_decode_responses: bool = Field(default=True, alias="REDIS_DECODE_RESPONSES")

    # Bearer tokens for clinics and patients
    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=60 * 24 * 7, alias="ACCESS_TOKEN_EXPIRE_MINUTES", gt=0)

    # Patient push notifications; either source enables delivery
    firebase_credentials_path: str | None = Field(default=None, alias="FIREBASE_CREDENTIALS_PATH")
    firebase_config_json: str | None = Field(default=None, alias="FIREBASE_CONFIG_JSON")

    # Channel subscription signing
    realtime_key: str = Field(default="clinic-queue", alias="REALTIME_KEY")
    realtime_secret: str = Field(
        default="test-realtime-secret-for-development-only",
        alias="REALTIME_SECRET",
    )

    # Queue behaviour
    queue_upcoming_limit: int = Field(default=10, alias="QUEUE_UPCOMING_LIMIT", ge=0)
    queue_advance_upcoming_limit: int = Field(default=5, alias="QUEUE_ADVANCE_UPCOMING_LIMIT", ge=0)
    queue_default_process_minutes: int = Field(default=15, alias="QUEUE_DEFAULT_PROCESS_MINUTES", ge=1)
    queue_reset_on_new_day: bool = Field(default=True, alias="QUEUE_RESET_ON_NEW_DAY")
    queue_lock_timeout_seconds: float = Field(default=5.0, alias="QUEUE_LOCK_TIMEOUT_SECONDS", gt=0)
    queue_notify_ahead: int = Field(
        default=3,
        alias="QUEUE_NOTIFY_AHEAD",
        ge=0,
        description="Patients this many places from the front get an approaching alert",
    )

    cors_origins_str: str = Field(default="http://localhost:3000", alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: Literal["json", "console"] = Field(default="json", alias="LOG_FORMAT")

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()

    @property
    def cors_origins(self) -> list[str]:
        """Comma separated ``CORS_ORIGINS`` as a list."""
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]


settings = get_settings()
