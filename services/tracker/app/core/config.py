"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "QRTrack"
    app_version: str = "0.1.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Storage
    storage_backend: Literal["sql", "redis"] = "sql"
    storage_key: str = "qr_codes_data"
    database_url: str = "sqlite+aiosqlite:///./data/qrtrack.db"
    redis_url: str = "redis://localhost:6379/0"
    redis_lock_timeout: float = 10.0

    # Tracking
    public_base_url: str = "http://localhost:8000"
    fallback_url: str = "/"
    analytics_timezone: str = "UTC"

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_storage_uri: str = "memory://"

    # CORS
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    sentry_dsn: str = ""
    otlp_endpoint: str = ""

    @field_validator("analytics_timezone")
    @classmethod
    def check_analytics_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except ZoneInfoNotFoundError as e:
            raise ValueError(f"Unknown time zone: {v}") from e
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
