"""Application settings."""
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from the environment and an optional .env file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "sqlite+aiosqlite:///./hivley.db"
    DATABASE_ECHO: bool = False

    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"

    LOG_LEVEL: str = "INFO"

    UPLOAD_DIR: str = "uploads"
    PUBLIC_FILES_URL: str = "/files"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    STATIC_DIR: str = "dist"
    PORT: int = 3000
    BAAS_URL: str = ""
    CORS_ORIGINS: List[str] = ["*"]

    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100
    MAX_MESSAGE_LENGTH: int = 4000

    # Clients refresh presence every 5 minutes
    PRESENCE_HEARTBEAT_SECONDS: int = 300

    ALLOWED_EMAIL_DOMAINS: List[str] = ["psu.edu", "wm.edu"]

    @field_validator("LOG_LEVEL")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()

    @field_validator("DATABASE_URL")
    @classmethod
    def _async_driver(cls, value: str) -> str:
        # Hosted Postgres URLs come without an async driver
        if value.startswith("postgres://"):
            value = "postgresql://" + value[len("postgres://"):]
        if value.startswith("postgresql://"):
            value = "postgresql+asyncpg://" + value[len("postgresql://"):]
        return value


settings = Settings()
