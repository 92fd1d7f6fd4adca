"""
Configuration management for the Auth Service
"""
from functools import lru_cache
from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Auth Service configuration loaded from environment variables"""

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./app.db"
    DB_POOL_SIZE: int = 25
    DB_MAX_OVERFLOW: int = 10

    # JWT Configuration
    JWT_SECRET: str = "change-this-secret-in-prod"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRY_HOURS: int = 24

    # Logging Configuration
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None

    # CORS Configuration
    CORS_ORIGINS: List[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("DATABASE_URL must be set and non-empty")
        return v.strip()

    @field_validator("JWT_SECRET")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("JWT_SECRET must be set and non-empty")
        return v

    @field_validator("JWT_EXPIRY_HOURS")
    @classmethod
    def validate_jwt_expiry_hours(cls, v: int) -> int:
        if v < 1 or v > 720:
            raise ValueError("JWT_EXPIRY_HOURS must be between 1 and 720 (1 hour to 30 days)")
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
