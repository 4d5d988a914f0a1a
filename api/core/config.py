"""
Configuration settings for the Taskboard API.

Uses environment variables with sensible defaults for development.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "CHANGE_ME_IN_PRODUCTION_USE_SECURE_SECRET_KEY"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Taskboard API"
    app_version: str = "0.1.0"
    debug: bool = Field(default=False)
    environment: Literal["development", "staging", "production"] = "development"

    # API
    api_v1_prefix: str = "/api/v1"
    allowed_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"]
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./taskboard.db"
    )

    # Session token (JWT stored in an HTTP-only cookie)
    jwt_secret_key: str = Field(default=DEFAULT_JWT_SECRET)
    jwt_algorithm: str = "HS256"
    jwt_expire_days: int = 7
    auth_cookie_name: str = "auth_token"
    auth_cookie_secure: bool = False
    auth_cookie_samesite: Literal["lax", "strict", "none"] = "lax"

    # Credentials
    password_min_length: int = 6
    password_hash_rounds: int = 12

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def parse_origins(cls, v):
        """Parse comma-separated origins string to list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @model_validator(mode="after")
    def check_jwt_secret(self) -> "Settings":
        """Refuse to sign sessions with the placeholder secret in production."""
        if self.environment == "production" and self.jwt_secret_key == DEFAULT_JWT_SECRET:
            raise ValueError("JWT_SECRET_KEY must be set in production")
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
