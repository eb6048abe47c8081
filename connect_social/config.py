"""
Runtime configuration helpers for the FastAPI application.

Loads DATABASE_URL and the authorization switches from the environment, with
defaults read from the .env file located in the project root.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root
BASE_DIR = Path(__file__).resolve().parents[1]

# Absolute path to .env
ENV_PATH = BASE_DIR / ".env"

# Load .env defaults without overriding environment variables provided by the platform
load_dotenv(dotenv_path=ENV_PATH, override=False)


class Settings(BaseSettings):
    # Required field, must come from .env
    database_url: str = Field(..., alias="DATABASE_URL")

    # Optional fields
    app_name: str = Field(default="Connect Social", alias="APP_NAME")
    api_version: str = Field(default="0.1.0", alias="API_VERSION")
    cors_origins: str | None = Field(default=None, alias="CORS_ORIGINS")

    # Identity provider tokens
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_audience: str | None = Field(default=None, alias="JWT_AUDIENCE")
    jwt_expires_minutes: int = Field(default=60, alias="JWT_EXPIRES_MINUTES")

    # Authorization switches
    dm_require_mutual_follow: bool = Field(default=True, alias="DM_REQUIRE_MUTUAL_FOLLOW")
    group_member_visibility: Literal["members", "own_and_creator"] = Field(
        default="members", alias="GROUP_MEMBER_VISIBILITY"
    )

    feed_page_size: int = Field(default=50, alias="FEED_PAGE_SIZE")

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


class MissingSecretError(RuntimeError):
    """JWT_SECRET_KEY is unset or still holds a sample value."""


# Sample values from .env templates.
_SAMPLE_JWT_SECRETS = frozenset({"changeme", "change-me", "secret", "your-jwt-secret"})


def load_jwt_secret() -> str:
    """Read the token signing key from the environment, never from a default."""
    value = (os.getenv("JWT_SECRET_KEY") or "").strip()
    if not value or value.lower() in _SAMPLE_JWT_SECRETS:
        raise MissingSecretError("JWT_SECRET_KEY must be set to a real signing key")
    return value


__all__ = ["MissingSecretError", "Settings", "get_settings", "load_jwt_secret"]
