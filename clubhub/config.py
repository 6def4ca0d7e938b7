"""
Configuration and settings for the club management backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CLUBHUB_",
        extra="ignore",
    )

    api_prefix: str = Field(default="/api")

    # Backing data store (hosted Postgres expected)
    database_url: Optional[str] = Field(default=None)

    # Session cache (Redis)
    redis_url: Optional[str] = Field(default=None)
    redis_session_prefix: str = Field(default="clubhub:session:")
    session_ttl_seconds: int = Field(default=60 * 60 * 24 * 30)
    session_poll_seconds: float = Field(default=1.0)

    # S3-compatible media storage for post attachments
    media_endpoint: Optional[str] = Field(default=None)
    media_region: Optional[str] = Field(default=None)
    media_bucket: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
