"""
Configuration and settings for the API service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Supabase project
    supabase_url: Optional[str] = Field(default=None)
    supabase_service_role_key: Optional[str] = Field(default=None)
    supabase_anon_key: Optional[str] = Field(default=None)

    # Storage
    skills_media_bucket: str = Field(default="skills-media")

    # Email (Resend)
    resend_api_key: str = Field(default="")
    resend_from: str = Field(default="")
    resend_api_url: str = Field(default="https://api.resend.com/emails")
    invite_redirect_url: str = Field(default="")
    app_name: str = Field(default="ANKOR")

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    log_level: str = Field(default="INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
