"""
StarOne - Configuration Module

Handles all environment-based configuration with validation.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # OpenAI Configuration
    openai_api_key: str = Field(default="", description="OpenAI API key")
    openai_model: str = Field(default="gpt-4o-mini", description="OpenAI model to use")
    openai_base_url: Optional[str] = Field(default=None, description="OpenAI-compatible endpoint override")
    generation_timeout: float = Field(default=60.0, description="Generation call timeout (seconds)")
    max_tokens: int = Field(default=4000, description="Maximum completion tokens")

    # Redis Configuration (empty -> in-memory quota store)
    redis_url: str = Field(default="", description="Redis connection URL")

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    identity_header: str = Field(default="X-User-Email", description="Header carrying the verified user identity")

    # Quota
    quota_limit: int = Field(default=2, ge=1, description="Analyses allowed per window")
    quota_window_seconds: int = Field(default=86400, ge=1, description="Quota window (24 hours)")

    # Catalog
    review_window: int = Field(default=150, ge=1, description="Most recent reviews fetched per analysis")
    catalog_max_attempts: int = Field(default=3, ge=1, description="Attempts per catalog call")
    default_country: str = Field(default="us", description="Default store country")
    default_lang: str = Field(default="en", description="Default store language")

    # Report shape
    excerpt_size: int = Field(default=10, ge=0, description="Negative reviews included in the report")
    max_insight_items: int = Field(default=7, ge=1, description="Maximum entries per insight category")

    log_level: str = Field(default="INFO", description="Root log level")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False
    )


# Cached settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get settings instance (reload on each server start)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
