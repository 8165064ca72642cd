"""
Configuration Management for the Health Calculator Service

Environment-based configuration using Pydantic Settings.
"""
from typing import List
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from healthcalc.utils.logging import DEFAULT_FORMAT


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="HEALTHCALC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # unrelated variables in .env
    )

    # Application
    app_name: str = "Health Calculator Assessment API"
    app_version: str = "0.1.0"
    debug: bool = Field(default=False, description="Enable debug mode")

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_prefix: str = "/api/v1"
    cors_origins: List[str] = ["*"]

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_format: str = Field(default=DEFAULT_FORMAT, description="Log record format")

    # Response shaping
    include_details: bool = Field(default=True, description="Include metric-specific details blocks")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
