"""Application settings loaded from environment variables and config files."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, PositiveFloat, SecretStr
from pydantic.networks import PostgresDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class AIProvider(str, Enum):
    """Language model backends available for summary generation."""

    AUTO = "auto"
    GEMINI = "gemini"
    GROQ = "groq"


class Settings(BaseSettings):
    """Primary application settings for the vidcat CLI and services.

    Every external provider is optional. Missing credentials put the matching service into its
    simulated mode instead of failing at startup.
    """

    database_url: Optional[PostgresDsn] = Field(default=None, alias="DATABASE_URL")
    youtube_api_key: Optional[SecretStr] = Field(default=None, alias="YOUTUBE_API_KEY")
    gemini_api_key: Optional[SecretStr] = Field(default=None, alias="GEMINI_API_KEY")
    groq_api_key: Optional[SecretStr] = Field(default=None, alias="GROQ_API_KEY")

    ai_provider: AIProvider = Field(default=AIProvider.AUTO, alias="AI_PROVIDER")
    gemini_model: str = Field(default="gemini-2.0-flash", alias="GEMINI_MODEL")
    groq_model: str = Field(default="llama-3.3-70b-versatile", alias="GROQ_MODEL")
    enable_summarization: bool = Field(default=True, alias="ENABLE_SUMMARIZATION")
    provider_timeout_seconds: PositiveFloat = Field(default=15.0, alias="PROVIDER_TIMEOUT_SECONDS")

    catalog_data_file: Path = Field(default=Path("data/catalog.json"), alias="CATALOG_DATA_FILE")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached instance of the application settings."""

    return Settings()


__all__ = ["AIProvider", "Settings", "get_settings"]
