"""Runtime settings."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_prefix="CTHIST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    ctgov_base_url: str = "https://clinicaltrials.gov"
    request_timeout: float = Field(default=30.0, ge=1, le=120)
    http_attempts: int = Field(default=3, ge=1, le=10)

    version_attempts: int = Field(default=10, ge=1, le=10)
    lock_timeout: float = Field(default=10.0, ge=0)

    quiet: bool = False
