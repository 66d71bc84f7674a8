"""Application settings loaded from environment variables."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProviderConfig(BaseModel):
    """Connection settings for the primary upstream."""

    name: str = "synth"
    base_url: str = "https://api.synthfinance.com"
    timeout_seconds: float = Field(default=15.0, ge=1, le=120)


class SecondaryProviderConfig(BaseModel):
    """Connection settings for the fallback upstream and its two API generations."""

    name: str = "fmp"
    stable_url: str = "https://financialmodelingprep.com/stable"
    legacy_url: str = "https://financialmodelingprep.com/api/v3"
    timeout_seconds: float = Field(default=30.0, ge=1, le=120)
    api_key_param: str = "apikey"


class Settings(BaseSettings):
    """Runtime application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = "fin-gateway"
    app_version: str = "1.0.0"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    host: str = "0.0.0.0"
    port: int = 8080
    route_prefix: str = "/synth"
    health_path: str = "/health"

    primary: ProviderConfig = ProviderConfig()
    secondary: SecondaryProviderConfig = SecondaryProviderConfig()

    fmp_api_key: str = Field(default="", alias="FMP_API_KEY")


def get_settings() -> Settings:
    """Return application settings."""

    return Settings()
