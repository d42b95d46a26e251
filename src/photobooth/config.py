"""Application configuration."""

import os
from dataclasses import dataclass

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

DEFAULT_SEEDANCE_MODEL_ID = "seedance-1-0-pro-fast-251015"


class ConfigurationError(RuntimeError):
    """Raised when required configuration values are missing."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    ark_api_key: str | None = None
    ark_base_url: str | None = None
    apps_script_base_url: str | None = None
    seedance_model_id: str = DEFAULT_SEEDANCE_MODEL_ID
    max_concurrent_videos: int = 5
    admin_pin: str | None = None
    booth_api_base_url: str = "http://localhost:3000"
    gallery_poll_interval_seconds: float = 5.0
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


@dataclass(frozen=True)
class DispatcherConfig:
    """Validated configuration for the queue dispatcher."""

    api_key: str
    api_base_url: str
    store_base_url: str
    default_model_id: str = DEFAULT_SEEDANCE_MODEL_ID
    max_concurrent: int = 5

    @classmethod
    def from_settings(cls, settings: Settings) -> "DispatcherConfig":
        """Build a dispatcher config, failing if a credential or URL is unset."""
        missing = [
            name
            for name, value in (
                ("ARK_API_KEY", settings.ark_api_key),
                ("ARK_BASE_URL", settings.ark_base_url),
                ("APPS_SCRIPT_BASE_URL", settings.apps_script_base_url),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Config missing: {', '.join(missing)}")
        return cls(
            api_key=settings.ark_api_key or "",
            api_base_url=(settings.ark_base_url or "").rstrip("/"),
            store_base_url=settings.apps_script_base_url or "",
            default_model_id=settings.seedance_model_id or DEFAULT_SEEDANCE_MODEL_ID,
            max_concurrent=settings.max_concurrent_videos,
        )
