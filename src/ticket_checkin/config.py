"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    api_base_url: str = "https://ticket-dawg-server.onrender.com/api"
    api_timeout_seconds: float = 15.0
    validation_timeout_seconds: float = 10.0
    camera_index: int = 0
    scan_fps: int = 10
    preview_jpeg_quality: int = 70
    camera_max_failed_reads: int = 30
    surface_id: str = "qr-reader"
    surface_attach_attempts: int = 20
    surface_attach_delay_seconds: float = 0.1
    release_grace_seconds: float = 0.0
    session_file: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_ticket_filters(**filters: object) -> dict[str, str]:
    """Drop empty filter values and stringify the rest for query params."""
    params: dict[str, str] = {}
    for key, value in filters.items():
        if value is None or value == "" or value is False:
            continue
        params[key] = str(value).lower() if isinstance(value, bool) else str(value)
    return params
