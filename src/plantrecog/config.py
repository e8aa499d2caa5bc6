"""Environment-based configuration for PlantRecog."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from PLANTRECOG_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PLANTRECOG_",
        case_sensitive=False,
    )

    # Prediction service
    service_url: str = "http://localhost:8080"
    health_path: str = "/api/v1/health"
    classes_path: str = "/api/v1/recognized"
    predict_path: str = "/api/v1/predict"

    # Authentication (None = no Authorization header)
    api_key: str | None = None

    # Network (None = wait indefinitely)
    request_timeout: float | None = Field(default=None, gt=0)

    # Capture: lowest acceptable encoding quality keeps uploads small
    capture_quality: float = Field(default=0.0, ge=0.0, le=1.0)
    camera_device: int = Field(default=0, ge=0)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


def get_settings() -> Settings:
    """Create and return client settings."""
    return Settings()
