"""Application settings read from the environment."""

import logging
import os

from pydantic import BaseModel, Field

from familycal.app.env_loader import get_current_environment, validate_required_env_vars

logger = logging.getLogger(__name__)

MIN_ENCRYPTION_KEY_LENGTH = 32


class Settings(BaseModel):
    database_url: str
    google_client_id: str
    google_client_secret: str
    google_redirect_uri: str
    encryption_key: str
    session_secret: str
    environment: str = "dev"
    public_dashboard_base_url: str = "/"
    credential_poll_interval_seconds: float = Field(default=5.0, gt=0)
    credential_wait_timeout_seconds: float | None = Field(default=10.0, gt=0)
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"]
    )
    log_level: str | None = None

    @property
    def is_production(self) -> bool:
        return self.environment == "prod"


def _split_origins(value: str) -> list[str]:
    return [origin.strip() for origin in value.split(",") if origin.strip()]


def load_settings() -> Settings:
    """Build settings from the environment, exiting if required values are missing."""
    validate_required_env_vars()

    encryption_key = os.environ["ENCRYPTION_KEY"]
    if len(encryption_key) < MIN_ENCRYPTION_KEY_LENGTH:
        logger.warning(
            f"ENCRYPTION_KEY is shorter than {MIN_ENCRYPTION_KEY_LENGTH} characters; "
            f"use a longer random value"
        )

    values: dict = {
        "database_url": os.environ["DATABASE_URL"],
        "google_client_id": os.environ["GOOGLE_CLIENT_ID"],
        "google_client_secret": os.environ["GOOGLE_CLIENT_SECRET"],
        "google_redirect_uri": os.environ["GOOGLE_REDIRECT_URI"],
        "encryption_key": encryption_key,
        "session_secret": os.environ["SESSION_SECRET"],
        "environment": get_current_environment(),
        "log_level": os.getenv("LOG_LEVEL"),
    }
    if base_url := os.getenv("PUBLIC_DASHBOARD_BASE_URL"):
        values["public_dashboard_base_url"] = base_url
    if poll_interval := os.getenv("CREDENTIAL_POLL_INTERVAL_SECONDS"):
        values["credential_poll_interval_seconds"] = float(poll_interval)
    if wait_timeout := os.getenv("CREDENTIAL_WAIT_TIMEOUT_SECONDS"):
        values["credential_wait_timeout_seconds"] = float(wait_timeout)
    if origins := os.getenv("CORS_ORIGINS"):
        values["cors_origins"] = _split_origins(origins)

    return Settings.model_validate(values)
