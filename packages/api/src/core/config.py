# This project was developed with assistance from AI tools.
"""
Application configuration.

Everything is read from the environment (or the repository .env file).
Thresholds and limits used by the bulk and queue services are read at call
time, so tests can patch them on the settings object.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve project root .env regardless of CWD
_PROJECT_ROOT = Path(__file__).resolve().parents[4]
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Application settings -- single source of truth for env-driven config."""

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -- App --
    APP_NAME: str = "subx-admin"
    DEBUG: bool = False

    # -- CORS --
    ALLOWED_HOSTS: list[str] = ["http://localhost:5173"]

    # -- Auth --
    AUTH_DISABLED: bool = Field(
        default=False,
        description="Bypass JWT validation. Set True for tests and local dev without Keycloak.",
    )
    KEYCLOAK_URL: str = "http://localhost:8080"
    KEYCLOAK_REALM: str = "subx-admin"
    KEYCLOAK_CLIENT_ID: str = Field(
        default="",
        description="Also accept dashboard roles granted on this Keycloak client.",
    )
    JWKS_CACHE_TTL: int = Field(
        default=300,
        description="JWKS cache lifetime in seconds (default 5 minutes).",
    )

    # -- Bulk operations --
    AUTO_APPROVE_THRESHOLD: float = Field(
        default=25_000,
        description="Default paid-amount ceiling for auto-approving pending requests.",
    )
    HIGH_VALUE_FLOOR: float = Field(
        default=50_000,
        description="Minimum paid amount for the high-value triage list.",
    )
    PROCESS_BY_STATUS_MAX: int = Field(
        default=50,
        description="Default number of requests moved by one status sweep.",
    )
    ATOMIC_BATCH_MAX_ITEMS: int = Field(
        default=25,
        description="Largest id list accepted by the all-or-nothing bulk transition.",
    )

    # -- Work queue --
    QUEUE_BATCH_SIZE: int = Field(
        default=10,
        description="Queue items processed concurrently per chunk.",
    )
    QUEUE_CHUNK_COOLDOWN_SECONDS: float = Field(
        default=1.0,
        description="Pause between chunks to stay under store write-rate limits.",
    )
    AUTO_QUEUE_LOOKBACK_HOURS: int = Field(
        default=24,
        description="Only pending requests newer than this are auto-queued.",
    )
    AUTO_QUEUE_INTERVAL_SECONDS: float = Field(
        default=0,
        description="Run the auto-queue scan on this interval. 0 disables the background scan.",
    )


settings = Settings()
