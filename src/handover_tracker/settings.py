"""
handover_tracker.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (JWT secret, cron secret, Google credentials).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Single settings object injected across layers.
    Every field is read from `HANDOVER_<FIELD>` environment variables.
    """

    model_config = SettingsConfigDict(env_prefix="HANDOVER_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables and error detail.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "handover-tracker"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080
    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Auth
    jwt_alg: str = "HS256"
    jwt_issuer: str = "handover-tracker"
    jwt_audience: str = "handover-api"
    jwt_secret: str = Field(default="dev-secret-change-me", repr=False)

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./handover.db"

    # Scheduled sync
    cron_secret: str | None = Field(default=None, repr=False)
    cron_interval_hours: int = Field(default=2, ge=1, le=24)
    # Base URL of the service running the sync; None relays to this app in-process.
    sync_base_url: str | None = None
    http_timeout_seconds: float = 30.0

    # Google integration
    google_service_account_key: str | None = Field(default=None, repr=False)
    google_sheets_id: str | None = None
    google_sheet_name: str = "Departing Employees"
    google_drive_parent_folder_id: str | None = None

    @property
    def cron_schedule(self) -> str:
        return f"0 */{self.cron_interval_hours} * * *"

    @property
    def hosted_database(self) -> bool:
        return not self.database_url.startswith("sqlite")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Google credentials are optional: the service boots without them and the
# diagnostics endpoint reports which integration steps are still missing.
