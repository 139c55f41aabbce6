"""
Configuration management for Ana Hub.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Built once at process start and handed to each component. Instances
    are frozen.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Application
    app_name: str = Field(default="Ana Hub")
    debug: bool = Field(default=False)
    environment: str = Field(default="development")

    # API
    api_host: str = Field(default="127.0.0.1")
    api_port: int = Field(default=3000)

    # Database
    database_url: str = Field(default="sqlite:///./kanban.db")
    seed_boards: List[List[str]] = Field(
        default=[
            ["Wealth Analytica", "wealth-analytica", "Board for Wealth Analytica company"],
            ["BAV Futures", "bav-futures", "Board for BAV Futures"],
            ["Prostate Cancer", "prostate-cancer", "Board for Prostate Cancer UK"],
        ],
        description="[name, slug, description] rows inserted when no board exists",
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json", description="json or console")

    # Sync relay
    sync_poll_interval_minutes: int = Field(default=60, ge=1)
    sync_startup_delay_seconds: float = Field(default=10.0, ge=0)
    sync_relay_api_url: str = Field(default="https://api.github.com")
    sync_relay_owner: str = Field(default="")
    sync_relay_repo: str = Field(default="")
    sync_relay_token: Optional[str] = Field(default=None, repr=False)
    sync_label: str = Field(default="type:sync")
    sync_page_size: int = Field(default=50, ge=1, le=100)
    sync_request_timeout_seconds: float = Field(default=30.0, gt=0)
    sync_max_attempts: int = Field(
        default=10,
        ge=0,
        description="Failed deliveries before a relay unit is dead-lettered; 0 = never",
    )
    sync_intake_url: Optional[str] = Field(
        default=None,
        description="Loopback intake URL; derived from api_port when unset",
    )

    @property
    def intake_url(self) -> str:
        """Loopback URL the poller forwards events to."""
        if self.sync_intake_url:
            return self.sync_intake_url
        return f"http://127.0.0.1:{self.api_port}/api/sync/apply"

    @property
    def sync_poll_interval_seconds(self) -> float:
        return self.sync_poll_interval_minutes * 60.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get application settings."""
    return Settings()
