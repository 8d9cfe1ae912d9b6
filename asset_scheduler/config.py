"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Scheduler configuration. All values come from environment variables."""

    # Database
    database_path: Path = Field(default=Path("data/asset_scheduler.db"))

    # Scheduler
    scheduler_timezone: str = Field(default="UTC")
    misfire_grace_seconds: int = Field(default=60)

    # Admin API
    admin_host: str = Field(default="127.0.0.1")
    admin_port: int = Field(default=8080)
    admin_token: str = Field(default="")

    # Notifications
    default_notification_channel: str = Field(default="log")
    notification_webhook_url: str = Field(default="")
    notification_timeout_seconds: float = Field(default=10.0)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    @property
    def webhook_enabled(self) -> bool:
        """True when a notification webhook URL is configured."""
        return bool(self.notification_webhook_url.strip())


settings = Settings()
