"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


def _split_csv(value: str) -> list[str]:
    if not value.strip():
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Eldercare configuration. All values come from environment variables."""

    # Scheduler
    scheduler_timezone: str = Field(default="UTC")
    display_timezone: str = Field(default="UTC")

    # Doses
    snooze_minutes: int = Field(default=30)
    missed_scan_days: int = Field(default=3)
    digest_delay_seconds: int = Field(default=60)
    dose_log_path: Path = Field(default=Path("data/dose_log.jsonl"))

    # Email (SMTP with STARTTLS)
    smtp_host: str = Field(default="smtp.gmail.com")
    smtp_port: int = Field(default=587)
    smtp_username: str = Field(default="")
    smtp_password: str = Field(default="")
    sender_email: str = Field(default="")

    # Telnyx SMS
    telnyx_api_key: str = Field(default="")
    telnyx_phone_number: str = Field(default="")

    # Notifications
    default_notification_channel: str = Field(default="email")

    # Care circle
    caretaker_emails: str = Field(default="")
    caretaker_phones: str = Field(default="")

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

    def get_caretaker_emails(self) -> list[str]:
        """Parse CARETAKER_EMAILS into a list of addresses."""
        return _split_csv(self.caretaker_emails)

    def get_caretaker_phones(self) -> list[str]:
        """Parse CARETAKER_PHONES into a list of phone numbers."""
        return _split_csv(self.caretaker_phones)


settings = Settings()
