"""Application configuration via pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(RuntimeError):
    """Raised when required credentials are missing from the settings."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Slack
    slack_bot_token: str = ""
    slack_user_token: str = ""  # privileged token, needed for deletes
    slack_channel_name: str = ""  # empty = every channel the app is in
    slack_signing_secret: str = ""

    # Google Cloud Speech-to-Text
    google_service_account_json: str = ""
    speech_language_code: str = "ja-JP"
    speech_alternative_language_codes: list[str] = ["en-US"]
    external_speech: Literal["off", "fallback", "always"] = "off"

    # Pipeline policy
    cleanup_target: Literal["file", "message", "none"] = "file"
    dedup_ttl_seconds: int = 300
    recheck_delay_seconds: float = 10.0
    max_rechecks: int = 6

    # Scheduler
    scheduler_secret: str = ""

    # App
    environment: str = "development"
    log_level: str = "INFO"
    port: int = 8080


class Credentials(BaseModel):
    """Validated Slack credentials threaded into the Slack client."""

    bot_token: str
    privileged_token: str
    channel_filter: str | None = None


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings. Lazy initialization to avoid import-time errors."""
    return Settings()


def load_credentials(settings: Settings) -> Credentials:
    """Return the Slack credentials, failing loudly if either token is absent.

    Raises:
        ConfigurationError: If the bot token or the privileged user token is missing.
    """
    missing = [
        name
        for name, value in (
            ("SLACK_BOT_TOKEN", settings.slack_bot_token),
            ("SLACK_USER_TOKEN", settings.slack_user_token),
        )
        if not value
    ]
    if missing:
        raise ConfigurationError(f"Missing Slack credentials: {', '.join(missing)}")

    return Credentials(
        bot_token=settings.slack_bot_token,
        privileged_token=settings.slack_user_token,
        channel_filter=settings.slack_channel_name or None,
    )
