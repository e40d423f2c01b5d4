from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_env: str = "dev"
    app_host: str = "0.0.0.0"
    app_port: int = 8000

    site_title: str = "Forum"
    reply_by_email_address: str = "reply+%{reply_key}@example.org"
    previous_discussion_marker: str = "Previous Replies"

    email_in: bool = False
    email_in_min_trust: int = 2

    forum_base_url: str = "http://localhost:3000"
    forum_api_key: str = ""
    forum_api_username: str = "system"
    system_username: str = "system"

    inbound_api_key: str = ""

    log_level: str = "INFO"
    api_retry_max_attempts: int = 3
    api_retry_base_delay_seconds: float = 1.0
    api_retry_max_delay_seconds: float = 8.0
    api_timeout_seconds: float = 20.0

    alert_webhook_url: str = ""


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
