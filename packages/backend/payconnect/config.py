from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    log_level: str = Field(default="INFO")

    http_timeout_seconds: float = Field(default=30.0, gt=0)

    # Base URL handed to create_webhooks by the dev server,
    # e.g. https://payments.example.com/webhooks
    webhook_base_url: str | None = None

    # Expose providers flagged as debug-only (dummypay) in /providers
    registry_debug: bool = True

    # pydantic-settings v2 configuration
    model_config = SettingsConfigDict(
        env_prefix="PAYCONNECT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
