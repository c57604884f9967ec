from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # HTTP
    port: int = 8080

    # Database
    database_url: str

    # Webhooks
    boot_webhook_url: str
    location_webhook_url: str
    notify_timeout_seconds: float = Field(default=10.0, gt=0)

    # Inference
    room_count: int = Field(default=3, ge=1)
    reading_window_seconds: int = Field(default=60, gt=0)
    lock_timeout_seconds: float = Field(default=10.0, gt=0)

    # Application
    log_level: str = "INFO"
    environment: str = "development"

    model_config = SettingsConfigDict(env_file=".env")
