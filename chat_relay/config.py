"""Application configuration loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Upstream generation service
    API_URL: str = "http://localhost:8080"
    CALLER_IDENTITY: str = "default-user"  # sent as the `username` header

    # Client side (CLI / ChatClient)
    RELAY_URL: str = "http://localhost:8000"

    # App
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
