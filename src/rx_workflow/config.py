"""Application configuration using Pydantic settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Record / prescription API
    api_base_url: str = "http://localhost:8080"
    request_timeout: float = 10.0

    # Pharmacy directory
    pharmacy_search_size: int = 10
    pharmacy_cache_ttl: int = 300

    # Application
    log_level: str = "INFO"
    environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


settings = Settings()
