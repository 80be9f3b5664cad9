"""Configuration management for the local health store."""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_data_dir() -> Path:
    return Path.home() / ".healthstore" / "data"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Storage
    data_dir: Path = Field(default_factory=_default_data_dir)
    lock_timeout: float = 10.0

    # Heart rate history
    heart_rate_history_cap: int = 200
    heart_rate_recency_seconds: int = 24 * 60 * 60

    # Weather (optional - falls back to the default temperature if not provided)
    openweather_api_key: Optional[str] = None
    openweather_base_url: str = "https://api.openweathermap.org/data/2.5/weather"
    weather_cache_ttl: int = 3600
    weather_timeout: float = 10.0
    default_temperature_c: float = 28.0

    # Application Settings
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def has_weather(self) -> bool:
        """Check if the weather API is configured."""
        return bool(self.openweather_api_key)


def get_settings() -> Settings:
    """Get application settings from environment variables and the .env file."""
    return Settings()
