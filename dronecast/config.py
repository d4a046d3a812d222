"""Application configuration pulled from environment variables via pydantic."""
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dronecast.domain import Thresholds
from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")


class Settings(BaseSettings):
    """Environment-driven configuration for the dronecast service."""
    model_config = SettingsConfigDict(env_prefix="DRONE_", env_nested_delimiter="__", extra="ignore")

    forecast_source: str = "open_meteo"  # options: open_meteo
    forecast_days: int = 7
    forecast_cache_seconds: int = 600
    http_timeout_seconds: float = 10.0
    http_retries: int = 3
    api_key: str | None = None
    default_timezone: str = "UTC"
    thresholds: Thresholds = Field(default_factory=Thresholds)

    @field_validator("forecast_source", mode="after")
    @classmethod
    def normalize_source(cls, v: str) -> str:
        """Data source names are matched case-insensitively."""
        return str(v).strip().lower()


settings = Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4)}")
