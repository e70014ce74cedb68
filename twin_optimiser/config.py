"""Application configuration settings.

This module defines the ``Settings`` class using ``pydantic-settings`` to
load configuration from environment variables (and an optional ``.env``
file). It centralises the runtime configuration of the service: the
reservation API credentials, where the per-location configuration lives,
and the defaults for the booking grid window.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration values loaded from environment variables.

    Environment variable names map to fields by alias. Every value has a
    default so the grid engine can be imported and tested without any
    environment; the NewBook credentials must be set for the service to
    reach the upstream API.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    # NewBook reservation API
    newbook_api_url: str = Field(
        default="https://api.newbook.cloud/rest",
        alias="NEWBOOK_API_URL",
        description="Base URL of the NewBook REST API.",
    )
    newbook_api_key: str = Field(default="", alias="NEWBOOK_API_KEY")
    newbook_username: str = Field(default="", alias="NEWBOOK_USERNAME")
    newbook_password: str = Field(default="", alias="NEWBOOK_PASSWORD")
    newbook_region: str = Field(default="", alias="NEWBOOK_REGION")
    request_timeout_seconds: float = Field(default=20.0, alias="REQUEST_TIMEOUT_SECONDS")
    cache_seconds: int = Field(
        default=30,
        alias="CACHE_SECONDS",
        description="How long a fetched booking list is reused before asking NewBook again. 0 disables caching.",
    )

    # Per-location configuration
    locations_config: str = Field(
        default="locations.json",
        alias="LOCATIONS_CONFIG",
        description="Path to the JSON file holding twin detection, category and task type settings per location.",
    )

    # Grid behaviour
    default_days: int = Field(default=14, alias="DEFAULT_DAYS", ge=1)
    max_days: int = Field(default=62, alias="MAX_DAYS", ge=1)
    early_checkin_minutes: int = Field(
        default=15 * 60,
        alias="EARLY_CHECKIN_MINUTES",
        description="Arrivals (or ETAs) strictly before this many minutes after midnight count as early check-ins.",
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


# Instantiate settings at module import time. This allows other modules to
# import ``settings`` directly without repeatedly reading environment variables.
settings = Settings()
