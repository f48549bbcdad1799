"""
Configuration module for the Clinic Calendar service.
Loads settings from environment variables and an optional .env file.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Clinic REST API (appointments, facilities, locations)
    clinic_api_url: str = Field(
        default="",
        alias="CLINIC_API_URL",
        description="Base URL of the clinic REST API (empty uses in-memory collaborators)"
    )
    clinic_api_token: str = Field(
        default="",
        alias="CLINIC_API_TOKEN",
        description="Bearer token sent with every clinic API request"
    )
    clinic_api_timeout: float = Field(
        default=10.0,
        alias="CLINIC_API_TIMEOUT",
        description="Clinic API request timeout in seconds"
    )

    # Calendar Configuration
    calendar_timezone: str = Field(
        default="UTC",
        alias="CALENDAR_TIMEZONE",
        description="IANA time zone used for all day and slot computations"
    )
    default_start_time: str = Field(
        default="09:00",
        alias="DEFAULT_START_TIME",
        description="Start time used when a day is picked without a time (HH:MM)"
    )
    default_duration_minutes: int = Field(
        default=30,
        alias="DEFAULT_DURATION_MINUTES",
        description="Duration pre-filled in the appointment dialog"
    )
    month_cell_event_limit: int = Field(
        default=3,
        alias="MONTH_CELL_EVENT_LIMIT",
        description="Events listed per month cell before collapsing into '+N more'"
    )

    # Application Configuration
    app_host: str = Field(
        default="0.0.0.0",
        alias="APP_HOST",
        description="Host to bind the application"
    )
    app_port: int = Field(
        default=8000,
        alias="APP_PORT",
        description="Port to bind the application"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()
