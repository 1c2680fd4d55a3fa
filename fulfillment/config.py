"""Configuration management for the fulfillment service."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Redis Configuration
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis URL")

    # API Configuration
    api_port: int = Field(default=8000, description="API server port")
    api_host: str = Field(default="0.0.0.0", description="API server host")

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "text"] = Field(default="json", description="Log format")

    # Dispatch Settings
    dispatch_radius_km: float = Field(
        default=3.0, description="Max rider distance from the shop in km"
    )
    default_rider_speed_kmph: float = Field(
        default=20.0, description="Rider speed used when the shop has no override"
    )
    dispatch_max_attempts: int = Field(
        default=3, description="Dispatch reruns when the chosen rider is taken"
    )

    # ETA Settings
    eta_excess_order_minutes: int = Field(
        default=2, description="Extra prep minutes per order above shop capacity"
    )
    eta_peak_penalty_minutes: int = Field(
        default=5, description="Minutes added during peak hours"
    )
    eta_margin_minutes: int = Field(
        default=5, description="Half-width of the promised delivery window"
    )
    eta_floor_minutes: int = Field(default=5, description="Lowest promised minimum")

    # Peak Hours (inclusive, marketplace-local)
    morning_peak_start: int = Field(default=7, description="Morning peak start hour")
    morning_peak_end: int = Field(default=10, description="Morning peak end hour")
    evening_peak_start: int = Field(default=18, description="Evening peak start hour")
    evening_peak_end: int = Field(default=22, description="Evening peak end hour")
    utc_offset_minutes: int = Field(
        default=330, description="Marketplace local time offset from UTC"
    )

    # Order Settings
    order_number_prefix: str = Field(default="MM", description="Order number prefix")
    order_number_max_attempts: int = Field(
        default=5, description="Regenerations allowed on order number collision"
    )

    # Store Settings
    transaction_max_attempts: int = Field(
        default=10, description="Optimistic transaction retries before giving up"
    )
    notification_channel: str = Field(
        default="notifications", description="Pub/sub channel for new notifications"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v_upper


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
