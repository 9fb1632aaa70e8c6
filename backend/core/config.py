"""Configuration for the sensor alerting service."""

from functools import lru_cache
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AlertConfig(BaseSettings):
    """Configuration for rules and the alert log."""

    model_config = SettingsConfigDict(env_prefix="ALERTS_", env_file=".env", extra="ignore")

    capacity: int = Field(default=500, ge=1, description="Maximum alerts kept in the log")
    seed_default_rules: bool = Field(default=True, description="Seed the demo rule set at startup")


class FeedConfig(BaseSettings):
    """Configuration for the simulated telemetry feed."""

    model_config = SettingsConfigDict(env_prefix="FEED_", env_file=".env", extra="ignore")

    autostart: bool = Field(default=True, description="Start streaming when the app starts")
    min_interval: float = Field(default=1.0, gt=0, description="Shortest per-sensor emit interval (seconds)")
    max_interval: float = Field(default=2.0, gt=0, description="Longest per-sensor emit interval (seconds)")
    abnormal_probability: float = Field(
        default=0.2, ge=0.0, le=1.0, description="Chance a reading is drawn from the full range"
    )
    seed: Optional[int] = Field(default=None, description="Random seed for reproducible streams")

    @model_validator(mode="after")
    def check_interval_order(self) -> "FeedConfig":
        if self.max_interval < self.min_interval:
            raise ValueError("max_interval must be >= min_interval")
        return self


class LogConfig(BaseSettings):
    """Configuration for logging."""

    model_config = SettingsConfigDict(env_prefix="LOG_", env_file=".env", extra="ignore")

    level: str = Field(default="INFO", description="Minimum log level")
    file: Optional[str] = Field(default=None, description="Optional log file path (rotated)")


class AppConfig(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    alerts: AlertConfig = Field(default_factory=AlertConfig)
    feed: FeedConfig = Field(default_factory=FeedConfig)
    log: LogConfig = Field(default_factory=LogConfig)


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    return AppConfig()
