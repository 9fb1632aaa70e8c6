"""
Core Module
Telemetry domain and service plumbing.

Exports:
    Models: SensorType, SensorReading, Sensor, NormalRange
    Catalog: SensorRegistry, DEFAULT_SENSORS
    Converters: to_sensor_reading
    Config: AppConfig, get_config
    Logging: configure_logging
"""

from .models import (
    SensorType,
    SensorReading,
    Sensor,
    NormalRange,
    to_sensor_reading,
)

from .sensors import SensorRegistry, DEFAULT_SENSORS
from .config import AppConfig, AlertConfig, FeedConfig, LogConfig, get_config
from .logging import configure_logging

__all__ = [
    # Models
    "SensorType",
    "SensorReading",
    "Sensor",
    "NormalRange",
    "to_sensor_reading",
    # Catalog
    "SensorRegistry",
    "DEFAULT_SENSORS",
    # Config
    "AppConfig",
    "AlertConfig",
    "FeedConfig",
    "LogConfig",
    "get_config",
    # Logging
    "configure_logging",
]
