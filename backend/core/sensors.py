"""
Sensor Catalog
Known sensors and which of them are currently streaming.

Usage:
    registry = SensorRegistry()
    registry.toggle("temp-001")       # → False (now inactive)
    registry.is_active("temp-001")    # → False
"""

import threading
from typing import Dict, List, Optional, Iterable

from loguru import logger

from .models import Sensor, SensorType, NormalRange


DEFAULT_SENSORS: List[Sensor] = [
    Sensor(
        id="temp-001",
        name="Temperature Sensor 1",
        type=SensorType.TEMPERATURE,
        unit="°C",
        min_value=0,
        max_value=150,
        normal_range=NormalRange(min=20, max=80),
    ),
    Sensor(
        id="press-001",
        name="Pressure Sensor 1",
        type=SensorType.PRESSURE,
        unit="PSI",
        min_value=0,
        max_value=200,
        normal_range=NormalRange(min=30, max=120),
    ),
    Sensor(
        id="vib-001",
        name="Vibration Sensor 1",
        type=SensorType.VIBRATION,
        unit="Hz",
        min_value=0,
        max_value=100,
        normal_range=NormalRange(min=10, max=50),
    ),
]


class SensorRegistry:
    """
    Sensor metadata plus the active set.

    All sensors start active. Order follows the catalog.
    """

    def __init__(self, sensors: Optional[Iterable[Sensor]] = None):
        catalog = list(sensors) if sensors is not None else list(DEFAULT_SENSORS)
        self._sensors: Dict[str, Sensor] = {s.id: s for s in catalog}
        self._active: List[str] = [s.id for s in catalog]
        self._lock = threading.Lock()

    def get_sensors(self) -> List[Sensor]:
        return list(self._sensors.values())

    def get_sensor(self, sensor_id: str) -> Optional[Sensor]:
        return self._sensors.get(sensor_id)

    def get_sensors_by_type(self, sensor_type: SensorType) -> List[Sensor]:
        sensor_type = SensorType(sensor_type)
        return [s for s in self._sensors.values() if s.type == sensor_type]

    def is_active(self, sensor_id: str) -> bool:
        return sensor_id in self._active

    def active_ids(self) -> List[str]:
        with self._lock:
            return list(self._active)

    def toggle(self, sensor_id: str) -> Optional[bool]:
        """Flip a sensor's active flag. Returns the new state, None if unknown."""
        if sensor_id not in self._sensors:
            return None

        with self._lock:
            if sensor_id in self._active:
                self._active.remove(sensor_id)
                active = False
            else:
                self._active.append(sensor_id)
                active = True

        logger.info(f"Sensor {sensor_id} {'activated' if active else 'deactivated'}")
        return active
