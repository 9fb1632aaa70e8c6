"""
Sensor Simulator
Random telemetry producer feeding the TelemetryFeed.

Each active sensor gets its own asyncio task emitting at a fixed interval
drawn once from [min_interval, max_interval]. Most readings sit around
the sensor's normal band; some are drawn from the whole range.

Usage:
    simulator = SensorSimulator(feed, registry, config.feed)
    simulator.start_sensor("temp-001")
    await simulator.stop()
"""

import asyncio
import random
from datetime import datetime
from typing import Dict, List, Optional, Any

from loguru import logger

from core.config import FeedConfig
from core.models import Sensor, SensorReading
from core.sensors import SensorRegistry
from .telemetry_feed import TelemetryFeed


def generate_reading(
    sensor: Sensor,
    rng: random.Random,
    abnormal_probability: float = 0.2,
    timestamp: Optional[datetime] = None,
) -> SensorReading:
    """Draw one reading for a sensor, clamped to its range and rounded to 2 decimals."""
    normal = sensor.normal_range
    normal_mid = (normal.min + normal.max) / 2
    normal_spread = normal.max - normal.min

    if rng.random() >= abnormal_probability:
        value = normal_mid + (rng.random() - 0.5) * normal_spread * 1.2
    else:
        value = sensor.min_value + rng.random() * (sensor.max_value - sensor.min_value)

    value = max(sensor.min_value, min(sensor.max_value, value))
    ts = timestamp or datetime.now()

    return SensorReading(
        id=f"{sensor.id}-{int(ts.timestamp() * 1000)}",
        sensor_type=sensor.type,
        value=round(value, 2),
        unit=sensor.unit,
        timestamp=ts,
    )


class SensorSimulator:
    """Per-sensor reading generators publishing into the feed."""

    def __init__(
        self,
        feed: TelemetryFeed,
        registry: SensorRegistry,
        config: Optional[FeedConfig] = None,
    ):
        self._feed = feed
        self._registry = registry
        self._config = config or FeedConfig()
        self._rng = random.Random(self._config.seed)
        self._tasks: Dict[str, asyncio.Task] = {}
        self._intervals: Dict[str, float] = {}

    def is_running(self, sensor_id: str) -> bool:
        task = self._tasks.get(sensor_id)
        return task is not None and not task.done()

    def running_sensors(self) -> List[str]:
        return [sensor_id for sensor_id in self._tasks if self.is_running(sensor_id)]

    def start_sensor(self, sensor_id: str) -> bool:
        """Start emitting for a sensor. Requires a running event loop."""
        sensor = self._registry.get_sensor(sensor_id)
        if sensor is None:
            logger.warning(f"Cannot simulate unknown sensor: {sensor_id}")
            return False
        if self.is_running(sensor_id):
            return False

        interval = self._rng.uniform(self._config.min_interval, self._config.max_interval)
        self._intervals[sensor_id] = interval
        self._tasks[sensor_id] = asyncio.get_running_loop().create_task(
            self._emit(sensor, interval), name=f"simulator:{sensor_id}"
        )
        logger.info(f"Simulating {sensor_id} every {interval:.2f}s")
        return True

    def stop_sensor(self, sensor_id: str) -> bool:
        task = self._tasks.pop(sensor_id, None)
        if task is None or task.done():
            return False
        task.cancel()
        logger.info(f"Stopped simulating {sensor_id}")
        return True

    async def stop(self) -> None:
        tasks = list(self._tasks.values())
        for sensor_id in list(self._tasks):
            self.stop_sensor(sensor_id)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _emit(self, sensor: Sensor, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            reading = generate_reading(sensor, self._rng, self._config.abnormal_probability)
            self._feed.publish(sensor.id, reading)

    def stats(self) -> Dict[str, Any]:
        return {
            "running": self.running_sensors(),
            "intervals": {k: round(v, 3) for k, v in self._intervals.items()},
        }
