"""
Sensor Monitor
Wires the sensor registry, telemetry feed, simulator and dispatcher.

Usage:
    monitor = get_monitor()
    await monitor.start()              # every active sensor streams + dispatches
    await monitor.toggle_sensor("vib-001")
    await monitor.stop()
"""

from datetime import datetime
from typing import Dict, Optional, Any

from loguru import logger

from alerts import get_alert_log, get_rule_store
from alerts.log import AlertLog
from alerts.rules import RuleStore
from core.config import FeedConfig
from core.models import SensorReading
from core.sensors import SensorRegistry
from .dispatcher import AlertDispatcher
from .simulator import SensorSimulator
from .telemetry_feed import TelemetryFeed


class SensorMonitor:
    def __init__(
        self,
        rules: RuleStore,
        alert_log: AlertLog,
        registry: Optional[SensorRegistry] = None,
        feed: Optional[TelemetryFeed] = None,
        config: Optional[FeedConfig] = None,
    ):
        self.registry = registry or SensorRegistry()
        self.feed = feed or TelemetryFeed()
        self.simulator = SensorSimulator(self.feed, self.registry, config)
        self.dispatcher = AlertDispatcher(self.feed, rules, alert_log)
        self._running = False
        self._started_at: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self, simulate: bool = True) -> Dict[str, Any]:
        if self._running:
            return {"status": "already_running", "sensors": self.dispatcher.running_sensors()}

        self._running = True
        self._started_at = datetime.now()
        for sensor_id in self.registry.active_ids():
            self._start_sensor(sensor_id, simulate)

        logger.info(f"Monitor started for {self.dispatcher.running_sensors()}")
        return {"status": "started", "sensors": self.dispatcher.running_sensors()}

    async def stop(self) -> Dict[str, Any]:
        if not self._running:
            return {"status": "not_running"}

        self._running = False
        await self.simulator.stop()
        await self.dispatcher.stop_all()
        logger.info("Monitor stopped")
        return {"status": "stopped", "readings_processed": self.dispatcher.stats.readings_processed}

    def _start_sensor(self, sensor_id: str, simulate: bool = True) -> None:
        # Dispatcher first so the first simulated reading is not missed
        self.dispatcher.start(sensor_id)
        if simulate:
            self.simulator.start_sensor(sensor_id)

    def _stop_sensor(self, sensor_id: str) -> None:
        self.simulator.stop_sensor(sensor_id)
        self.feed.end_stream(sensor_id)
        self.dispatcher.stop(sensor_id)

    async def toggle_sensor(self, sensor_id: str) -> Optional[bool]:
        """Flip a sensor on/off. Returns the new active state, None if unknown."""
        active = self.registry.toggle(sensor_id)
        if active is None or not self._running:
            return active

        if active:
            self._start_sensor(sensor_id)
        else:
            self._stop_sensor(sensor_id)
        return active

    def ingest(self, sensor_id: str, reading: SensorReading) -> int:
        """Push an externally produced reading into the feed."""
        return self.feed.publish(sensor_id, reading)

    def status(self) -> Dict[str, Any]:
        return {
            "status": "running" if self._running else "stopped",
            "started_at": self._started_at.isoformat() if self._started_at else None,
            "active_sensors": self.registry.active_ids(),
            "dispatching": self.dispatcher.running_sensors(),
            "simulator": self.simulator.stats(),
            "dispatch": self.dispatcher.stats.to_dict(),
            "feed": self.feed.stats.to_dict(),
        }


# Singleton
_monitor: Optional[SensorMonitor] = None


def get_monitor() -> SensorMonitor:
    """Get or create the sensor monitor singleton"""
    global _monitor
    if _monitor is None:
        from core.config import get_config

        _monitor = SensorMonitor(
            rules=get_rule_store(),
            alert_log=get_alert_log(),
            config=get_config().feed,
        )
    return _monitor
