"""
Alert Dispatcher
One consumer task per sensor stream: reading → evaluate → alert log.

Readings of one sensor are processed strictly in arrival order (one task,
one queue). Different sensors run as independent tasks with no ordering
between them. A stream that ends stops its loop quietly.

Usage:
    dispatcher = AlertDispatcher(feed, get_rule_store(), get_alert_log())
    dispatcher.start("temp-001")
    dispatcher.stop("temp-001")      # idempotent
    await dispatcher.stop_all()
"""

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Any

from loguru import logger

from alerts.models import Alert, Rule
from alerts.evaluator import evaluate
from alerts.log import AlertLog
from alerts.rules import RuleStore
from core.models import SensorReading
from .telemetry_feed import TelemetryFeed, Subscription

Evaluator = Callable[[SensorReading, Iterable[Rule]], Optional[Alert]]


@dataclass
class DispatchStats:
    """Per-dispatcher counters"""
    readings_processed: int = 0
    alerts_raised: int = 0
    errors: int = 0
    per_sensor: Dict[str, Dict[str, int]] = field(default_factory=dict)

    def record(self, sensor_id: str, alert: Optional[Alert]) -> None:
        counters = self.per_sensor.setdefault(sensor_id, {"readings": 0, "alerts": 0})
        counters["readings"] += 1
        self.readings_processed += 1
        if alert is not None:
            counters["alerts"] += 1
            self.alerts_raised += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "readings_processed": self.readings_processed,
            "alerts_raised": self.alerts_raised,
            "errors": self.errors,
            "per_sensor": {k: dict(v) for k, v in self.per_sensor.items()},
        }


class AlertDispatcher:
    def __init__(
        self,
        feed: TelemetryFeed,
        rules: RuleStore,
        alert_log: AlertLog,
        evaluator: Evaluator = evaluate,
    ):
        self._feed = feed
        self._rules = rules
        self._log = alert_log
        self._evaluate = evaluator
        self._tasks: Dict[str, asyncio.Task] = {}
        self._subscriptions: Dict[str, Subscription] = {}
        self._stats = DispatchStats()

    @property
    def stats(self) -> DispatchStats:
        return self._stats

    def process(self, sensor_id: str, reading: SensorReading) -> Optional[Alert]:
        """Evaluate one reading against the current rule snapshot and log any alert."""
        alert = self._evaluate(reading, self._rules.list())
        if alert is not None:
            self._log.insert(alert)
        self._stats.record(sensor_id, alert)
        return alert

    def is_running(self, sensor_id: str) -> bool:
        task = self._tasks.get(sensor_id)
        return task is not None and not task.done()

    def running_sensors(self) -> List[str]:
        return [sensor_id for sensor_id in self._tasks if self.is_running(sensor_id)]

    def start(self, sensor_id: str) -> bool:
        """
        Start the dispatch loop for a sensor.

        Subscribes before the task is scheduled so no reading published after
        this call is lost. The feed's replayed reading is skipped, so a restarted
        loop never re-evaluates a stale reading. Returns False if a loop is
        already running.
        """
        if self.is_running(sensor_id):
            return False

        subscription = self._feed.subscribe(sensor_id, replay=False)
        self._subscriptions[sensor_id] = subscription
        self._tasks[sensor_id] = asyncio.get_running_loop().create_task(
            self._consume(sensor_id, subscription), name=f"dispatch:{sensor_id}"
        )
        logger.info(f"Dispatch loop started for {sensor_id}")
        return True

    def stop(self, sensor_id: str) -> bool:
        """Stop a sensor's loop. Safe to call repeatedly; returns False if nothing was running."""
        task = self._tasks.pop(sensor_id, None)
        subscription = self._subscriptions.pop(sensor_id, None)
        if subscription is not None:
            subscription.close()
        if task is None or task.done():
            return False
        task.cancel()
        logger.info(f"Dispatch loop stopped for {sensor_id}")
        return True

    async def stop_all(self) -> None:
        tasks = list(self._tasks.values())
        for sensor_id in list(self._tasks):
            self.stop(sensor_id)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _consume(self, sensor_id: str, subscription: Subscription) -> None:
        with logger.contextualize(sensor_id=sensor_id):
            async for reading in subscription:
                if subscription.closed:
                    break
                try:
                    self.process(sensor_id, reading)
                except Exception:
                    self._stats.errors += 1
                    logger.exception(f"Failed to process reading {reading.id}")

            logger.info(f"Stream for {sensor_id} ended")
            if self._tasks.get(sensor_id) is asyncio.current_task():
                del self._tasks[sensor_id]
                self._subscriptions.pop(sensor_id, None)
