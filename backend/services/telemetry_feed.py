"""
Telemetry Feed
Per-sensor fan-out channel between reading producers and consumers.

Each subscriber gets its own queue, so a slow dashboard never holds back
the dispatch loop. The latest reading per sensor is replayed to new
subscribers. Ending a stream wakes every subscriber with end-of-stream.

Usage:
    feed = TelemetryFeed()
    subscription = feed.subscribe("temp-001")
    feed.publish("temp-001", reading)
    async for reading in subscription:
        ...
    feed.end_stream("temp-001")   # subscription loop exits normally

Runs on a single asyncio event loop; publish() must be called from it.
"""

import asyncio
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Any

from loguru import logger

from core.models import SensorReading

_END_OF_STREAM = object()


@dataclass
class FeedStats:
    """Telemetry feed statistics"""
    readings_published: int = 0
    streams_ended: int = 0
    per_sensor: Dict[str, int] = field(default_factory=dict)
    last_reading_time: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "readings_published": self.readings_published,
            "streams_ended": self.streams_ended,
            "per_sensor": dict(self.per_sensor),
            "last_reading_time": self.last_reading_time.isoformat() if self.last_reading_time else None,
        }


class Subscription:
    """Async iterator over one sensor's readings."""

    def __init__(self, feed: "TelemetryFeed", sensor_id: str):
        self.sensor_id = sensor_id
        self._feed = feed
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    def _offer(self, item: Any) -> None:
        if not self._closed:
            self._queue.put_nowait(item)

    @property
    def closed(self) -> bool:
        return self._closed

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._feed._unsubscribe(self)
        # Wake a consumer blocked in __anext__
        self._queue.put_nowait(_END_OF_STREAM)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> SensorReading:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END_OF_STREAM:
            self.close()
            raise StopAsyncIteration
        return item


class TelemetryFeed:
    """Fan-out hub keyed by sensor id."""

    def __init__(self):
        self._subscribers: Dict[str, List[Subscription]] = defaultdict(list)
        self._latest: Dict[str, SensorReading] = {}
        self._stats = FeedStats()

    @property
    def stats(self) -> FeedStats:
        return self._stats

    def subscribe(self, sensor_id: str, replay: bool = True) -> Subscription:
        """
        Subscribe to a sensor's stream.

        The subscription is registered immediately, so nothing published after
        this call is missed. With ``replay`` the latest reading is queued first.
        """
        subscription = Subscription(self, sensor_id)
        self._subscribers[sensor_id].append(subscription)

        if replay and sensor_id in self._latest:
            subscription._offer(self._latest[sensor_id])

        logger.debug(f"New subscriber for {sensor_id} ({len(self._subscribers[sensor_id])} total)")
        return subscription

    def publish(self, sensor_id: str, reading: SensorReading) -> int:
        """Deliver a reading to every subscriber of the sensor. Returns the fan-out count."""
        self._latest[sensor_id] = reading
        self._stats.readings_published += 1
        self._stats.per_sensor[sensor_id] = self._stats.per_sensor.get(sensor_id, 0) + 1
        self._stats.last_reading_time = reading.timestamp

        subscribers = list(self._subscribers.get(sensor_id, ()))
        for subscription in subscribers:
            subscription._offer(reading)
        return len(subscribers)

    def end_stream(self, sensor_id: str) -> int:
        """Signal end-of-stream to current subscribers. Returns how many were ended."""
        subscribers = self._subscribers.pop(sensor_id, [])
        for subscription in subscribers:
            subscription._offer(_END_OF_STREAM)
        if subscribers:
            self._stats.streams_ended += 1
            logger.info(f"Ended stream {sensor_id} for {len(subscribers)} subscribers")
        return len(subscribers)

    def latest(self, sensor_id: str) -> Optional[SensorReading]:
        return self._latest.get(sensor_id)

    def subscriber_count(self, sensor_id: str) -> int:
        return len(self._subscribers.get(sensor_id, ()))

    def _unsubscribe(self, subscription: Subscription) -> None:
        subscribers = self._subscribers.get(subscription.sensor_id)
        if subscribers and subscription in subscribers:
            subscribers.remove(subscription)
