"""
Services
Runtime plumbing around the alert pipeline.

Exports:
    TelemetryFeed, Subscription   → per-sensor fan-out channel
    SensorSimulator               → random reading producer
    AlertDispatcher               → per-sensor evaluate → log loop
    SensorMonitor, get_monitor    → wires it all together
"""

from .telemetry_feed import TelemetryFeed, Subscription, FeedStats
from .simulator import SensorSimulator, generate_reading
from .dispatcher import AlertDispatcher, DispatchStats
from .monitor import SensorMonitor, get_monitor

__all__ = [
    "TelemetryFeed",
    "Subscription",
    "FeedStats",
    "SensorSimulator",
    "generate_reading",
    "AlertDispatcher",
    "DispatchStats",
    "SensorMonitor",
    "get_monitor",
]
