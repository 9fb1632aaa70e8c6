"""
Alert Log
Bounded, newest-first store of raised alerts.

Purpose:
- Dashboards need the latest alerts and unacknowledged counts
- Operators acknowledge and clear alerts
- Memory stays bounded: the oldest alert is evicted once capacity is hit

This is READ-OPTIMIZED, NOT DURABLE.

Usage:
    log = AlertLog(capacity=500)
    log.insert(alert)
    log.acknowledge(alert.id)
    log.query(AlertFilter(severity=AlertSeverity.CRITICAL, acknowledged=False))
"""

import dataclasses
import threading
from collections import deque
from datetime import datetime
from typing import Callable, Deque, Dict, Optional, Tuple, Any

import pandas as pd
from loguru import logger

from .models import Alert, AlertFilter, AlertSeverity
from .subscribers import SubscriberList

AlertSnapshot = Tuple[Alert, ...]

DEFAULT_CAPACITY = 500


class AlertLog:
    """
    Alert history ordered newest first.

    - insert() always goes to the head; the tail is evicted past capacity
    - acknowledge() replaces a record in place, keeping its position
    - every mutation publishes the full collection under the lock
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._alerts: Deque[Alert] = deque(maxlen=capacity)
        self._lock = threading.RLock()
        self._subscribers: SubscriberList[AlertSnapshot] = SubscriberList("AlertLog")
        self._stats = {
            "inserted": 0,
            "evicted": 0,
            "acknowledged": 0,
            "start_time": datetime.now()
        }

    def _publish(self) -> None:
        self._subscribers.publish(tuple(self._alerts))

    def _index_of(self, alert_id: str) -> int:
        for index, alert in enumerate(self._alerts):
            if alert.id == alert_id:
                return index
        return -1

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def insert(self, alert: Alert) -> None:
        with self._lock:
            evicted = self._alerts[-1] if len(self._alerts) == self.capacity else None
            self._alerts.appendleft(alert)
            self._stats["inserted"] += 1

            if evicted is not None:
                self._stats["evicted"] += 1
                logger.debug(f"Alert log at capacity ({self.capacity}), evicted {evicted.id}")

            level = "WARNING" if alert.severity == AlertSeverity.CRITICAL else "INFO"
            logger.log(level, f"[{alert.severity.value}] {alert.rule_name}: {alert.message}")
            self._publish()

    def acknowledge(self, alert_id: str) -> bool:
        with self._lock:
            index = self._index_of(alert_id)
            if index == -1:
                logger.debug(f"Acknowledge skipped, alert not found: {alert_id}")
                return False

            alert = self._alerts[index]
            if not alert.acknowledged:
                self._alerts[index] = dataclasses.replace(alert, acknowledged=True)
                self._stats["acknowledged"] += 1
            self._publish()
        return True

    def acknowledge_all(self) -> int:
        """Acknowledge every alert. Returns how many were newly acknowledged."""
        with self._lock:
            changed = 0
            for index, alert in enumerate(self._alerts):
                if not alert.acknowledged:
                    self._alerts[index] = dataclasses.replace(alert, acknowledged=True)
                    changed += 1
            self._stats["acknowledged"] += changed
            logger.info(f"Acknowledged {changed} alerts")
            self._publish()
        return changed

    def clear(self) -> int:
        with self._lock:
            removed = len(self._alerts)
            self._alerts.clear()
            logger.info(f"Cleared {removed} alerts")
            self._publish()
        return removed

    def clear_acknowledged(self) -> int:
        with self._lock:
            survivors = [a for a in self._alerts if not a.acknowledged]
            removed = len(self._alerts) - len(survivors)
            self._alerts = deque(survivors, maxlen=self.capacity)
            logger.info(f"Cleared {removed} acknowledged alerts")
            self._publish()
        return removed

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def list(self) -> AlertSnapshot:
        with self._lock:
            return tuple(self._alerts)

    def get(self, alert_id: str) -> Optional[Alert]:
        with self._lock:
            index = self._index_of(alert_id)
            return self._alerts[index] if index != -1 else None

    def query(self, alert_filter: Optional[AlertFilter] = None) -> AlertSnapshot:
        alerts = self.list()
        if alert_filter is None:
            return alerts
        return tuple(a for a in alerts if alert_filter.matches(a))

    def count_by_severity(self) -> Dict[AlertSeverity, int]:
        counts = {severity: 0 for severity in AlertSeverity}
        for alert in self.list():
            if not alert.acknowledged:
                counts[alert.severity] += 1
        return counts

    def unacknowledged_count(self) -> int:
        return sum(1 for a in self.list() if not a.acknowledged)

    def recent(self, n: int) -> AlertSnapshot:
        if n <= 0:
            return ()
        return self.list()[:n]

    def subscribe(
        self,
        callback: Callable[[AlertSnapshot], None],
        alert_filter: Optional[AlertFilter] = None,
    ) -> Callable[[], None]:
        """
        Register a change callback.

        The callback gets the current alerts right away, then the full
        collection after each mutation. With ``alert_filter`` it only sees the
        matching subset. Returns an unsubscribe function.
        """
        if alert_filter is not None:
            target = callback

            def callback(alerts: AlertSnapshot) -> None:
                target(tuple(a for a in alerts if alert_filter.matches(a)))

        with self._lock:
            unsubscribe = self._subscribers.add(callback)
            self._subscribers.publish_one(callback, tuple(self._alerts))
        return unsubscribe

    def to_dataframe(self, alert_filter: Optional[AlertFilter] = None) -> pd.DataFrame:
        """Alerts as a DataFrame (newest first), for export."""
        alerts = self.query(alert_filter)
        if not alerts:
            return pd.DataFrame(columns=[f.name for f in dataclasses.fields(Alert)])
        return pd.DataFrame([a.to_dict() for a in alerts])

    def stats(self) -> Dict[str, Any]:
        uptime = (datetime.now() - self._stats["start_time"]).total_seconds()
        return {
            **self._stats,
            "uptime_seconds": round(uptime, 2),
            "size": len(self),
            "capacity": self.capacity,
            "unacknowledged": self.unacknowledged_count(),
            "subscribers": len(self._subscribers),
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._alerts)


_alert_log: Optional[AlertLog] = None


def get_alert_log() -> AlertLog:
    global _alert_log
    if _alert_log is None:
        from core.config import get_config

        _alert_log = AlertLog(capacity=get_config().alerts.capacity)
    return _alert_log
