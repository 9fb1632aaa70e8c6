"""
Pytest configuration and shared fixtures
"""
import itertools
from datetime import datetime, timedelta

import pytest

from alerts import AlertLog, RuleStore, Alert, AlertSeverity
from core.models import SensorReading, SensorType

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)

_counter = itertools.count()


@pytest.fixture
def rule_store():
    """Empty rule store (no demo rules)"""
    return RuleStore()


@pytest.fixture
def alert_log():
    return AlertLog(capacity=500)


@pytest.fixture
def make_reading():
    """Factory for readings; defaults to a temperature reading"""
    def _make(value, sensor_type=SensorType.TEMPERATURE, unit="°C", timestamp=None):
        return SensorReading(
            id=f"reading-{next(_counter)}",
            sensor_type=sensor_type,
            value=value,
            unit=unit,
            timestamp=timestamp or BASE_TIME,
        )
    return _make


@pytest.fixture
def make_alert():
    """Factory for alerts with distinct ids and increasing timestamps"""
    def _make(
        alert_id=None,
        severity=AlertSeverity.WARNING,
        sensor_type=SensorType.TEMPERATURE,
        acknowledged=False,
        timestamp=None,
    ):
        n = next(_counter)
        return Alert(
            id=alert_id or f"evt_{n}",
            rule_id="rule_test",
            rule_name="Test Rule",
            sensor_type=sensor_type,
            severity=severity,
            message="TEMPERATURE: 101°C > 100°C",
            value=101.0,
            threshold=100.0,
            timestamp=timestamp or BASE_TIME + timedelta(seconds=n),
            acknowledged=acknowledged,
        )
    return _make
