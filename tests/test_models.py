"""
Tests for domain models and converters
"""
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from alerts import Alert, AlertFilter, AlertSeverity
from core.models import SensorReading, SensorType, to_sensor_reading
from core.sensors import DEFAULT_SENSORS


def test_reading_is_frozen(make_reading):
    reading = make_reading(10)

    with pytest.raises(ValidationError):
        reading.value = 20


def test_reading_accepts_uppercase_type():
    reading = SensorReading(id="r1", sensor_type="TEMPERATURE", value=1)

    assert reading.sensor_type is SensorType.TEMPERATURE


def test_reading_rejects_unknown_type():
    with pytest.raises(ValidationError):
        SensorReading(id="r1", sensor_type="humidity", value=1)


def test_reading_parses_epoch_milliseconds():
    reading = SensorReading(id="r1", sensor_type="pressure", value=1, timestamp=1_700_000_000_000)

    assert reading.timestamp == datetime.fromtimestamp(1_700_000_000)


@pytest.mark.parametrize("timestamp", [
    "2024-01-01T12:00:00Z",
    "2024-01-01T14:00:00+02:00",
    datetime(2024, 1, 1, 12, tzinfo=timezone.utc),
])
def test_reading_offsets_become_naive_local_time(timestamp):
    reading = SensorReading(id="r1", sensor_type="pressure", value=1, timestamp=timestamp)

    expected = datetime(2024, 1, 1, 12, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
    assert reading.timestamp.tzinfo is None
    assert reading.timestamp == expected


def test_alert_with_aware_timestamp_is_normalized(make_alert):
    alert = make_alert(timestamp=datetime(2024, 1, 1, 12, tzinfo=timezone.utc))

    assert alert.timestamp.tzinfo is None
    assert Alert.from_dict({**alert.to_dict(), "timestamp": "2024-01-01T12:00:00+00:00"}) == alert


def test_to_sensor_reading_field_variants():
    reading = to_sensor_reading({
        "id": "x",
        "sensorType": "vibration",
        "value": "42.5",
        "unit": "Hz",
        "ts": "2024-01-01T12:00:00",
    })

    assert reading.sensor_type is SensorType.VIBRATION
    assert reading.value == 42.5
    assert reading.timestamp == datetime(2024, 1, 1, 12, 0)


def test_to_sensor_reading_fills_from_sensor():
    sensor = DEFAULT_SENSORS[1]

    reading = to_sensor_reading({"value": 12}, sensor=sensor)

    assert reading.sensor_type is SensorType.PRESSURE
    assert reading.unit == "PSI"
    assert reading.id.startswith("press-001-")


def test_alert_dict_round_trip(make_alert):
    alert = make_alert(severity=AlertSeverity.CRITICAL, acknowledged=True)

    data = alert.to_dict()

    assert data["severity"] == "critical"
    assert data["sensor_type"] == "temperature"
    assert Alert.from_dict(data) == alert


def test_alert_filter_accepts_plain_strings(make_alert):
    alert = make_alert(severity=AlertSeverity.INFO)

    assert AlertFilter(severity="info", sensor_type="temperature").matches(alert)
    assert not AlertFilter(severity="critical").matches(alert)
