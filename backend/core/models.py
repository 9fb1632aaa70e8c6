"""
Domain Models
The SINGLE SOURCE OF TRUTH for telemetry formats.

After normalization, the alert pipeline only sees these types.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, Any
from datetime import datetime
from enum import Enum


# =============================================================================
# Sensor Type
# =============================================================================

class SensorType(str, Enum):
    """Kinds of sensors the monitor understands"""
    TEMPERATURE = "temperature"
    PRESSURE = "pressure"
    VIBRATION = "vibration"


def to_local_naive(ts: datetime) -> datetime:
    """Offset-aware datetimes become naive local time; naive ones pass through."""
    if ts.tzinfo is None:
        return ts
    return ts.astimezone().replace(tzinfo=None)


# =============================================================================
# SensorReading: The Core Data Contract
# =============================================================================

class SensorReading(BaseModel):
    """
    A single timestamped sensor measurement.

    This is THE internal representation of telemetry. The evaluator never
    sees JSON payloads or simulator state, only SensorReadings.
    Readings are frozen once produced.

    Fields:
        id: Reading identifier (producer assigned)
        sensor_type: Which kind of sensor produced it
        value: Measured value
        unit: Display unit (°C, PSI, Hz)
        timestamp: When the measurement was taken
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    sensor_type: SensorType
    value: float
    unit: str = ""
    timestamp: datetime = Field(default_factory=datetime.now)

    @field_validator('sensor_type', mode='before')
    @classmethod
    def lowercase_type(cls, v):
        """Accept TEMPERATURE as well as temperature"""
        return v.lower() if isinstance(v, str) else v

    @field_validator('timestamp', mode='before')
    @classmethod
    def parse_timestamp(cls, v):
        """Handle various timestamp formats; offsets are folded into naive local time"""
        if isinstance(v, datetime):
            return to_local_naive(v)
        if isinstance(v, str):
            return to_local_naive(datetime.fromisoformat(v.replace('Z', '+00:00')))
        if isinstance(v, (int, float)):
            # Unix timestamp (seconds or milliseconds)
            if v > 1e12:
                return datetime.fromtimestamp(v / 1000)
            return datetime.fromtimestamp(v)
        return v


# =============================================================================
# Sensor: Metadata
# =============================================================================

class NormalRange(BaseModel):
    min: float
    max: float


class Sensor(BaseModel):
    """Static description of a physical sensor."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    type: SensorType
    unit: str
    min_value: float
    max_value: float
    normal_range: NormalRange

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "unit": self.unit,
            "min_value": self.min_value,
            "max_value": self.max_value,
            "normal_range": {"min": self.normal_range.min, "max": self.normal_range.max},
        }


# =============================================================================
# Converters: External → Internal
# =============================================================================

def to_sensor_reading(data: dict, sensor: Optional[Sensor] = None) -> SensorReading:
    """
    Convert an external reading payload to SensorReading.

    This is the NORMALIZATION POINT for inbound telemetry.

    Handles:
    - type/sensor_type/sensorType field variants
    - timestamp/ts/time field variants
    - missing id/unit/type filled from the sensor metadata when given
    """
    sensor_type: Any = data.get('sensor_type') or data.get('sensorType') or data.get('type')
    ts = data.get('timestamp') or data.get('ts') or data.get('time') or datetime.now()
    unit = data.get('unit')

    if sensor is not None:
        sensor_type = sensor_type or sensor.type
        if unit is None:
            unit = sensor.unit

    reading_id = data.get('id')
    if not reading_id:
        prefix = sensor.id if sensor is not None else "reading"
        stamp = ts if isinstance(ts, datetime) else datetime.now()
        reading_id = f"{prefix}-{int(stamp.timestamp() * 1000)}"

    return SensorReading(
        id=str(reading_id),
        sensor_type=sensor_type,
        value=float(data['value']),
        unit=unit or "",
        timestamp=ts,
    )
