"""
Alert Models
Data structures for threshold rules, alerts and alert filters.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Optional, Dict, Any
from enum import Enum

from core.models import SensorType, to_local_naive


class RuleCondition(str, Enum):
    """Threshold comparison operators"""
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"
    EQ = "eq"   # |value - threshold| < EQ_TOLERANCE


class AlertSeverity(str, Enum):
    """Alert severity levels"""
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


# Higher rank wins when several rules match one reading
SEVERITY_RANK: Dict[AlertSeverity, int] = {
    AlertSeverity.CRITICAL: 3,
    AlertSeverity.WARNING: 2,
    AlertSeverity.INFO: 1,
}

CONDITION_SYMBOLS: Dict[RuleCondition, str] = {
    RuleCondition.GT: ">",
    RuleCondition.LT: "<",
    RuleCondition.GTE: "≥",
    RuleCondition.LTE: "≤",
    RuleCondition.EQ: "=",
}

EQ_TOLERANCE = 0.01


@dataclass(frozen=True)
class Rule:
    """
    Threshold rule bound to a sensor type.

    Example:
        "Critical when temperature >= 120"

    Rules are immutable snapshots; the RuleStore swaps in a new instance on
    every update.
    """
    id: str
    name: str
    sensor_type: SensorType
    condition: RuleCondition
    threshold: float
    severity: AlertSeverity
    enabled: bool = True
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def symbol(self) -> str:
        return CONDITION_SYMBOLS[self.condition]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "sensor_type": self.sensor_type.value,
            "condition": self.condition.value,
            "threshold": self.threshold,
            "severity": self.severity.value,
            "enabled": self.enabled,
            "created_at": self.created_at.isoformat()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rule":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            sensor_type=SensorType(data["sensor_type"]),
            condition=RuleCondition(data["condition"]),
            threshold=float(data["threshold"]),
            severity=AlertSeverity(data["severity"]),
            enabled=data.get("enabled", True),
            created_at=datetime.fromisoformat(data["created_at"]) if "created_at" in data else datetime.now()
        )


RULE_FIELDS = frozenset(f.name for f in fields(Rule))


@dataclass(frozen=True)
class Alert:
    """
    A materialized rule breach.

    Created once by the evaluator; only ``acknowledged`` ever changes, and
    the AlertLog does that by replacing the record.
    """
    id: str
    rule_id: str
    rule_name: str
    sensor_type: SensorType
    severity: AlertSeverity
    message: str
    value: float
    threshold: float
    timestamp: datetime
    acknowledged: bool = False

    def __post_init__(self):
        object.__setattr__(self, "timestamp", to_local_naive(self.timestamp))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "sensor_type": self.sensor_type.value,
            "severity": self.severity.value,
            "message": self.message,
            "value": self.value,
            "threshold": self.threshold,
            "timestamp": self.timestamp.isoformat(),
            "acknowledged": self.acknowledged
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Alert":
        return cls(
            id=data["id"],
            rule_id=data["rule_id"],
            rule_name=data.get("rule_name", ""),
            sensor_type=SensorType(data["sensor_type"]),
            severity=AlertSeverity(data["severity"]),
            message=data.get("message", ""),
            value=float(data["value"]),
            threshold=float(data["threshold"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            acknowledged=data.get("acknowledged", False)
        )


@dataclass(frozen=True)
class AlertFilter:
    """
    Query criteria for the alert log.

    Unset fields impose no constraint; set fields are AND-ed. Date bounds
    are inclusive.
    """
    severity: Optional[AlertSeverity] = None
    sensor_type: Optional[SensorType] = None
    acknowledged: Optional[bool] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    def __post_init__(self):
        # Alert timestamps are naive local time, so bounds must be too
        for name in ("start_date", "end_date"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, to_local_naive(value))

    def matches(self, alert: Alert) -> bool:
        if self.severity is not None and alert.severity != self.severity:
            return False
        if self.sensor_type is not None and alert.sensor_type != self.sensor_type:
            return False
        if self.acknowledged is not None and alert.acknowledged != self.acknowledged:
            return False
        if self.start_date is not None and alert.timestamp < self.start_date:
            return False
        if self.end_date is not None and alert.timestamp > self.end_date:
            return False
        return True
