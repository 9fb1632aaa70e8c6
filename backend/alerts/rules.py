"""
Rule Store
Owns the mutable rule set and publishes it on every change.

Usage:
    store = RuleStore()
    rule = store.add("Overheat", "temperature", "gt", 100, "warning")
    store.update(rule.id, threshold=105)
    store.toggle(rule.id)
    unsubscribe = store.subscribe(lambda rules: print(len(rules)))
"""

import dataclasses
import threading
import uuid
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple, Any, Iterable

from loguru import logger

from core.models import SensorType
from .models import Rule, RuleCondition, AlertSeverity, RULE_FIELDS
from .subscribers import SubscriberList

RuleSnapshot = Tuple[Rule, ...]

# Fields that identify a rule and never change after creation
IMMUTABLE_FIELDS = frozenset({"id", "created_at"})

_TRUE_STRINGS = frozenset({"true", "1", "yes", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "off"})


def _to_bool(value: Any) -> bool:
    """bool as-is, or an explicit true/false string; anything else is rejected"""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise TypeError(f"enabled must be a boolean, got {value!r}")


_COERCERS: Dict[str, Callable[[Any], Any]] = {
    "sensor_type": SensorType,
    "condition": RuleCondition,
    "severity": AlertSeverity,
    "threshold": float,
    "enabled": _to_bool,
    "name": str,
}


def default_rules() -> List[Dict[str, Any]]:
    """Demo rule set seeded into a fresh store."""
    return [
        {
            "name": "High Temperature Warning",
            "sensor_type": SensorType.TEMPERATURE,
            "condition": RuleCondition.GT,
            "threshold": 100,
            "severity": AlertSeverity.WARNING,
        },
        {
            "name": "Critical Temperature",
            "sensor_type": SensorType.TEMPERATURE,
            "condition": RuleCondition.GTE,
            "threshold": 120,
            "severity": AlertSeverity.CRITICAL,
        },
        {
            "name": "High Pressure Warning",
            "sensor_type": SensorType.PRESSURE,
            "condition": RuleCondition.GT,
            "threshold": 150,
            "severity": AlertSeverity.WARNING,
        },
        {
            "name": "Low Pressure Alert",
            "sensor_type": SensorType.PRESSURE,
            "condition": RuleCondition.LT,
            "threshold": 20,
            "severity": AlertSeverity.INFO,
        },
        {
            "name": "High Vibration Critical",
            "sensor_type": SensorType.VIBRATION,
            "condition": RuleCondition.GTE,
            "threshold": 70,
            "severity": AlertSeverity.CRITICAL,
        },
    ]


def _coerce(changes: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(changes) - RULE_FIELDS
    if unknown:
        raise TypeError(f"Unknown rule field(s): {', '.join(sorted(unknown))}")
    return {
        key: _COERCERS[key](value) if key in _COERCERS else value
        for key, value in changes.items()
    }


class RuleStore:
    """
    Ordered rule collection (insertion order) with change notification.

    Every mutation runs read-modify-publish under one lock, so subscribers
    never see a half-applied change and notifications arrive in commit order.
    """

    def __init__(self, seed: Optional[Iterable[Dict[str, Any]]] = None):
        self._rules: List[Rule] = []
        self._lock = threading.RLock()
        self._subscribers: SubscriberList[RuleSnapshot] = SubscriberList("RuleStore")

        if seed is not None:
            self._seed(seed)

    def _seed(self, seed: Iterable[Dict[str, Any]]) -> None:
        with self._lock:
            for fields in seed:
                self._rules.append(self._build(**fields))
        logger.info(f"Seeded rule store with {len(self._rules)} rules")

    def _generate_id(self) -> str:
        existing = {r.id for r in self._rules}
        while True:
            rule_id = f"rule_{uuid.uuid4().hex[:12]}"
            if rule_id not in existing:
                return rule_id

    def _build(
        self,
        name: str,
        sensor_type: SensorType,
        condition: RuleCondition,
        threshold: float,
        severity: AlertSeverity,
        enabled: bool = True,
    ) -> Rule:
        fields = _coerce({
            "name": name,
            "sensor_type": sensor_type,
            "condition": condition,
            "threshold": threshold,
            "severity": severity,
            "enabled": enabled,
        })
        return Rule(id=self._generate_id(), created_at=datetime.now(), **fields)

    def _index_of(self, rule_id: str) -> int:
        for index, rule in enumerate(self._rules):
            if rule.id == rule_id:
                return index
        return -1

    def _publish(self) -> None:
        self._subscribers.publish(tuple(self._rules))

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def add(
        self,
        name: str,
        sensor_type: SensorType,
        condition: RuleCondition,
        threshold: float,
        severity: AlertSeverity,
        enabled: bool = True,
    ) -> Rule:
        with self._lock:
            rule = self._build(name, sensor_type, condition, threshold, severity, enabled)
            self._rules.append(rule)
            logger.info(
                f"Added rule {rule.id} '{rule.name}': {rule.sensor_type.value} "
                f"{rule.symbol} {rule.threshold} ({rule.severity.value})"
            )
            self._publish()
        return rule

    def update(self, rule_id: str, **changes: Any) -> bool:
        """Shallow-merge ``changes`` into a rule. ``id``/``created_at`` are ignored."""
        changes = {k: v for k, v in changes.items() if k not in IMMUTABLE_FIELDS}
        changes = _coerce(changes)

        with self._lock:
            index = self._index_of(rule_id)
            if index == -1:
                logger.debug(f"Update skipped, rule not found: {rule_id}")
                return False

            self._rules[index] = dataclasses.replace(self._rules[index], **changes)
            logger.info(f"Updated rule {rule_id}: {sorted(changes)}")
            self._publish()
        return True

    def delete(self, rule_id: str) -> bool:
        with self._lock:
            index = self._index_of(rule_id)
            if index == -1:
                logger.debug(f"Delete skipped, rule not found: {rule_id}")
                return False

            del self._rules[index]
            logger.info(f"Deleted rule {rule_id}")
            self._publish()
        return True

    def toggle(self, rule_id: str) -> bool:
        with self._lock:
            rule = self.get(rule_id)
            if rule is None:
                logger.debug(f"Toggle skipped, rule not found: {rule_id}")
                return False
            return self.update(rule_id, enabled=not rule.enabled)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get(self, rule_id: str) -> Optional[Rule]:
        with self._lock:
            index = self._index_of(rule_id)
            return self._rules[index] if index != -1 else None

    def list(self) -> RuleSnapshot:
        with self._lock:
            return tuple(self._rules)

    def list_by_type(self, sensor_type: SensorType) -> RuleSnapshot:
        sensor_type = SensorType(sensor_type)
        return tuple(r for r in self.list() if r.sensor_type == sensor_type)

    def subscribe(self, callback: Callable[[RuleSnapshot], None]) -> Callable[[], None]:
        """
        Register a change callback.

        The callback gets the current rules right away, then the full updated
        collection after each mutation. Returns an unsubscribe function.
        """
        with self._lock:
            unsubscribe = self._subscribers.add(callback)
            self._subscribers.publish_one(callback, tuple(self._rules))
        return unsubscribe

    def stats(self) -> Dict[str, Any]:
        rules = self.list()
        per_type: Dict[str, int] = {t.value: 0 for t in SensorType}
        for rule in rules:
            per_type[rule.sensor_type.value] += 1
        return {
            "total": len(rules),
            "enabled": sum(1 for r in rules if r.enabled),
            "by_sensor_type": per_type,
            "subscribers": len(self._subscribers),
        }

    def __len__(self) -> int:
        return len(self.list())


_rule_store: Optional[RuleStore] = None


def get_rule_store() -> RuleStore:
    global _rule_store
    if _rule_store is None:
        from core.config import get_config

        seed = default_rules() if get_config().alerts.seed_default_rules else None
        _rule_store = RuleStore(seed=seed)
    return _rule_store
