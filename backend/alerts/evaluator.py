"""
Rule Evaluator
Turns one reading plus the current rules into at most one alert.

Policy: first match wins, walking matching rules from the most severe down.
Equal severities keep rule insertion order. Pure: nothing is mutated and
nothing is stored here; the dispatcher decides what to do with the result.
"""

import uuid
from typing import Iterable, Optional

from core.models import SensorReading
from .models import (
    Rule,
    Alert,
    RuleCondition,
    SEVERITY_RANK,
    CONDITION_SYMBOLS,
    EQ_TOLERANCE,
)


def check_condition(value: float, condition: RuleCondition, threshold: float) -> bool:
    if condition == RuleCondition.GT:
        return value > threshold
    elif condition == RuleCondition.LT:
        return value < threshold
    elif condition == RuleCondition.GTE:
        return value >= threshold
    elif condition == RuleCondition.LTE:
        return value <= threshold
    elif condition == RuleCondition.EQ:
        return abs(value - threshold) < EQ_TOLERANCE
    return False


def format_number(value: float) -> str:
    """125.0 → '125', 50.02 → '50.02'"""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def format_message(reading: SensorReading, rule: Rule) -> str:
    unit = reading.unit
    return (
        f"{reading.sensor_type.value.upper()}: "
        f"{format_number(reading.value)}{unit} "
        f"{CONDITION_SYMBOLS[rule.condition]} "
        f"{format_number(rule.threshold)}{unit}"
    )


def candidate_rules(reading: SensorReading, rules: Iterable[Rule]) -> list:
    """Enabled rules for the reading's sensor type, most severe first."""
    matching = [r for r in rules if r.enabled and r.sensor_type == reading.sensor_type]
    # sorted() is stable, so equal severities keep insertion order
    return sorted(matching, key=lambda r: SEVERITY_RANK[r.severity], reverse=True)


def create_alert(reading: SensorReading, rule: Rule) -> Alert:
    return Alert(
        id=f"evt_{uuid.uuid4().hex[:12]}",
        rule_id=rule.id,
        rule_name=rule.name,
        sensor_type=reading.sensor_type,
        severity=rule.severity,
        message=format_message(reading, rule),
        value=reading.value,
        threshold=rule.threshold,
        timestamp=reading.timestamp,
        acknowledged=False,
    )


def evaluate(reading: SensorReading, rules: Iterable[Rule]) -> Optional[Alert]:
    """
    Evaluate a reading against a rule set.

    Args:
        reading: The measurement to check
        rules: Rule snapshot (disabled and other-sensor rules are skipped)

    Returns:
        The alert for the winning rule, or None if nothing fires
    """
    for rule in candidate_rules(reading, rules):
        if check_condition(reading.value, rule.condition, rule.threshold):
            return create_alert(reading, rule)
    return None
