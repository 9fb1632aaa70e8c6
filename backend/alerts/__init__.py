"""
Alert System
Threshold rules evaluated against sensor readings, and the alert log.

Structure:
    alerts/
    ├── models.py      → Rule, Alert, AlertFilter, RuleCondition, AlertSeverity
    ├── rules.py       → RuleStore (rule set + change notification)
    ├── evaluator.py   → evaluate (reading + rules → alert or None)
    └── log.py         → AlertLog (bounded newest-first history)

Usage:
    from alerts import get_rule_store, get_alert_log, evaluate

    store = get_rule_store()
    store.add("Critical Temperature", "temperature", "gte", 120, "critical")

    alert = evaluate(reading, store.list())
    if alert:
        get_alert_log().insert(alert)

    get_alert_log().recent(20)
"""

from .models import (
    Rule,
    Alert,
    AlertFilter,
    RuleCondition,
    AlertSeverity,
    SEVERITY_RANK,
    CONDITION_SYMBOLS,
    EQ_TOLERANCE,
)

from .rules import RuleStore, default_rules, get_rule_store
from .evaluator import evaluate, check_condition, format_message
from .log import AlertLog, get_alert_log

__all__ = [
    # Models
    "Rule",
    "Alert",
    "AlertFilter",
    "RuleCondition",
    "AlertSeverity",
    "SEVERITY_RANK",
    "CONDITION_SYMBOLS",
    "EQ_TOLERANCE",
    # Rules
    "RuleStore",
    "default_rules",
    "get_rule_store",
    # Evaluation
    "evaluate",
    "check_condition",
    "format_message",
    # Log
    "AlertLog",
    "get_alert_log",
]
