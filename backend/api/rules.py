"""
Rules API
Endpoints for managing threshold rules.

Endpoints:
    POST   /api/rules               → Create rule
    GET    /api/rules               → List rules (optionally by sensor type)
    GET    /api/rules/{id}          → Get rule by ID
    PATCH  /api/rules/{id}          → Partial update
    DELETE /api/rules/{id}          → Delete rule
    POST   /api/rules/{id}/toggle   → Flip enabled
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from typing import Optional

from alerts import get_rule_store, RuleStore, RuleCondition, AlertSeverity
from core.models import SensorType

router = APIRouter(prefix="/rules", tags=["Rules"])


# =============================================================================
# Request Models
# =============================================================================

class CreateRuleRequest(BaseModel):
    """Request body for creating a rule"""
    name: str
    sensor_type: SensorType
    condition: RuleCondition
    threshold: float
    severity: AlertSeverity
    enabled: bool = True

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "name": "Critical Temperature",
            "sensor_type": "temperature",
            "condition": "gte",
            "threshold": 120,
            "severity": "critical",
            "enabled": True
        }
    })


class UpdateRuleRequest(BaseModel):
    """Partial update; omitted fields are left unchanged"""
    name: Optional[str] = None
    sensor_type: Optional[SensorType] = None
    condition: Optional[RuleCondition] = None
    threshold: Optional[float] = None
    severity: Optional[AlertSeverity] = None
    enabled: Optional[bool] = None


# =============================================================================
# Rule Management
# =============================================================================

@router.post("", status_code=201)
async def create_rule(request: CreateRuleRequest, store: RuleStore = Depends(get_rule_store)):
    """
    Create a new rule.

    Conditions: gt, lt, gte, lte, eq (within 0.01)
    Severities: info, warning, critical
    """
    rule = store.add(**request.model_dump())
    return {
        "message": "Rule created",
        "rule": rule.to_dict()
    }


@router.get("")
async def list_rules(
    sensor_type: Optional[SensorType] = None,
    store: RuleStore = Depends(get_rule_store),
):
    """Get all rules in insertion order"""
    rules = store.list_by_type(sensor_type) if sensor_type else store.list()
    return {
        "count": len(rules),
        "rules": [r.to_dict() for r in rules]
    }


@router.get("/stats")
async def rule_stats(store: RuleStore = Depends(get_rule_store)):
    return store.stats()


@router.get("/{rule_id}")
async def get_rule(rule_id: str, store: RuleStore = Depends(get_rule_store)):
    rule = store.get(rule_id)
    if not rule:
        raise HTTPException(404, f"Rule not found: {rule_id}")
    return {"rule": rule.to_dict()}


@router.patch("/{rule_id}")
async def update_rule(
    rule_id: str,
    request: UpdateRuleRequest,
    store: RuleStore = Depends(get_rule_store),
):
    changes = request.model_dump(exclude_unset=True, exclude_none=True)
    if not store.update(rule_id, **changes):
        raise HTTPException(404, f"Rule not found: {rule_id}")
    return {"message": f"Rule {rule_id} updated", "rule": store.get(rule_id).to_dict()}


@router.delete("/{rule_id}")
async def delete_rule(rule_id: str, store: RuleStore = Depends(get_rule_store)):
    if not store.delete(rule_id):
        raise HTTPException(404, f"Rule not found: {rule_id}")
    return {"message": f"Rule {rule_id} deleted"}


@router.post("/{rule_id}/toggle")
async def toggle_rule(rule_id: str, store: RuleStore = Depends(get_rule_store)):
    if not store.toggle(rule_id):
        raise HTTPException(404, f"Rule not found: {rule_id}")
    rule = store.get(rule_id)
    return {
        "message": f"Rule {rule_id} {'enabled' if rule.enabled else 'disabled'}",
        "rule": rule.to_dict()
    }
