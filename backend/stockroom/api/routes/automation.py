"""Automation rule routes."""

from fastapi import APIRouter, HTTPException, Request, status

from stockroom.core.rate_limit import limiter
from stockroom.db.session import DbSession
from stockroom.models.automation import AutomationRule
from stockroom.schemas.automation import (
    AutomationRuleCreate,
    AutomationRuleResponse,
    AutomationRuleUpdate,
    AutomationRunResult,
)
from stockroom.services.audit_service import log_action
from stockroom.services.automation_service import AutomationService

router = APIRouter()


@router.get("/rules", response_model=list[AutomationRuleResponse])
@limiter.limit("60/minute")
def list_rules(request: Request, db: DbSession):
    """List automation rules."""
    return db.query(AutomationRule).order_by(AutomationRule.id).all()


@router.post("/rules", response_model=AutomationRuleResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_rule(request: Request, db: DbSession, data: AutomationRuleCreate):
    """Create an automation rule."""
    rule = AutomationRule(
        name=data.name,
        type=data.type.value,
        is_active=data.is_active,
        conditions=data.conditions.model_dump(exclude_none=True),
        actions=data.actions.model_dump(),
        trigger_count=0,
    )
    db.add(rule)
    db.flush()
    log_action("create", "automation_rule", rule.id, details={"name": rule.name, "type": rule.type}, db=db)
    db.commit()
    db.refresh(rule)
    return rule


@router.put("/rules/{rule_id}", response_model=AutomationRuleResponse)
@limiter.limit("30/minute")
def update_rule(request: Request, rule_id: int, db: DbSession, data: AutomationRuleUpdate):
    """Update an automation rule."""
    rule = db.get(AutomationRule, rule_id)
    if not rule:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Automation rule not found")
    if data.name is not None:
        rule.name = data.name
    if data.is_active is not None:
        rule.is_active = data.is_active
    if data.conditions is not None:
        rule.conditions = data.conditions.model_dump(exclude_none=True)
    if data.actions is not None:
        rule.actions = data.actions.model_dump()
    log_action("update", "automation_rule", rule.id, details=data.model_dump(exclude_unset=True, mode="json"), db=db)
    db.commit()
    db.refresh(rule)
    return rule


@router.delete("/rules/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_rule(request: Request, rule_id: int, db: DbSession):
    """Delete an automation rule."""
    rule = db.get(AutomationRule, rule_id)
    if not rule:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Automation rule not found")
    db.delete(rule)
    log_action("delete", "automation_rule", rule_id, db=db)
    db.commit()


@router.post("/run", response_model=AutomationRunResult)
@limiter.limit("10/minute")
def run_rules(request: Request, db: DbSession):
    """Evaluate all active rules now."""
    return AutomationService(db).check_automation_rules()


@router.post("/defaults", response_model=list[AutomationRuleResponse], status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
def create_default_rules(request: Request, db: DbSession):
    """Create the default reorder, low stock and price monitor rules."""
    return AutomationService(db).create_default_rules()
