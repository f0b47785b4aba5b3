"""Automation rule schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from stockroom.models.automation import AutomationRuleType


class RuleConditions(BaseModel):
    """Conditions an automation rule is evaluated against."""

    product_ids: Optional[List[int]] = None
    stock_level: Optional[int] = Field(default=None, ge=0)
    price_threshold: Optional[Decimal] = None
    timeframe: Optional[int] = Field(default=None, ge=1)  # days


class RuleActions(BaseModel):
    """Actions taken when a rule triggers."""

    create_po: bool = False
    send_alert: bool = False
    update_pricing: bool = False


class AutomationRuleCreate(BaseModel):
    """Automation rule creation schema."""

    name: str = Field(min_length=1, max_length=255)
    type: AutomationRuleType
    is_active: bool = True
    conditions: RuleConditions = RuleConditions()
    actions: RuleActions = RuleActions()


class AutomationRuleUpdate(BaseModel):
    """Automation rule update schema."""

    name: Optional[str] = None
    is_active: Optional[bool] = None
    conditions: Optional[RuleConditions] = None
    actions: Optional[RuleActions] = None


class AutomationRuleResponse(BaseModel):
    """Automation rule response schema."""

    id: int
    name: str
    type: str
    is_active: bool
    conditions: dict
    actions: dict
    last_triggered: Optional[datetime] = None
    trigger_count: int
    created_at: datetime

    model_config = {"from_attributes": True}


class AutomationRunResult(BaseModel):
    """Outcome of one pass over the active rules."""

    rules_checked: int
    rules_triggered: int
    purchase_orders_created: int
    notifications_created: int
