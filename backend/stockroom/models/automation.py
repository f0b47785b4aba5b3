"""Automation rule model."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, validates

from stockroom.db.base import Base, TimestampMixin
from stockroom.models.validators import validate_dict


class AutomationRuleType(str, Enum):
    """Kinds of automation rule."""

    REORDER_POINT = "reorder_point"
    LOW_STOCK = "low_stock"
    SUPPLIER_PRICE = "supplier_price"
    DEMAND_FORECAST = "demand_forecast"


class AutomationRule(Base, TimestampMixin):
    """A rule evaluated by the automation engine.

    ``conditions`` may hold ``product_ids``, ``stock_level``,
    ``price_threshold`` and ``timeframe`` (days); ``actions`` may hold the
    ``create_po``, ``send_alert`` and ``update_pricing`` flags.
    """

    __tablename__ = "automation_rules"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    conditions: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    actions: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    last_triggered: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    trigger_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    @validates("conditions", "actions")
    def _validate_json(self, key, value):
        return validate_dict(key, value)
