"""Backorder schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel

from stockroom.models.backorder import BackorderStatus


class BackorderResponse(BaseModel):
    """Backorder response schema."""

    id: int
    customer_id: int
    order_id: int
    product_id: int
    quantity: int
    unit_price: Decimal
    unit: Optional[str] = None
    priority: str
    status: str
    expected_date: Optional[datetime] = None
    supplier_order_id: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BackorderStatusUpdate(BaseModel):
    """Backorder status change."""

    status: BackorderStatus
    expected_date: Optional[datetime] = None
    notes: Optional[str] = None


class CustomerBackorderSummary(BaseModel):
    """Pending backorders of a single customer."""

    customer_id: int
    customer_name: str
    item_count: int
    total_quantity: int
    total_value: Decimal
    items: List[BackorderResponse]
