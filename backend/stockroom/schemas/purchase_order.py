"""Purchase order schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel


class PurchaseOrderItemResponse(BaseModel):
    """Purchase order line response schema."""

    id: int
    product_id: int
    quantity: int
    unit_price: Decimal
    total: Decimal
    received: int

    model_config = {"from_attributes": True}


class PurchaseOrderResponse(BaseModel):
    """Purchase order response schema."""

    id: int
    po_number: str
    supplier_id: int
    status: str
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total: Decimal
    order_date: Optional[datetime] = None
    expected_delivery: Optional[datetime] = None
    notes: Optional[str] = None
    created_by: str
    auto_generated: bool
    trigger_reason: Optional[str] = None
    created_at: datetime
    items: List[PurchaseOrderItemResponse] = []

    model_config = {"from_attributes": True}
