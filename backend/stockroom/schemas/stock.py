"""Stock movement and alert schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class StockMovementCreate(BaseModel):
    """Manual stock movement request.

    ``quantity`` is positive for in/out; for an adjustment it is the signed delta.
    """

    product_id: int
    type: Literal["in", "out", "adjustment"]
    quantity: int
    reason: str = Field(min_length=1, max_length=255)
    reference: Optional[str] = None
    location: Optional[str] = None
    batch_number: Optional[str] = None
    created_by: Optional[str] = None
    version: Optional[int] = None


class StockMovementResponse(BaseModel):
    """Stock movement response schema."""

    id: int
    product_id: int
    type: str
    quantity: int
    reason: str
    reference: Optional[str] = None
    order_id: Optional[int] = None
    customer_id: Optional[int] = None
    location: Optional[str] = None
    batch_number: Optional[str] = None
    created_at: datetime
    created_by: str

    model_config = {"from_attributes": True}


class InventoryAlert(BaseModel):
    """A stock-level alert for one product."""

    type: Literal["low_stock", "out_of_stock", "overstock"]
    severity: Literal["low", "medium", "high", "critical"]
    product_id: int
    product_name: str
    current_stock: int
    threshold: int
    message: str
