"""Customer order and preparation schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from stockroom.models.order import OrderStatus, Priority


class OrderItemCreate(BaseModel):
    """Order line creation schema. ``unit_price`` defaults to the product's selling price."""

    product_id: int
    quantity: int = Field(gt=0)
    unit_price: Optional[Decimal] = Field(default=None, ge=0)
    unit: Optional[str] = None
    discount: Decimal = Field(default=Decimal("0"), ge=0, le=100)


class OrderItemResponse(BaseModel):
    """Order line with its preparation ledger."""

    id: int
    position: int
    product_id: int
    quantity: int
    unit_price: Decimal
    unit: Optional[str] = None
    discount: Decimal
    total: Decimal
    prepared_quantity: int
    backorder_quantity: int
    available_stock: Optional[int] = None
    preparation_status: str
    prepared_by: Optional[str] = None
    prepared_at: Optional[datetime] = None
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class OrderCreate(BaseModel):
    """Order creation schema."""

    customer_id: int
    quotation_number: Optional[str] = None
    items: List[OrderItemCreate] = Field(min_length=1)
    tax_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    priority: Priority = Priority.MEDIUM
    expected_delivery: Optional[datetime] = None
    notes: Optional[str] = None
    warehouse_notes: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    """Explicit status change request."""

    status: OrderStatus
    tracking_number: Optional[str] = None
    version: Optional[int] = None


class OrderResponse(BaseModel):
    """Order response schema."""

    id: int
    order_number: str
    quotation_number: Optional[str] = None
    customer_id: int
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total: Decimal
    status: str
    priority: str
    expected_delivery: Optional[datetime] = None
    actual_delivery: Optional[datetime] = None
    tracking_number: Optional[str] = None
    notes: Optional[str] = None
    warehouse_notes: Optional[str] = None
    has_backorders: bool
    preparation_progress: int
    fulfilled_at: Optional[datetime] = None
    version: int
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemResponse] = []

    model_config = {"from_attributes": True}


class PrepareItemRequest(BaseModel):
    """Request to pick and reserve stock for one order line."""

    quantity: int = Field(ge=0)
    prepared_by: Optional[str] = None
    notes: Optional[str] = None
    version: Optional[int] = None


class CompleteOrderRequest(BaseModel):
    """Request to ship the prepared quantities of an order."""

    allow_partial: bool = False
    completed_by: Optional[str] = None
    version: Optional[int] = None
