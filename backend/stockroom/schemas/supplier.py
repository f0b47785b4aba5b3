"""Supplier schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class SupplierBase(BaseModel):
    """Base supplier schema."""

    name: str = Field(min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    contact_person: Optional[str] = None
    payment_terms: Optional[str] = None


class SupplierCreate(SupplierBase):
    """Supplier creation schema."""

    pass


class SupplierUpdate(BaseModel):
    """Supplier update schema."""

    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    contact_person: Optional[str] = None
    payment_terms: Optional[str] = None


class SupplierResponse(SupplierBase):
    """Supplier response schema."""

    id: int
    created_at: datetime

    model_config = {"from_attributes": True}


class SupplierPriceCreate(BaseModel):
    """Supplier price quote for a product."""

    product_id: int
    price: Decimal = Field(ge=0)
    minimum_quantity: int = Field(default=1, ge=1)
    lead_time_days: int = Field(default=0, ge=0)
    currency: str = "ZAR"
    valid_until: Optional[datetime] = None


class SupplierPriceResponse(SupplierPriceCreate):
    """Supplier price response schema."""

    id: int
    supplier_id: int
    created_at: datetime

    model_config = {"from_attributes": True}
