"""Product schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class ProductBase(BaseModel):
    """Base product schema."""

    name: str = Field(min_length=1, max_length=255)
    sku: Optional[str] = None
    description: Optional[str] = None
    category: str = "General"
    unit: str = "piece"
    cost_price: Decimal = Field(default=Decimal("0"), ge=0)
    selling_price: Decimal = Field(default=Decimal("0"), ge=0)
    markup: Decimal = Decimal("0")
    minimum_stock: int = Field(default=0, ge=0)
    maximum_stock: int = Field(default=0, ge=0)
    location: Optional[str] = None
    barcode: Optional[str] = None


class ProductCreate(ProductBase):
    """Product creation schema. Opening stock is booked as an 'in' movement."""

    stock: int = Field(default=0, ge=0)


class ProductUpdate(BaseModel):
    """Product update schema. Stock levels change only through movements."""

    name: Optional[str] = None
    sku: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    unit: Optional[str] = None
    cost_price: Optional[Decimal] = Field(default=None, ge=0)
    selling_price: Optional[Decimal] = Field(default=None, ge=0)
    markup: Optional[Decimal] = None
    minimum_stock: Optional[int] = Field(default=None, ge=0)
    maximum_stock: Optional[int] = Field(default=None, ge=0)
    location: Optional[str] = None
    barcode: Optional[str] = None
    version: Optional[int] = None


class ProductResponse(ProductBase):
    """Product response schema."""

    id: int
    stock: int
    reserved_stock: int
    available_stock: int
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
