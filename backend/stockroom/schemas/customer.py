"""Customer schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field


class CustomerBase(BaseModel):
    """Base customer schema."""

    name: str = Field(min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    contact_person: Optional[str] = None
    address: Optional[str] = None
    tax_number: Optional[str] = None
    payment_terms: Optional[str] = None
    credit_limit: Optional[Decimal] = None
    price_level: Literal["standard", "wholesale", "vip", "custom"] = "standard"
    discount: Decimal = Field(default=Decimal("0"), ge=0, le=100)


class CustomerCreate(CustomerBase):
    """Customer creation schema."""

    pass


class CustomerUpdate(BaseModel):
    """Customer update schema."""

    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    contact_person: Optional[str] = None
    address: Optional[str] = None
    tax_number: Optional[str] = None
    payment_terms: Optional[str] = None
    credit_limit: Optional[Decimal] = None
    price_level: Optional[Literal["standard", "wholesale", "vip", "custom"]] = None
    discount: Optional[Decimal] = Field(default=None, ge=0, le=100)


class CustomerResponse(CustomerBase):
    """Customer response schema."""

    id: int
    created_at: datetime

    model_config = {"from_attributes": True}
