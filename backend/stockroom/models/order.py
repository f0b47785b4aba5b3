"""Customer order models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from stockroom.db.base import Base, TimestampMixin, VersionMixin
from stockroom.models.validators import non_negative, percentage


class OrderStatus(str, Enum):
    """Lifecycle of a customer order."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class Priority(str, Enum):
    """Priority shared by orders and backorders."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class PreparationStatus(str, Enum):
    """How much of an order line has been picked and reserved."""

    PENDING = "pending"
    PARTIAL = "partial"
    COMPLETE = "complete"
    BACKORDER = "backorder"


class Order(Base, TimestampMixin, VersionMixin):
    """A confirmed customer order (usually converted from a quotation)."""

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    quotation_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    customer_id: Mapped[int] = mapped_column(
        ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("0"), nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=OrderStatus.PENDING.value, nullable=False, index=True
    )
    priority: Mapped[str] = mapped_column(String(20), default=Priority.MEDIUM.value, nullable=False)
    expected_delivery: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    actual_delivery: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    tracking_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    warehouse_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    has_backorders: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    preparation_progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # percentage
    fulfilled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    customer: Mapped["Customer"] = relationship("Customer", back_populates="orders")
    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
    )

    @validates("preparation_progress")
    def _validate_progress(self, key, value):
        return percentage(key, value)


class OrderItem(Base):
    """A single product line of an order, with its preparation ledger."""

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    unit: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    discount: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=Decimal("0"), nullable=False)  # percentage
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)

    # Preparation ledger
    prepared_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    backorder_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    available_stock: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # snapshot at preparation
    preparation_status: Mapped[str] = mapped_column(
        String(20), default=PreparationStatus.PENDING.value, nullable=False
    )
    prepared_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    prepared_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships
    order: Mapped["Order"] = relationship("Order", back_populates="items")
    product: Mapped["Product"] = relationship("Product")

    @validates("quantity", "prepared_quantity", "backorder_quantity", "unit_price")
    def _validate_non_negative(self, key, value):
        return non_negative(key, value)


# Forward references
from stockroom.models.customer import Customer
from stockroom.models.product import Product
