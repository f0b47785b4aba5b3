"""Stock movement log."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stockroom.db.base import Base


class MovementType(str, Enum):
    """Kinds of stock movement."""

    IN = "in"  # Goods received
    OUT = "out"  # Shipped / consumed
    ADJUSTMENT = "adjustment"  # Manual correction, signed quantity
    RESERVED = "reserved"  # Earmarked for an order in preparation
    UNRESERVED = "unreserved"  # Reservation released


class StockMovement(Base):
    """Append-only log of stock changes.

    Rows are written alongside the product update they describe and are
    never replayed; ``Product.stock`` remains the figure of record.
    """

    __tablename__ = "stock_movements"

    id: Mapped[int] = mapped_column(primary_key=True)
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(255), nullable=False)
    reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)  # order number, invoice
    order_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("orders.id", ondelete="SET NULL"), nullable=True, index=True
    )
    customer_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("customers.id", ondelete="SET NULL"), nullable=True
    )
    location: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    batch_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
    created_by: Mapped[str] = mapped_column(String(255), default="system", nullable=False)

    # Relationships
    product: Mapped["Product"] = relationship("Product", back_populates="stock_movements")


# Forward references
from stockroom.models.product import Product
