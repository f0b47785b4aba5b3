"""Product model."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from stockroom.db.base import Base, TimestampMixin, VersionMixin
from stockroom.models.validators import non_negative


class Product(Base, TimestampMixin, VersionMixin):
    """Product in the catalog, carrying its own stock ledger totals."""

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    sku: Mapped[Optional[str]] = mapped_column(String(50), unique=True, index=True, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(100), default="General", nullable=False)
    unit: Mapped[str] = mapped_column(String(20), default="piece", nullable=False)  # piece, box, kg, meter
    cost_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    selling_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    markup: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)  # percentage

    # Ledger totals. available_stock is stored redundantly as stock - reserved_stock.
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reserved_stock: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    available_stock: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    minimum_stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    maximum_stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    location: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)  # bin / shelf
    barcode: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)

    # Relationships
    stock_movements: Mapped[list["StockMovement"]] = relationship(
        "StockMovement", back_populates="product", cascade="all, delete-orphan", passive_deletes=True
    )
    supplier_prices: Mapped[list["SupplierPrice"]] = relationship(
        "SupplierPrice", back_populates="product", cascade="all, delete-orphan", passive_deletes=True
    )

    @validates("stock", "reserved_stock", "minimum_stock", "maximum_stock", "cost_price", "selling_price")
    def _validate_non_negative(self, key, value):
        return non_negative(key, value)

    def recalculate_available(self) -> int:
        """Refresh the persisted available_stock from stock and reserved_stock."""
        self.available_stock = (self.stock or 0) - (self.reserved_stock or 0)
        return self.available_stock


# Forward references
from stockroom.models.stock import StockMovement
from stockroom.models.supplier import SupplierPrice
