"""Stock movement service.

``Product.stock`` and ``Product.reserved_stock`` are the figures of record;
every change to them appends a ``StockMovement`` row in the same transaction.
Reservation movements are written only by the preparation engine.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from stockroom.core.config import settings
from stockroom.core.exceptions import InsufficientStockError
from stockroom.models.product import Product
from stockroom.models.stock import MovementType, StockMovement
from stockroom.services.audit_service import log_action

logger = logging.getLogger(__name__)


def append_movement(
    db: Session,
    product: Product,
    movement_type: MovementType,
    quantity: int,
    reason: str,
    reference: Optional[str] = None,
    order_id: Optional[int] = None,
    customer_id: Optional[int] = None,
    created_by: Optional[str] = None,
    location: Optional[str] = None,
    batch_number: Optional[str] = None,
) -> StockMovement:
    """Add a movement row for *product* to the session without committing."""
    movement = StockMovement(
        product_id=product.id,
        type=movement_type.value,
        quantity=quantity,
        reason=reason,
        reference=reference,
        order_id=order_id,
        customer_id=customer_id,
        location=location or product.location,
        batch_number=batch_number,
        created_by=created_by or settings.default_created_by,
    )
    db.add(movement)
    return movement


class StockService:
    """Records manual stock movements (goods in, goods out, adjustments)."""

    def __init__(self, db: Session):
        self.db = db

    def create_product(self, fields: Dict[str, Any], opening_stock: int = 0, created_by: Optional[str] = None) -> Product:
        """Create a product, booking any opening stock as an 'in' movement."""
        product = Product(**fields, stock=0, reserved_stock=0, available_stock=0)
        try:
            self.db.add(product)
            self.db.flush()
            if opening_stock > 0:
                product.stock = opening_stock
                product.recalculate_available()
                append_movement(
                    self.db, product, MovementType.IN, opening_stock,
                    reason="Opening stock", created_by=created_by,
                )
            log_action("create", "product", product.id, user_name=created_by or "",
                       details={"name": product.name, "opening_stock": opening_stock}, db=self.db)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Failed to create product %s", fields.get("name"))
            raise
        self.db.refresh(product)
        return product

    def record_movement(
        self,
        product_id: int,
        movement_type: MovementType,
        quantity: int,
        reason: str,
        reference: Optional[str] = None,
        created_by: Optional[str] = None,
        location: Optional[str] = None,
        batch_number: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Optional[StockMovement]:
        """
        Apply a stock movement to a product and log it.

        ``in`` adds ``quantity``; ``out`` removes it and may not take more than
        the available (unreserved) stock; ``adjustment`` applies ``quantity``
        as a signed delta and may not leave stock below what is reserved.

        Returns:
            The movement row, or None when the product does not exist.

        Raises:
            ValueError: non-positive in/out quantity, zero adjustment or a
                reservation type.
            InsufficientStockError: the movement would overdraw the product.
            VersionConflictError: *expected_version* is stale.
        """
        movement_type = MovementType(movement_type)
        if movement_type in (MovementType.RESERVED, MovementType.UNRESERVED):
            raise ValueError("Reservation movements are recorded by order preparation only")
        if movement_type == MovementType.ADJUSTMENT:
            if quantity == 0:
                raise ValueError("Adjustment quantity must be non-zero")
        elif quantity <= 0:
            raise ValueError(f"Quantity for '{movement_type.value}' must be positive")

        product = self.db.get(Product, product_id)
        if product is None:
            logger.warning("Stock movement for unknown product %s ignored", product_id)
            return None
        product.check_version(expected_version)

        reserved = product.reserved_stock or 0
        if movement_type == MovementType.IN:
            delta = quantity
        elif movement_type == MovementType.OUT:
            available = product.stock - reserved
            if quantity > available:
                raise InsufficientStockError(product.name, product.id, available, quantity)
            delta = -quantity
        else:
            delta = quantity
            if product.stock + delta < reserved:
                raise InsufficientStockError(product.name, product.id, product.stock - reserved, -delta)

        try:
            product.stock = product.stock + delta
            product.recalculate_available()
            product.increment_version()
            movement = append_movement(
                self.db, product, movement_type, quantity, reason,
                reference=reference, created_by=created_by,
                location=location, batch_number=batch_number,
            )
            log_action(
                "stock_" + movement_type.value, "product", product.id,
                user_name=created_by or "",
                details={"quantity": quantity, "reason": reason, "stock": product.stock},
                db=self.db,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Failed to record %s movement for product %s", movement_type.value, product_id)
            raise

        self.db.refresh(movement)
        logger.info(
            "Stock %s of %s for product %s (%s), stock now %s",
            movement_type.value, quantity, product.id, product.name, product.stock,
        )
        return movement
