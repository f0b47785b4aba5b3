"""Order preparation and fulfilment engine.

Flow for one order line:
1. Work out what is available: unreserved stock plus whatever this line
   already holds from an earlier preparation.
2. Prepare min(requested, ordered, available); the rest is backordered.
3. Keep a single pending backorder for the (order, product) shortfall.
4. Reserve (or release) the difference from the line's previous reservation,
   appending a reserved/unreserved movement.
5. Recompute the order's progress and status.

Fulfilment then ships the prepared quantities: stock and reservation both drop
by the prepared amount and an 'out' movement is logged.

Each call is a single transaction; any failure rolls back every write.
"""

import logging
from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from stockroom.core.exceptions import InvalidOrderStateError, PreparationIncompleteError
from stockroom.models.order import Order, OrderItem, OrderStatus, PreparationStatus
from stockroom.models.product import Product
from stockroom.models.stock import MovementType
from stockroom.services.analytics_service import round_half_up
from stockroom.services.audit_service import log_action
from stockroom.services.backorder_service import BackorderService
from stockroom.services.stock_service import append_movement

logger = logging.getLogger(__name__)

# Orders in these states can no longer be prepared or fulfilled
CLOSED_STATUSES = {OrderStatus.CANCELLED.value, OrderStatus.SHIPPED.value, OrderStatus.DELIVERED.value}


def coerce_quantity(value: Any) -> int:
    """Requested quantities that are negative or not numbers count as 0."""
    if isinstance(value, bool):
        return 0
    try:
        quantity = int(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, quantity)


def line_status(prepared: int, ordered: int, backordered: int) -> PreparationStatus:
    if prepared == ordered:
        return PreparationStatus.COMPLETE
    if prepared > 0:
        return PreparationStatus.PARTIAL
    if backordered > 0:
        return PreparationStatus.BACKORDER
    return PreparationStatus.PENDING


def preparation_progress(items: List[OrderItem]) -> int:
    """Share of lines fully prepared, as a whole percentage."""
    if not items:
        return 0
    completed = sum(1 for i in items if i.preparation_status == PreparationStatus.COMPLETE.value)
    return round_half_up(completed / len(items) * 100)


class PreparationService:
    """Picks, reserves and ships stock for customer orders."""

    def __init__(self, db: Session):
        self.db = db
        self.backorders = BackorderService(db)

    def _ensure_open(self, order: Order, operation: str) -> None:
        if order.status in CLOSED_STATUSES or order.fulfilled_at is not None:
            raise InvalidOrderStateError(order.order_number, order.status, operation)

    def prepare_item(
        self,
        order_id: int,
        item_index: int,
        requested_qty: Any,
        prepared_by: Optional[str] = None,
        notes: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Optional[Order]:
        """
        Prepare one order line against current stock.

        Never prepares more than min(requested, ordered, available), so
        available stock cannot go negative through this path. Preparing the
        same line again re-targets its reservation instead of stacking a
        second one.

        Args:
            order_id: Order to prepare
            item_index: Position of the line within the order
            requested_qty: Quantity the picker wants to prepare
            prepared_by: Who prepared the line
            notes: Free-text picking notes
            expected_version: Optional optimistic-lock version of the order

        Returns:
            The updated order, or None when the order, line or product is missing.

        Raises:
            InvalidOrderStateError: the order is cancelled, shipped, delivered
                or already fulfilled.
            VersionConflictError: *expected_version* is stale.
        """
        order = self.db.get(Order, order_id)
        if order is None:
            logger.warning("Prepare requested for unknown order %s", order_id)
            return None
        items = list(order.items)
        if not isinstance(item_index, int) or item_index < 0 or item_index >= len(items):
            logger.warning("Order %s has no line at index %s", order.order_number, item_index)
            return None
        item = items[item_index]
        product = self.db.get(Product, item.product_id)
        if product is None:
            logger.warning("Order %s line %s references missing product %s", order.order_number, item_index, item.product_id)
            return None

        self._ensure_open(order, "prepare")
        order.check_version(expected_version)

        requested = coerce_quantity(requested_qty)
        previously_prepared = item.prepared_quantity or 0

        try:
            available = (product.stock or 0) - (product.reserved_stock or 0) + previously_prepared
            max_preparable = max(0, min(item.quantity, available))
            actual_prepared = min(requested, max_preparable)
            backorder_qty = item.quantity - actual_prepared
            status = line_status(actual_prepared, item.quantity, backorder_qty)

            delta = actual_prepared - previously_prepared
            if delta > 0:
                append_movement(
                    self.db, product, MovementType.RESERVED, delta,
                    reason=f"Reserved for order {order.order_number}",
                    reference=order.order_number, order_id=order.id,
                    customer_id=order.customer_id, created_by=prepared_by,
                )
                product.reserved_stock = (product.reserved_stock or 0) + delta
            elif delta < 0:
                append_movement(
                    self.db, product, MovementType.UNRESERVED, -delta,
                    reason=f"Released from order {order.order_number}",
                    reference=order.order_number, order_id=order.id,
                    customer_id=order.customer_id, created_by=prepared_by,
                )
                product.reserved_stock = (product.reserved_stock or 0) + delta
            product.recalculate_available()
            if delta:
                product.increment_version()

            item.prepared_quantity = actual_prepared
            item.backorder_quantity = backorder_qty
            item.available_stock = available
            item.preparation_status = status.value
            item.prepared_by = prepared_by
            item.prepared_at = datetime.now(timezone.utc)
            if notes is not None:
                item.notes = notes
            self.backorders.sync_for_item(order, item)

            order.preparation_progress = preparation_progress(items)
            order.status = (
                OrderStatus.READY.value if order.preparation_progress == 100 else OrderStatus.PREPARING.value
            )
            order.has_backorders = any((i.backorder_quantity or 0) > 0 for i in items)
            order.increment_version()

            log_action(
                "prepare", "order", order.id, user_name=prepared_by or "",
                details={
                    "position": item.position,
                    "product_id": product.id,
                    "requested": requested,
                    "prepared": actual_prepared,
                    "backordered": backorder_qty,
                },
                db=self.db,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Failed to prepare line %s of order %s", item_index, order.order_number)
            raise

        self.db.refresh(order)
        logger.info(
            "Order %s line %s: prepared %s of %s (requested %s, backorder %s)",
            order.order_number, item_index, actual_prepared, item.quantity, requested, backorder_qty,
        )
        return order

    def complete_order_preparation(
        self,
        order_id: int,
        allow_partial: bool = False,
        completed_by: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Optional[Order]:
        """
        Ship the prepared quantities of an order.

        Every line must be complete unless *allow_partial* is set. For each
        line with a prepared quantity, stock and reserved stock both drop by
        that amount and an 'out' movement is logged.

        Returns:
            The fulfilled order, or None when it does not exist.

        Raises:
            PreparationIncompleteError: lines are unprepared and partial
                fulfilment was not allowed.
            InvalidOrderStateError: the order is closed or already fulfilled.
            VersionConflictError: *expected_version* is stale.
        """
        order = self.db.get(Order, order_id)
        if order is None:
            logger.warning("Completion requested for unknown order %s", order_id)
            return None

        self._ensure_open(order, "complete")
        order.check_version(expected_version)

        items = list(order.items)
        incomplete = [
            i.position for i in items if i.preparation_status != PreparationStatus.COMPLETE.value
        ]
        if incomplete and not allow_partial:
            raise PreparationIncompleteError(order.order_number, incomplete)

        shipped = 0
        try:
            for item in items:
                quantity = item.prepared_quantity or 0
                if quantity <= 0:
                    continue
                product = item.product
                append_movement(
                    self.db, product, MovementType.OUT, quantity,
                    reason=f"Shipped for order {order.order_number}",
                    reference=order.order_number, order_id=order.id,
                    customer_id=order.customer_id, created_by=completed_by,
                )
                product.stock = product.stock - quantity
                product.reserved_stock = max(0, (product.reserved_stock or 0) - quantity)
                product.recalculate_available()
                product.increment_version()
                shipped += quantity

            order.status = OrderStatus.READY.value
            order.fulfilled_at = datetime.now(timezone.utc)
            order.preparation_progress = 100 if not incomplete else preparation_progress(items)
            order.increment_version()

            log_action(
                "fulfil", "order", order.id, user_name=completed_by or "",
                details={"shipped_units": shipped, "partial": bool(incomplete)},
                db=self.db,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Failed to complete order %s", order.order_number)
            raise

        self.db.refresh(order)
        logger.info(
            "Order %s fulfilled: %s units shipped%s",
            order.order_number, shipped, " (partial)" if incomplete else "",
        )
        return order
