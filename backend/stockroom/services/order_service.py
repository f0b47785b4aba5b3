"""Order service: creation, totals and explicit status changes."""

import logging
import time
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy.orm import Session

from stockroom.core.config import settings
from stockroom.core.exceptions import InvalidOrderStateError
from stockroom.models.backorder import BackorderItem, BackorderStatus
from stockroom.models.customer import Customer
from stockroom.models.order import Order, OrderItem, OrderStatus
from stockroom.models.product import Product
from stockroom.models.stock import MovementType
from stockroom.schemas.order import OrderCreate
from stockroom.services.audit_service import log_action
from stockroom.services.stock_service import append_movement

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# Allowed explicit status changes. Preparation sets preparing/ready on its own.
ORDER_STATUS_TRANSITIONS = {
    OrderStatus.PENDING: [OrderStatus.CONFIRMED, OrderStatus.CANCELLED],
    OrderStatus.CONFIRMED: [OrderStatus.PREPARING, OrderStatus.CANCELLED],
    OrderStatus.PREPARING: [OrderStatus.READY, OrderStatus.CANCELLED],
    OrderStatus.READY: [OrderStatus.SHIPPED],
    OrderStatus.SHIPPED: [OrderStatus.DELIVERED],
    OrderStatus.DELIVERED: [],
    OrderStatus.CANCELLED: [],
}


def generate_number(db: Session, prefix: str, column) -> str:
    """Return ``<prefix>-<epoch millis>``, bumped until unused in *column*."""
    stamp = int(time.time() * 1000)
    while db.query(column).filter(column == f"{prefix}-{stamp}").first() is not None:
        stamp += 1
    return f"{prefix}-{stamp}"


def line_total(quantity: int, unit_price: Decimal, discount: Decimal = Decimal("0")) -> Decimal:
    gross = Decimal(quantity) * Decimal(unit_price)
    net = gross * (Decimal("100") - Decimal(discount)) / Decimal("100")
    return net.quantize(CENT, rounding=ROUND_HALF_UP)


class OrderService:
    """Creates orders and moves them through their lifecycle."""

    def __init__(self, db: Session):
        self.db = db

    def create_order(self, data: OrderCreate, created_by: Optional[str] = None) -> Optional[Order]:
        """
        Create an order with its lines and totals.

        Unit prices default to the product's selling price. Returns None
        when the customer or any product does not exist.
        """
        customer = self.db.get(Customer, data.customer_id)
        if customer is None:
            logger.warning("Order for unknown customer %s rejected", data.customer_id)
            return None

        product_ids = {line.product_id for line in data.items}
        products = {
            p.id: p for p in self.db.query(Product).filter(Product.id.in_(product_ids)).all()
        }
        missing = sorted(product_ids - products.keys())
        if missing:
            logger.warning("Order references unknown products %s", missing)
            return None

        tax_rate = data.tax_rate if data.tax_rate is not None else settings.tax_rate
        order = Order(
            order_number=generate_number(self.db, "ORD", Order.order_number),
            quotation_number=data.quotation_number,
            customer_id=customer.id,
            priority=data.priority.value,
            status=OrderStatus.PENDING.value,
            expected_delivery=data.expected_delivery,
            notes=data.notes,
            warehouse_notes=data.warehouse_notes,
            tax_rate=tax_rate,
            preparation_progress=0,
            has_backorders=False,
        )

        subtotal = Decimal("0")
        for position, line in enumerate(data.items):
            product = products[line.product_id]
            unit_price = line.unit_price if line.unit_price is not None else product.selling_price
            total = line_total(line.quantity, unit_price, line.discount)
            subtotal += total
            order.items.append(OrderItem(
                position=position,
                product_id=product.id,
                quantity=line.quantity,
                unit_price=unit_price,
                unit=line.unit or product.unit,
                discount=line.discount,
                total=total,
            ))

        order.subtotal = subtotal
        order.tax_amount = (subtotal * Decimal(tax_rate) / Decimal("100")).quantize(CENT, rounding=ROUND_HALF_UP)
        order.total = order.subtotal + order.tax_amount

        try:
            self.db.add(order)
            self.db.flush()
            log_action("create", "order", order.id, user_name=created_by or "",
                       details={"order_number": order.order_number, "total": str(order.total)}, db=self.db)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Failed to create order for customer %s", data.customer_id)
            raise

        self.db.refresh(order)
        logger.info("Created order %s with %d lines", order.order_number, len(order.items))
        return order

    def change_status(
        self,
        order_id: int,
        new_status: OrderStatus,
        tracking_number: Optional[str] = None,
        changed_by: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Optional[Order]:
        """
        Apply an explicit status change allowed by ``ORDER_STATUS_TRANSITIONS``.

        Cancelling releases the order's reservations and cancels its pending
        backorders in the same transaction.
        Shipping requires a prior complete_order_preparation.
        """
        order = self.db.get(Order, order_id)
        if order is None:
            logger.warning("Status change for unknown order %s ignored", order_id)
            return None

        new_status = OrderStatus(new_status)
        current = OrderStatus(order.status)
        if new_status not in ORDER_STATUS_TRANSITIONS[current]:
            raise InvalidOrderStateError(order.order_number, order.status, f"move to '{new_status.value}'")
        # Stock leaves the shelf only through complete_order_preparation
        if new_status == OrderStatus.SHIPPED and order.fulfilled_at is None:
            raise InvalidOrderStateError(order.order_number, order.status, "ship unfulfilled")
        order.check_version(expected_version)

        try:
            if new_status == OrderStatus.CANCELLED:
                self._release_reservations(order, changed_by)
            if new_status == OrderStatus.SHIPPED and tracking_number:
                order.tracking_number = tracking_number
            if new_status == OrderStatus.DELIVERED:
                order.actual_delivery = datetime.now(timezone.utc)
            order.status = new_status.value
            order.increment_version()
            log_action("status_change", "order", order.id, user_name=changed_by or "",
                       details={"from": current.value, "to": new_status.value}, db=self.db)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Failed to move order %s to %s", order.order_number, new_status.value)
            raise

        self.db.refresh(order)
        logger.info("Order %s moved from %s to %s", order.order_number, current.value, new_status.value)
        return order

    def _release_reservations(self, order: Order, changed_by: Optional[str]) -> None:
        for item in order.items:
            reserved = item.prepared_quantity or 0
            if reserved <= 0:
                continue
            product = item.product
            product.reserved_stock = max(0, (product.reserved_stock or 0) - reserved)
            product.recalculate_available()
            product.increment_version()
            append_movement(
                self.db, product, MovementType.UNRESERVED, reserved,
                reason=f"Order {order.order_number} cancelled",
                reference=order.order_number, order_id=order.id,
                customer_id=order.customer_id, created_by=changed_by,
            )
        pending = self.db.query(BackorderItem).filter(
            BackorderItem.order_id == order.id,
            BackorderItem.status == BackorderStatus.PENDING.value,
        ).all()
        for backorder in pending:
            backorder.status = BackorderStatus.CANCELLED.value
