"""Backorder service.

Keeps at most one pending backorder per (order, product) and builds the
per-customer backorder report.
"""

import logging
from collections import OrderedDict
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from stockroom.models.backorder import BackorderItem, BackorderStatus
from stockroom.models.order import Order, OrderItem
from stockroom.schemas.backorder import BackorderStatusUpdate
from stockroom.services.audit_service import log_action

logger = logging.getLogger(__name__)


class BackorderService:
    """Maintains backorders for under-fulfilled order lines."""

    def __init__(self, db: Session):
        self.db = db

    def pending_for(self, order_id: int, product_id: int) -> Optional[BackorderItem]:
        return self.db.query(BackorderItem).filter(
            BackorderItem.order_id == order_id,
            BackorderItem.product_id == product_id,
            BackorderItem.status == BackorderStatus.PENDING.value,
        ).first()

    def sync_for_item(self, order: Order, item: OrderItem) -> Optional[BackorderItem]:
        """
        Make the pending backorder for *item*'s product match the order's shortfall.

        The shortfall is the summed ``backorder_quantity`` of every line of
        the order on that product, so lines sharing a product share one row.
        Creates or updates that row while the total is positive and cancels
        it once the total is 0. Does not commit; the caller owns the
        transaction.
        """
        shortfall = sum(
            line.backorder_quantity or 0
            for line in order.items
            if line.product_id == item.product_id
        )
        pending = self.pending_for(order.id, item.product_id)
        if shortfall > 0:
            if pending is None:
                pending = BackorderItem(
                    customer_id=order.customer_id,
                    order_id=order.id,
                    product_id=item.product_id,
                    quantity=shortfall,
                    unit_price=item.unit_price,
                    unit=item.unit,
                    priority=order.priority,
                    status=BackorderStatus.PENDING.value,
                    notes=f"Backorder from {order.order_number}",
                )
                self.db.add(pending)
                logger.info(
                    "Backorder of %s created for order %s product %s",
                    shortfall, order.order_number, item.product_id,
                )
            elif pending.quantity != shortfall:
                logger.info(
                    "Backorder for order %s product %s changed from %s to %s",
                    order.order_number, item.product_id, pending.quantity, shortfall,
                )
                pending.quantity = shortfall
            return pending

        if pending is not None:
            pending.status = BackorderStatus.CANCELLED.value
            logger.info("Backorder for order %s product %s cancelled", order.order_number, item.product_id)
        return None

    def list_backorders(
        self,
        customer_id: Optional[int] = None,
        product_id: Optional[int] = None,
        status: Optional[str] = None,
    ):
        query = self.db.query(BackorderItem)
        if customer_id is not None:
            query = query.filter(BackorderItem.customer_id == customer_id)
        if product_id is not None:
            query = query.filter(BackorderItem.product_id == product_id)
        if status:
            query = query.filter(BackorderItem.status == status)
        return query.order_by(BackorderItem.created_at.desc(), BackorderItem.id.desc())

    def update_status(self, backorder_id: int, data: BackorderStatusUpdate, updated_by: Optional[str] = None) -> Optional[BackorderItem]:
        backorder = self.db.get(BackorderItem, backorder_id)
        if backorder is None:
            return None
        old_status = backorder.status
        backorder.status = data.status.value
        if data.expected_date is not None:
            backorder.expected_date = data.expected_date
        if data.notes is not None:
            backorder.notes = data.notes
        try:
            log_action("status_change", "backorder", backorder.id, user_name=updated_by or "",
                       details={"from": old_status, "to": backorder.status}, db=self.db)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Failed to update backorder %s", backorder_id)
            raise
        self.db.refresh(backorder)
        return backorder

    def customer_report(self) -> List[Dict[str, Any]]:
        """Pending backorders grouped per customer, largest value first."""
        pending = (
            self.db.query(BackorderItem)
            .options(joinedload(BackorderItem.customer))
            .filter(BackorderItem.status == BackorderStatus.PENDING.value)
            .order_by(BackorderItem.customer_id, BackorderItem.id)
            .all()
        )
        groups: "OrderedDict[int, Dict[str, Any]]" = OrderedDict()
        for backorder in pending:
            group = groups.setdefault(backorder.customer_id, {
                "customer_id": backorder.customer_id,
                "customer_name": backorder.customer.name if backorder.customer else "Unknown",
                "item_count": 0,
                "total_quantity": 0,
                "total_value": Decimal("0"),
                "items": [],
            })
            group["item_count"] += 1
            group["total_quantity"] += backorder.quantity
            group["total_value"] += Decimal(backorder.quantity) * Decimal(backorder.unit_price or 0)
            group["items"].append(backorder)
        return sorted(groups.values(), key=lambda g: g["total_value"], reverse=True)
