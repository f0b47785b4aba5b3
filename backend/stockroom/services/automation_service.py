"""Automation engine.

Evaluates active automation rules against current stock, supplier prices and
demand, raising draft purchase orders and notifications.

Rule types:
- reorder_point: products at or below minimum stock; with ``create_po`` a
  draft PO per product from its cheapest supplier
- low_stock: products at or below ``stock_level`` (or their minimum)
- supplier_price: supplier prices quoted within ``timeframe`` days
- demand_forecast: products whose stock will not cover next month's forecast
"""

import logging
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, selectinload

from stockroom.models.automation import AutomationRule, AutomationRuleType
from stockroom.models.operations import Notification
from stockroom.models.order import Order, OrderStatus
from stockroom.models.product import Product
from stockroom.models.purchase_order import PurchaseOrder, PurchaseOrderItem, PurchaseOrderStatus
from stockroom.models.supplier import SupplierPrice
from stockroom.services import analytics_service
from stockroom.services.audit_service import log_action
from stockroom.services.order_service import CENT, generate_number

logger = logging.getLogger(__name__)

AUTOMATION_USER = "automation"
DEFAULT_PRICE_TIMEFRAME_DAYS = 30

DEFAULT_RULES = [
    {
        "name": "Auto Reorder - Low Stock",
        "type": AutomationRuleType.REORDER_POINT.value,
        "conditions": {"stock_level": 0},
        "actions": {"create_po": True, "send_alert": True},
    },
    {
        "name": "Low Stock Alert",
        "type": AutomationRuleType.LOW_STOCK.value,
        "conditions": {"stock_level": 5},
        "actions": {"send_alert": True},
    },
    {
        "name": "Price Change Monitor",
        "type": AutomationRuleType.SUPPLIER_PRICE.value,
        "conditions": {"timeframe": DEFAULT_PRICE_TIMEFRAME_DAYS},
        "actions": {"send_alert": True},
    },
]


def best_supplier_price(product: Product) -> Optional[SupplierPrice]:
    """Cheapest supplier quote for *product*, first quote wins ties."""
    best = None
    for quote in product.supplier_prices:
        if best is None or quote.price < best.price:
            best = quote
    return best


def reorder_quantity(product: Product) -> int:
    return max((product.maximum_stock or 0) - (product.stock or 0), (product.minimum_stock or 0) * 2)


class AutomationService:
    """Runs automation rules and generates purchase orders."""

    def __init__(self, db: Session):
        self.db = db
        self.purchase_orders_created = 0
        self.notifications_created = 0

    # ===== RULE EVALUATION =====

    def check_automation_rules(self) -> Dict[str, int]:
        """Evaluate every active rule in one transaction."""
        rules = self.db.query(AutomationRule).filter(AutomationRule.is_active.is_(True)).order_by(AutomationRule.id).all()
        products = self.db.query(Product).options(selectinload(Product.supplier_prices)).order_by(Product.id).all()
        self.purchase_orders_created = 0
        self.notifications_created = 0
        triggered = 0

        try:
            for rule in rules:
                handler = {
                    AutomationRuleType.REORDER_POINT.value: self._check_reorder_point,
                    AutomationRuleType.LOW_STOCK.value: self._check_low_stock,
                    AutomationRuleType.SUPPLIER_PRICE.value: self._check_supplier_prices,
                    AutomationRuleType.DEMAND_FORECAST.value: self._check_demand_forecast,
                }.get(rule.type)
                if handler is None:
                    logger.warning("Automation rule %s has unknown type %s", rule.id, rule.type)
                    continue
                if handler(rule, products):
                    triggered += 1
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Automation run failed")
            raise

        logger.info(
            "Automation run: %d rules checked, %d triggered, %d POs, %d notifications",
            len(rules), triggered, self.purchase_orders_created, self.notifications_created,
        )
        return {
            "rules_checked": len(rules),
            "rules_triggered": triggered,
            "purchase_orders_created": self.purchase_orders_created,
            "notifications_created": self.notifications_created,
        }

    def _trigger(self, rule: AutomationRule, times: int = 1) -> None:
        rule.trigger_count = (rule.trigger_count or 0) + times
        rule.last_triggered = datetime.now(timezone.utc)

    def _check_reorder_point(self, rule: AutomationRule, products: List[Product]) -> bool:
        product_ids = (rule.conditions or {}).get("product_ids")
        actions = rule.actions or {}
        low = [
            p for p in products
            if p.stock <= p.minimum_stock and (not product_ids or p.id in product_ids)
        ]
        if not low or not actions.get("create_po"):
            return False

        created = 0
        for product in low:
            quote = best_supplier_price(product)
            quantity = reorder_quantity(product)
            if quote is None or quantity <= 0:
                continue
            self._create_purchase_order(
                quote.supplier_id,
                [(product, quantity, quote.price)],
                trigger_reason=f"Low stock alert: {product.name} ({product.stock} remaining)",
            )
            created += 1
        if created:
            self._trigger(rule, created)
        return created > 0

    def _check_low_stock(self, rule: AutomationRule, products: List[Product]) -> bool:
        stock_level = (rule.conditions or {}).get("stock_level")
        low = [p for p in products if p.stock <= (stock_level or p.minimum_stock)]
        if not low or not (rule.actions or {}).get("send_alert"):
            return False
        names = ", ".join(p.name for p in low[:5])
        self._notify(
            f"automation:{rule.id}",
            rule.name,
            f"{len(low)} products below threshold: {names}",
        )
        self._trigger(rule)
        return True

    def _check_supplier_prices(self, rule: AutomationRule, products: List[Product]) -> bool:
        days = (rule.conditions or {}).get("timeframe") or DEFAULT_PRICE_TIMEFRAME_DAYS
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)
        recent = [
            quote for p in products for quote in p.supplier_prices
            if analytics_service.as_utc(quote.created_at) >= cutoff
        ]
        if not recent:
            return False
        if (rule.actions or {}).get("send_alert"):
            self._notify(
                f"automation:{rule.id}",
                rule.name,
                f"{len(recent)} supplier prices quoted in the last {days} days",
            )
        self._trigger(rule)
        return True

    def _check_demand_forecast(self, rule: AutomationRule, products: List[Product]) -> bool:
        product_ids = (rule.conditions or {}).get("product_ids")
        candidates = [p for p in products if not product_ids or p.id in product_ids]
        since = datetime.now(timezone.utc) - timedelta(days=366)
        orders = (
            self.db.query(Order)
            .options(selectinload(Order.items))
            .filter(Order.status != OrderStatus.CANCELLED.value, Order.created_at >= since)
            .all()
        )
        short = [
            row for row in analytics_service.demand_forecast(candidates, orders)
            if row["current_stock"] < row["forecast"][0]
        ]
        if not short:
            return False
        if (rule.actions or {}).get("send_alert"):
            names = ", ".join(r["product_name"] for r in short[:5])
            self._notify(
                f"automation:{rule.id}",
                rule.name,
                f"{len(short)} products will not cover next month's forecast demand: {names}",
            )
        self._trigger(rule)
        return True

    def _notify(self, key: str, title: str, message: str) -> None:
        notification = self.db.query(Notification).filter(Notification.key == key).first()
        if notification is None:
            self.db.add(Notification(
                key=key, title=title, message=message, type="warning",
                category="automation", priority="medium", read=False,
            ))
            self.notifications_created += 1
        else:
            notification.title = title
            notification.message = message
            notification.read = False
            notification.created_at = datetime.now(timezone.utc)

    # ===== PURCHASE ORDERS =====

    def _create_purchase_order(self, supplier_id: int, lines, trigger_reason: str) -> PurchaseOrder:
        po = PurchaseOrder(
            po_number=generate_number(self.db, "PO", PurchaseOrder.po_number),
            supplier_id=supplier_id,
            status=PurchaseOrderStatus.DRAFT.value,
            order_date=datetime.now(timezone.utc),
            created_by=AUTOMATION_USER,
            auto_generated=True,
            trigger_reason=trigger_reason,
            tax_rate=Decimal("0"),
            tax_amount=Decimal("0"),
        )
        subtotal = Decimal("0")
        for product, quantity, unit_price in lines:
            total = (Decimal(quantity) * Decimal(unit_price)).quantize(CENT)
            subtotal += total
            po.items.append(PurchaseOrderItem(
                product_id=product.id, quantity=quantity, unit_price=unit_price, total=total,
            ))
        po.subtotal = subtotal
        po.total = subtotal
        self.db.add(po)
        # Flush so the next generated number sees this one
        self.db.flush()
        self.purchase_orders_created += 1
        logger.info("Draft purchase order %s created: %s", po.po_number, trigger_reason)
        return po

    def auto_generate_purchase_orders(self) -> List[PurchaseOrder]:
        """One draft PO per supplier covering every low-stock product it sells cheapest."""
        products = (
            self.db.query(Product)
            .options(selectinload(Product.supplier_prices))
            .filter(Product.stock <= Product.minimum_stock)
            .order_by(Product.id)
            .all()
        )
        by_supplier: "OrderedDict[int, List[Any]]" = OrderedDict()
        for product in products:
            quote = best_supplier_price(product)
            quantity = reorder_quantity(product)
            if quote is None or quantity <= 0:
                continue
            by_supplier.setdefault(quote.supplier_id, []).append((product, quantity, quote.price))

        created = []
        try:
            for supplier_id, lines in by_supplier.items():
                created.append(self._create_purchase_order(
                    supplier_id, lines,
                    trigger_reason=f"Auto-generated for {len(lines)} low-stock products",
                ))
            if created:
                log_action("auto_generate", "purchase_order", "", user_name=AUTOMATION_USER,
                           details={"po_numbers": [po.po_number for po in created]}, db=self.db)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Purchase order generation failed")
            raise
        for po in created:
            self.db.refresh(po)
        return created

    # ===== RULE MANAGEMENT =====

    def create_default_rules(self) -> List[AutomationRule]:
        """Create the stock reorder, low stock and price monitor rules."""
        rules = [
            AutomationRule(
                name=d["name"],
                type=d["type"],
                conditions=dict(d["conditions"]),
                actions=dict(d["actions"]),
                is_active=True,
                trigger_count=0,
            )
            for d in DEFAULT_RULES
        ]
        try:
            self.db.add_all(rules)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Failed to create default automation rules")
            raise
        for rule in rules:
            self.db.refresh(rule)
        return rules
