"""Inventory alerts.

Alerts are derived from current stock levels on every scan. The periodic
scan stores them as notifications keyed by ``<type>:<product id>`` so a
repeated scan refreshes an unread notification instead of adding another,
and notifications for conditions that have cleared are removed.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from stockroom.db.session import SessionLocal
from stockroom.models.operations import Notification
from stockroom.models.product import Product

logger = logging.getLogger(__name__)

ALERT_KEY_PREFIXES = ("low_stock:", "out_of_stock:", "overstock:")

# Notification type per alert severity
SEVERITY_TYPES = {
    "critical": "error",
    "high": "warning",
    "medium": "warning",
    "low": "info",
}


def low_stock_severity(stock: int) -> str:
    if stock == 0:
        return "critical"
    if stock <= 5:
        return "high"
    return "medium"


def compute_alerts(products: Iterable[Any]) -> List[Dict[str, Any]]:
    """
    Build the alert list for *products*.

    - low_stock when stock <= minimum_stock
    - out_of_stock when stock is 0
    - overstock when stock exceeds a configured maximum_stock (0 means no ceiling)
    """
    alerts = []
    for product in products:
        stock = product.stock or 0
        minimum = product.minimum_stock or 0
        maximum = product.maximum_stock or 0
        if stock <= minimum:
            alerts.append({
                "type": "low_stock",
                "severity": low_stock_severity(stock),
                "product_id": product.id,
                "product_name": product.name,
                "current_stock": stock,
                "threshold": minimum,
                "message": f"Low stock: {stock} units remaining",
            })
        if stock == 0:
            alerts.append({
                "type": "out_of_stock",
                "severity": "critical",
                "product_id": product.id,
                "product_name": product.name,
                "current_stock": stock,
                "threshold": 0,
                "message": "Out of stock - immediate reorder required",
            })
        if maximum > 0 and stock > maximum:
            alerts.append({
                "type": "overstock",
                "severity": "low",
                "product_id": product.id,
                "product_name": product.name,
                "current_stock": stock,
                "threshold": maximum,
                "message": f"Overstock: {stock} units (consider reducing orders)",
            })
    return alerts


def alert_key(alert: Dict[str, Any]) -> str:
    return f"{alert['type']}:{alert['product_id']}"


class AlertService:
    """Stores inventory alerts as notifications."""

    def __init__(self, db: Session):
        self.db = db

    def current_alerts(self) -> List[Dict[str, Any]]:
        return compute_alerts(self.db.query(Product).order_by(Product.name).all())

    def scan(self) -> Dict[str, int]:
        """Upsert a notification per active alert and drop cleared ones."""
        alerts = self.current_alerts()
        active = {alert_key(a): a for a in alerts}

        existing = {
            n.key: n
            for n in self.db.query(Notification).filter(Notification.category == "inventory").all()
            if n.key and n.key.startswith(ALERT_KEY_PREFIXES)
        }

        created = updated = cleared = 0
        try:
            for key, alert in active.items():
                title = f"{alert['type'].replace('_', ' ').title()}: {alert['product_name']}"
                notification = existing.get(key)
                if notification is None:
                    self.db.add(Notification(
                        key=key,
                        title=title,
                        message=alert["message"],
                        type=SEVERITY_TYPES[alert["severity"]],
                        category="inventory",
                        priority=alert["severity"],
                        read=False,
                    ))
                    created += 1
                elif notification.message != alert["message"] or notification.priority != alert["severity"]:
                    notification.title = title
                    notification.message = alert["message"]
                    notification.type = SEVERITY_TYPES[alert["severity"]]
                    notification.priority = alert["severity"]
                    notification.read = False
                    updated += 1
            for key, notification in existing.items():
                if key not in active:
                    self.db.delete(notification)
                    cleared += 1
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Inventory alert scan failed")
            raise

        if created or updated or cleared:
            logger.info("Alert scan: %d new, %d updated, %d cleared", created, updated, cleared)
        return {"active": len(active), "created": created, "updated": updated, "cleared": cleared}


def run_alert_scan(db: Optional[Session] = None) -> Dict[str, int]:
    """Run one scan, opening a session when none is given (background task)."""
    own_session = db is None
    if own_session:
        db = SessionLocal()
    try:
        return AlertService(db).scan()
    finally:
        if own_session:
            db.close()
