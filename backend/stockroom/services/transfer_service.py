"""Data export and import.

The JSON backup holds products, orders (with their lines), customers and
suppliers. Importing a backup replaces those four collections wholesale in
one transaction; nothing is merged.
"""

import csv
import io
import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import DateTime, Numeric
from sqlalchemy.orm import Session, selectinload

from stockroom.core.config import settings
from stockroom.core.exceptions import InvalidImportError
from stockroom.models.backorder import BackorderItem
from stockroom.models.customer import Customer
from stockroom.models.order import Order, OrderItem
from stockroom.models.product import Product
from stockroom.models.purchase_order import PurchaseOrder, PurchaseOrderItem
from stockroom.models.stock import StockMovement
from stockroom.models.supplier import Supplier, SupplierPrice
from stockroom.services.audit_service import log_action

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("products", "orders", "customers", "suppliers")
EXPORT_ENTITIES = REQUIRED_KEYS


def _to_json_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def serialize_row(obj: Any) -> Dict[str, Any]:
    """Column values of an ORM row as JSON-ready data."""
    return {
        column.key: _to_json_value(getattr(obj, column.key))
        for column in obj.__table__.columns
    }


def _from_json_value(column, value: Any) -> Any:
    if value is None:
        return None
    if isinstance(column.type, DateTime) and isinstance(value, str):
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(column.type, Numeric) and not isinstance(value, Decimal):
        return Decimal(str(value))
    return value


def deserialize_row(model, row: Dict[str, Any]) -> Dict[str, Any]:
    """Constructor kwargs for *model* from an exported row; unknown keys are ignored."""
    if not isinstance(row, dict):
        raise ValueError(f"{model.__tablename__} rows must be objects")
    return {
        column.key: _from_json_value(column, row[column.key])
        for column in model.__table__.columns
        if column.key in row
    }


def _csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list, bool)):
        return json.dumps(value)
    return str(value)


def rows_to_csv(rows: List[Dict[str, Any]]) -> str:
    """
    Render *rows* as CSV.

    The header comes from the first row's keys; every field is quoted, nested
    values are JSON-encoded and None becomes an empty string.
    """
    if not rows:
        return ""
    headers = list(rows[0].keys())
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL)
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_csv_value(row.get(h)) for h in headers])
    return buffer.getvalue()


class TransferService:
    """Builds backups and restores them."""

    def __init__(self, db: Session):
        self.db = db

    def export_products(self) -> List[Dict[str, Any]]:
        return [serialize_row(p) for p in self.db.query(Product).order_by(Product.id).all()]

    def export_customers(self) -> List[Dict[str, Any]]:
        return [serialize_row(c) for c in self.db.query(Customer).order_by(Customer.id).all()]

    def export_suppliers(self) -> List[Dict[str, Any]]:
        return [serialize_row(s) for s in self.db.query(Supplier).order_by(Supplier.id).all()]

    def export_orders(self) -> List[Dict[str, Any]]:
        orders = self.db.query(Order).options(selectinload(Order.items)).order_by(Order.id).all()
        exported = []
        for order in orders:
            row = serialize_row(order)
            row["items"] = [serialize_row(item) for item in sorted(order.items, key=lambda i: (i.position, i.id))]
            exported.append(row)
        return exported

    def export_entity(self, entity: str) -> List[Dict[str, Any]]:
        exporters = {
            "products": self.export_products,
            "orders": self.export_orders,
            "customers": self.export_customers,
            "suppliers": self.export_suppliers,
        }
        if entity not in exporters:
            raise ValueError(f"Unknown export entity '{entity}'")
        return exporters[entity]()

    def export_all(self) -> Dict[str, Any]:
        """Full JSON backup."""
        return {
            "products": self.export_products(),
            "orders": self.export_orders(),
            "customers": self.export_customers(),
            "suppliers": self.export_suppliers(),
            "exportDate": datetime.now(timezone.utc).isoformat(),
            "version": settings.export_version,
        }

    def export_csv(self, entity: str) -> str:
        return rows_to_csv(self.export_entity(entity))

    def import_all(self, payload: Any, imported_by: Optional[str] = None) -> Dict[str, Any]:
        """
        Replace products, orders, customers and suppliers with *payload*.

        Data hanging off the replaced rows (order lines, backorders, stock
        movements, supplier prices, purchase orders) is not part of a backup
        and is deleted with them. The result carries the imported counts per
        collection and, under ``removed``, the deleted row count per table.

        Raises:
            InvalidImportError: a required collection is missing or not a list.
        """
        if not isinstance(payload, dict):
            raise InvalidImportError(list(REQUIRED_KEYS))
        missing = [key for key in REQUIRED_KEYS if not isinstance(payload.get(key), list)]
        if missing:
            raise InvalidImportError(missing)

        try:
            removed = {}
            for model in (
                BackorderItem, OrderItem, Order, PurchaseOrderItem, PurchaseOrder,
                StockMovement, SupplierPrice, Product, Customer, Supplier,
            ):
                removed[model.__tablename__] = self.db.query(model).delete(synchronize_session=False)
            self.db.flush()
            # Rows come back with their exported ids; drop stale instances first
            self.db.expunge_all()

            for row in payload["customers"]:
                self.db.add(Customer(**deserialize_row(Customer, row)))
            for row in payload["suppliers"]:
                self.db.add(Supplier(**deserialize_row(Supplier, row)))
            for row in payload["products"]:
                self.db.add(Product(**deserialize_row(Product, row)))
            self.db.flush()

            for row in payload["orders"]:
                order = Order(**deserialize_row(Order, row))
                for item_row in row.get("items") or []:
                    item_fields = deserialize_row(OrderItem, item_row)
                    item_fields.pop("order_id", None)
                    order.items.append(OrderItem(**item_fields))
                self.db.add(order)
            self.db.flush()

            counts = {key: len(payload[key]) for key in REQUIRED_KEYS}
            log_action("import", "backup", "", user_name=imported_by or "",
                       details={**counts, "removed": removed, "version": payload.get("version")}, db=self.db)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("Data import failed, nothing was changed")
            raise

        self.db.expire_all()
        for table, rows in removed.items():
            if rows:
                logger.warning("Import removed %d rows from %s", rows, table)
        logger.info("Imported backup: %s", counts)
        return {**counts, "removed": removed}
