"""SQLAlchemy models."""

from stockroom.models.product import Product
from stockroom.models.stock import StockMovement, MovementType
from stockroom.models.customer import Customer
from stockroom.models.supplier import Supplier, SupplierPrice
from stockroom.models.order import Order, OrderItem, OrderStatus, Priority, PreparationStatus
from stockroom.models.backorder import BackorderItem, BackorderStatus
from stockroom.models.purchase_order import PurchaseOrder, PurchaseOrderItem, PurchaseOrderStatus
from stockroom.models.automation import AutomationRule, AutomationRuleType
from stockroom.models.operations import Notification, AuditLogEntry

__all__ = [
    "Product",
    "StockMovement",
    "MovementType",
    "Customer",
    "Supplier",
    "SupplierPrice",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Priority",
    "PreparationStatus",
    "BackorderItem",
    "BackorderStatus",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "PurchaseOrderStatus",
    "AutomationRule",
    "AutomationRuleType",
    "Notification",
    "AuditLogEntry",
]
