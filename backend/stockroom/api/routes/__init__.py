"""API routes."""

from fastapi import APIRouter

from stockroom.api.routes import (
    audit_logs,
    automation,
    backorders,
    customers,
    data_transfer,
    notifications,
    orders,
    products,
    purchase_orders,
    reports,
    stock,
    suppliers,
)

api_router = APIRouter()

# Catalogue and stock
api_router.include_router(products.router, prefix="/products", tags=["products"])
api_router.include_router(stock.router, prefix="/stock", tags=["stock"])
api_router.include_router(suppliers.router, prefix="/suppliers", tags=["suppliers"])
api_router.include_router(customers.router, prefix="/customers", tags=["customers"])

# Orders, preparation and backorders
api_router.include_router(orders.router, prefix="/orders", tags=["orders", "preparation"])
api_router.include_router(backorders.router, prefix="/backorders", tags=["backorders"])

# Procurement and automation
api_router.include_router(purchase_orders.router, prefix="/purchase-orders", tags=["purchase-orders"])
api_router.include_router(automation.router, prefix="/automation", tags=["automation"])

# Reporting, backups and operations
api_router.include_router(reports.router, prefix="/reports", tags=["reports", "analytics"])
api_router.include_router(data_transfer.router, prefix="/data", tags=["data"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(audit_logs.router, prefix="/audit-logs", tags=["audit"])
