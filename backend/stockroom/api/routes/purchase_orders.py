"""Purchase order routes."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, status

from stockroom.core.rate_limit import limiter
from stockroom.db.session import DbSession
from stockroom.models.purchase_order import PurchaseOrder
from stockroom.schemas.purchase_order import PurchaseOrderResponse
from stockroom.services.automation_service import AutomationService

router = APIRouter()


@router.get("/", response_model=list[PurchaseOrderResponse])
@limiter.limit("60/minute")
def list_purchase_orders(
    request: Request,
    db: DbSession,
    supplier_id: Optional[int] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    auto_generated: Optional[bool] = Query(None),
    limit: int = Query(200, ge=1, le=500),
):
    """List purchase orders, newest first."""
    query = db.query(PurchaseOrder)
    if supplier_id is not None:
        query = query.filter(PurchaseOrder.supplier_id == supplier_id)
    if status_filter:
        query = query.filter(PurchaseOrder.status == status_filter)
    if auto_generated is not None:
        query = query.filter(PurchaseOrder.auto_generated.is_(auto_generated))
    return query.order_by(PurchaseOrder.id.desc()).limit(limit).all()


@router.get("/{po_id}", response_model=PurchaseOrderResponse)
@limiter.limit("60/minute")
def get_purchase_order(request: Request, po_id: int, db: DbSession):
    """Get a purchase order by ID."""
    po = db.get(PurchaseOrder, po_id)
    if not po:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Purchase order not found")
    return po


@router.post("/auto-generate", response_model=list[PurchaseOrderResponse], status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
def auto_generate_purchase_orders(request: Request, db: DbSession):
    """Draft one purchase order per supplier for every low-stock product."""
    return AutomationService(db).auto_generate_purchase_orders()
