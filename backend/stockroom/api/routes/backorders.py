"""Backorder routes."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, status

from stockroom.core.rate_limit import limiter
from stockroom.db.session import DbSession
from stockroom.models.backorder import BackorderStatus
from stockroom.schemas.backorder import BackorderResponse, BackorderStatusUpdate, CustomerBackorderSummary
from stockroom.services.backorder_service import BackorderService

router = APIRouter()


@router.get("/", response_model=list[BackorderResponse])
@limiter.limit("60/minute")
def list_backorders(
    request: Request,
    db: DbSession,
    customer_id: Optional[int] = Query(None),
    product_id: Optional[int] = Query(None),
    status_filter: Optional[BackorderStatus] = Query(None, alias="status"),
    limit: int = Query(200, ge=1, le=500),
):
    """List backorders, optionally filtered by customer, product or status."""
    query = BackorderService(db).list_backorders(
        customer_id=customer_id,
        product_id=product_id,
        status=status_filter.value if status_filter else None,
    )
    return query.limit(limit).all()


@router.get("/report", response_model=list[CustomerBackorderSummary])
@limiter.limit("30/minute")
def backorder_report(request: Request, db: DbSession):
    """Pending backorders grouped per customer."""
    return BackorderService(db).customer_report()


@router.put("/{backorder_id}", response_model=BackorderResponse)
@limiter.limit("30/minute")
def update_backorder(request: Request, backorder_id: int, db: DbSession, data: BackorderStatusUpdate):
    """Change a backorder's status, expected date or notes."""
    backorder = BackorderService(db).update_status(backorder_id, data)
    if backorder is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Backorder not found")
    return backorder
