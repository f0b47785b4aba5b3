"""Stock movement and alert routes."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, status

from stockroom.core.exceptions import StockroomError, http_error
from stockroom.core.rate_limit import limiter
from stockroom.db.session import DbSession
from stockroom.models.stock import MovementType, StockMovement
from stockroom.schemas.stock import InventoryAlert, StockMovementCreate, StockMovementResponse
from stockroom.services.alert_service import AlertService
from stockroom.services.stock_service import StockService

router = APIRouter()


@router.get("/movements", response_model=list[StockMovementResponse])
@limiter.limit("60/minute")
def list_movements(
    request: Request,
    db: DbSession,
    product_id: Optional[int] = Query(None),
    movement_type: Optional[MovementType] = Query(None, alias="type"),
    order_id: Optional[int] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    """List stock movements, newest first."""
    query = db.query(StockMovement)
    if product_id is not None:
        query = query.filter(StockMovement.product_id == product_id)
    if movement_type is not None:
        query = query.filter(StockMovement.type == movement_type.value)
    if order_id is not None:
        query = query.filter(StockMovement.order_id == order_id)
    return (
        query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


@router.post("/movements", response_model=StockMovementResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def record_movement(request: Request, db: DbSession, data: StockMovementCreate):
    """Record goods in, goods out or a stock adjustment."""
    try:
        movement = StockService(db).record_movement(
            product_id=data.product_id,
            movement_type=MovementType(data.type),
            quantity=data.quantity,
            reason=data.reason,
            reference=data.reference,
            created_by=data.created_by,
            location=data.location,
            batch_number=data.batch_number,
            expected_version=data.version,
        )
    except (StockroomError, ValueError) as e:
        raise http_error(e)
    if movement is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return movement


@router.get("/alerts", response_model=list[InventoryAlert])
@limiter.limit("60/minute")
def list_alerts(request: Request, db: DbSession, severity: Optional[str] = Query(None)):
    """Current low, out-of and over-stock alerts."""
    alerts = AlertService(db).current_alerts()
    if severity:
        alerts = [a for a in alerts if a["severity"] == severity]
    return alerts


@router.post("/alerts/scan")
@limiter.limit("10/minute")
def scan_alerts(request: Request, db: DbSession):
    """Refresh inventory notifications from current stock levels."""
    return AlertService(db).scan()
