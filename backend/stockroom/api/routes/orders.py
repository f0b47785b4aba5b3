"""Customer order routes, including preparation and fulfilment."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, status

from stockroom.core.exceptions import StockroomError, http_error
from stockroom.core.rate_limit import limiter
from stockroom.db.session import DbSession
from stockroom.models.order import Order, OrderStatus
from stockroom.schemas.order import (
    CompleteOrderRequest,
    OrderCreate,
    OrderResponse,
    OrderStatusUpdate,
    PrepareItemRequest,
)
from stockroom.schemas.pagination import paginate_query
from stockroom.services.order_service import OrderService
from stockroom.services.preparation_service import PreparationService

router = APIRouter()


@router.get("/")
@limiter.limit("60/minute")
def list_orders(
    request: Request,
    db: DbSession,
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    customer_id: Optional[int] = Query(None),
    has_backorders: Optional[bool] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
):
    """List orders, newest first."""
    query = db.query(Order)
    if status_filter is not None:
        query = query.filter(Order.status == status_filter.value)
    if customer_id is not None:
        query = query.filter(Order.customer_id == customer_id)
    if has_backorders is not None:
        query = query.filter(Order.has_backorders.is_(has_backorders))

    query = query.order_by(Order.created_at.desc(), Order.id.desc())
    items, total = paginate_query(query, skip, limit)
    return {
        "items": [OrderResponse.model_validate(o) for o in items],
        "total": total,
        "skip": skip,
        "limit": limit,
        "has_more": (skip + len(items)) < total,
    }


@router.post("/", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_order(request: Request, db: DbSession, data: OrderCreate):
    """Create an order. Line prices default to the products' selling prices."""
    order = OrderService(db).create_order(data)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer or product not found")
    return order


@router.get("/{order_id}", response_model=OrderResponse)
@limiter.limit("60/minute")
def get_order(request: Request, order_id: int, db: DbSession):
    """Get an order with its lines."""
    order = db.get(Order, order_id)
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order


@router.put("/{order_id}/status", response_model=OrderResponse)
@limiter.limit("30/minute")
def update_order_status(request: Request, order_id: int, db: DbSession, data: OrderStatusUpdate):
    """Move an order to another status. Cancelling releases its reservations."""
    try:
        order = OrderService(db).change_status(
            order_id, data.status, tracking_number=data.tracking_number, expected_version=data.version,
        )
    except StockroomError as e:
        raise http_error(e)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order


@router.post("/{order_id}/items/{item_index}/prepare", response_model=OrderResponse)
@limiter.limit("60/minute")
def prepare_order_item(request: Request, order_id: int, item_index: int, db: DbSession, data: PrepareItemRequest):
    """Pick and reserve stock for one order line; any shortfall is backordered."""
    try:
        order = PreparationService(db).prepare_item(
            order_id,
            item_index,
            data.quantity,
            prepared_by=data.prepared_by,
            notes=data.notes,
            expected_version=data.version,
        )
    except StockroomError as e:
        raise http_error(e)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order, line or product not found")
    return order


@router.post("/{order_id}/complete", response_model=OrderResponse)
@limiter.limit("30/minute")
def complete_order(request: Request, order_id: int, db: DbSession, data: Optional[CompleteOrderRequest] = None):
    """Ship the prepared quantities of an order."""
    data = data or CompleteOrderRequest()
    try:
        order = PreparationService(db).complete_order_preparation(
            order_id,
            allow_partial=data.allow_partial,
            completed_by=data.completed_by,
            expected_version=data.version,
        )
    except StockroomError as e:
        raise http_error(e)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order
