"""Customer routes."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, status

from stockroom.core.rate_limit import limiter
from stockroom.db.session import DbSession
from stockroom.models.customer import Customer
from stockroom.models.order import Order
from stockroom.schemas.customer import CustomerCreate, CustomerResponse, CustomerUpdate
from stockroom.schemas.order import OrderResponse
from stockroom.services.audit_service import log_action

router = APIRouter()


@router.get("/", response_model=list[CustomerResponse])
@limiter.limit("60/minute")
def list_customers(
    request: Request,
    db: DbSession,
    search: Optional[str] = Query(None, description="Search by name, company or email"),
    limit: int = Query(500, ge=1, le=500),
):
    """List customers."""
    query = db.query(Customer)
    if search:
        term = f"%{search}%"
        query = query.filter(
            Customer.name.ilike(term) | Customer.company.ilike(term) | Customer.email.ilike(term)
        )
    return query.order_by(Customer.name).limit(limit).all()


@router.post("/", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_customer(request: Request, db: DbSession, data: CustomerCreate):
    """Create a customer."""
    customer = Customer(**data.model_dump())
    db.add(customer)
    db.flush()
    log_action("create", "customer", customer.id, details={"name": customer.name}, db=db)
    db.commit()
    db.refresh(customer)
    return customer


@router.get("/{customer_id}", response_model=CustomerResponse)
@limiter.limit("60/minute")
def get_customer(request: Request, customer_id: int, db: DbSession):
    """Get a customer by ID."""
    customer = db.get(Customer, customer_id)
    if not customer:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found")
    return customer


@router.put("/{customer_id}", response_model=CustomerResponse)
@limiter.limit("30/minute")
def update_customer(request: Request, customer_id: int, db: DbSession, data: CustomerUpdate):
    """Update a customer."""
    customer = db.get(Customer, customer_id)
    if not customer:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found")
    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(customer, field, value)
    log_action("update", "customer", customer.id, details={"fields": sorted(update_data)}, db=db)
    db.commit()
    db.refresh(customer)
    return customer


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_customer(request: Request, customer_id: int, db: DbSession):
    """Delete a customer without orders."""
    customer = db.get(Customer, customer_id)
    if not customer:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found")
    if db.query(Order).filter(Order.customer_id == customer_id).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Customer has orders")
    db.delete(customer)
    log_action("delete", "customer", customer_id, details={"name": customer.name}, db=db)
    db.commit()


@router.get("/{customer_id}/orders", response_model=list[OrderResponse])
@limiter.limit("60/minute")
def list_customer_orders(request: Request, customer_id: int, db: DbSession):
    """Orders placed by a customer, newest first."""
    if not db.get(Customer, customer_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found")
    return (
        db.query(Order)
        .filter(Order.customer_id == customer_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
