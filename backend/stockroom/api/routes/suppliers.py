"""Supplier and supplier price routes."""

from fastapi import APIRouter, HTTPException, Request, status

from stockroom.core.rate_limit import limiter
from stockroom.db.session import DbSession
from stockroom.models.product import Product
from stockroom.models.supplier import Supplier, SupplierPrice
from stockroom.schemas.supplier import (
    SupplierCreate,
    SupplierPriceCreate,
    SupplierPriceResponse,
    SupplierResponse,
    SupplierUpdate,
)
from stockroom.services.audit_service import log_action

router = APIRouter()


@router.get("/", response_model=list[SupplierResponse])
@limiter.limit("60/minute")
def list_suppliers(request: Request, db: DbSession):
    """List all suppliers."""
    return db.query(Supplier).order_by(Supplier.name).limit(500).all()


@router.post("/", response_model=SupplierResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_supplier(request: Request, db: DbSession, data: SupplierCreate):
    """Create a supplier."""
    supplier = Supplier(**data.model_dump())
    db.add(supplier)
    db.flush()
    log_action("create", "supplier", supplier.id, details={"name": supplier.name}, db=db)
    db.commit()
    db.refresh(supplier)
    return supplier


@router.get("/{supplier_id}", response_model=SupplierResponse)
@limiter.limit("60/minute")
def get_supplier(request: Request, supplier_id: int, db: DbSession):
    """Get a supplier by ID."""
    supplier = db.get(Supplier, supplier_id)
    if not supplier:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Supplier not found")
    return supplier


@router.put("/{supplier_id}", response_model=SupplierResponse)
@limiter.limit("30/minute")
def update_supplier(request: Request, supplier_id: int, db: DbSession, data: SupplierUpdate):
    """Update a supplier."""
    supplier = db.get(Supplier, supplier_id)
    if not supplier:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Supplier not found")
    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(supplier, field, value)
    log_action("update", "supplier", supplier.id, details={"fields": sorted(update_data)}, db=db)
    db.commit()
    db.refresh(supplier)
    return supplier


@router.delete("/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_supplier(request: Request, supplier_id: int, db: DbSession):
    """Delete a supplier together with its price quotes."""
    supplier = db.get(Supplier, supplier_id)
    if not supplier:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Supplier not found")
    db.delete(supplier)
    log_action("delete", "supplier", supplier_id, details={"name": supplier.name}, db=db)
    db.commit()


# ==================== PRICES ====================

@router.get("/{supplier_id}/prices", response_model=list[SupplierPriceResponse])
@limiter.limit("60/minute")
def list_supplier_prices(request: Request, supplier_id: int, db: DbSession):
    """Price quotes of a supplier."""
    if not db.get(Supplier, supplier_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Supplier not found")
    return (
        db.query(SupplierPrice)
        .filter(SupplierPrice.supplier_id == supplier_id)
        .order_by(SupplierPrice.product_id, SupplierPrice.price)
        .all()
    )


@router.post("/{supplier_id}/prices", response_model=SupplierPriceResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def add_supplier_price(request: Request, supplier_id: int, db: DbSession, data: SupplierPriceCreate):
    """Record a supplier's price for a product."""
    if not db.get(Supplier, supplier_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Supplier not found")
    if not db.get(Product, data.product_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    price = SupplierPrice(supplier_id=supplier_id, **data.model_dump())
    db.add(price)
    db.flush()
    log_action("create", "supplier_price", price.id,
               details={"supplier_id": supplier_id, "product_id": data.product_id, "price": str(data.price)}, db=db)
    db.commit()
    db.refresh(price)
    return price
