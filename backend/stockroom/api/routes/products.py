"""Product routes."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request, status

from stockroom.core.exceptions import StockroomError, http_error
from stockroom.core.rate_limit import limiter
from stockroom.db.session import DbSession
from stockroom.models.order import OrderItem
from stockroom.models.product import Product
from stockroom.models.stock import StockMovement
from stockroom.schemas.pagination import paginate_query
from stockroom.schemas.product import ProductCreate, ProductResponse, ProductUpdate
from stockroom.schemas.stock import StockMovementResponse
from stockroom.services.audit_service import log_action
from stockroom.services.stock_service import StockService

router = APIRouter()


@router.get("/")
@limiter.limit("60/minute")
def list_products(
    request: Request,
    db: DbSession,
    category: Optional[str] = Query(None, description="Filter by category"),
    search: Optional[str] = Query(None, description="Search by name, SKU or barcode"),
    low_stock: bool = Query(False, description="Only products at or below minimum stock"),
    skip: int = Query(0, ge=0, description="Number of items to skip"),
    limit: int = Query(50, ge=1, le=500, description="Maximum items to return"),
):
    """List products with optional filters and pagination."""
    query = db.query(Product)

    if category:
        query = query.filter(Product.category == category)
    if search:
        search_term = f"%{search}%"
        query = query.filter(
            (Product.name.ilike(search_term))
            | (Product.sku.ilike(search_term))
            | (Product.barcode.ilike(search_term))
        )
    if low_stock:
        query = query.filter(Product.stock <= Product.minimum_stock)

    query = query.order_by(Product.name)
    items, total = paginate_query(query, skip, limit)

    return {
        "items": [ProductResponse.model_validate(p) for p in items],
        "total": total,
        "skip": skip,
        "limit": limit,
        "has_more": (skip + len(items)) < total,
    }


@router.post("/", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_product(request: Request, db: DbSession, data: ProductCreate):
    """Create a product. Opening stock is booked as a goods-in movement."""
    if data.sku and db.query(Product).filter(Product.sku == data.sku).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"SKU '{data.sku}' already exists")
    fields = data.model_dump(exclude={"stock"})
    return StockService(db).create_product(fields, opening_stock=data.stock)


@router.get("/{product_id}", response_model=ProductResponse)
@limiter.limit("60/minute")
def get_product(request: Request, product_id: int, db: DbSession):
    """Get a product by ID."""
    product = db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


@router.put("/{product_id}", response_model=ProductResponse)
@limiter.limit("30/minute")
def update_product(request: Request, product_id: int, db: DbSession, data: ProductUpdate):
    """Update catalogue fields of a product. Stock changes go through movements."""
    product = db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")

    update_data = data.model_dump(exclude_unset=True)
    expected_version = update_data.pop("version", None)
    try:
        product.check_version(expected_version)
    except StockroomError as e:
        raise http_error(e)

    if update_data.get("sku") and update_data["sku"] != product.sku:
        if db.query(Product).filter(Product.sku == update_data["sku"]).first():
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"SKU '{update_data['sku']}' already exists")

    for field, value in update_data.items():
        setattr(product, field, value)
    product.increment_version()
    log_action("update", "product", product.id, details={"fields": sorted(update_data)}, db=db)
    db.commit()
    db.refresh(product)
    return product


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_product(request: Request, product_id: int, db: DbSession):
    """Delete a product and its movement history. Products on orders cannot be deleted."""
    product = db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    if product.reserved_stock:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Product has {product.reserved_stock} units reserved for orders",
        )
    if db.query(OrderItem).filter(OrderItem.product_id == product_id).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Product is referenced by orders")

    db.delete(product)
    log_action("delete", "product", product_id, details={"name": product.name}, db=db)
    db.commit()


@router.get("/{product_id}/movements", response_model=list[StockMovementResponse])
@limiter.limit("60/minute")
def list_product_movements(
    request: Request,
    product_id: int,
    db: DbSession,
    limit: int = Query(100, ge=1, le=500),
):
    """Movement history of a product, newest first."""
    if not db.get(Product, product_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return (
        db.query(StockMovement)
        .filter(StockMovement.product_id == product_id)
        .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .limit(limit)
        .all()
    )
