"""Inventory and customer reports."""

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Query, Request
from sqlalchemy.orm import selectinload

from stockroom.core.rate_limit import limiter
from stockroom.db.session import DbSession
from stockroom.models.customer import Customer
from stockroom.models.order import Order, OrderStatus
from stockroom.models.product import Product
from stockroom.schemas.reports import ABCItem, CohortItem, DemandForecastItem, ProfitItem, XYZItem
from stockroom.services import analytics_service

router = APIRouter()


def _orders_since(db, days: int):
    """Non-cancelled orders created within the last *days* days, with lines."""
    since = datetime.now(timezone.utc) - timedelta(days=days)
    return (
        db.query(Order)
        .options(selectinload(Order.items))
        .filter(Order.status != OrderStatus.CANCELLED.value, Order.created_at >= since)
        .all()
    )


@router.get("/abc", response_model=list[ABCItem])
@limiter.limit("30/minute")
def abc_report(request: Request, db: DbSession, days: int = Query(365, ge=1, le=3650)):
    """ABC classification by revenue over the trailing window."""
    products = db.query(Product).order_by(Product.id).all()
    return analytics_service.abc_analysis(products, _orders_since(db, days))


@router.get("/xyz", response_model=list[XYZItem])
@limiter.limit("30/minute")
def xyz_report(request: Request, db: DbSession):
    """XYZ classification by demand variability over the last six months."""
    products = db.query(Product).order_by(Product.id).all()
    return analytics_service.xyz_analysis(products, _orders_since(db, 186))


@router.get("/forecast", response_model=list[DemandForecastItem])
@limiter.limit("30/minute")
def forecast_report(request: Request, db: DbSession):
    """Three-month demand forecast per product."""
    products = db.query(Product).order_by(Product.id).all()
    return analytics_service.demand_forecast(products, _orders_since(db, 366))


@router.get("/cohorts", response_model=list[CohortItem])
@limiter.limit("30/minute")
def cohort_report(request: Request, db: DbSession):
    """Customer cohorts and segments."""
    customers = db.query(Customer).order_by(Customer.id).all()
    orders = db.query(Order).filter(Order.status != OrderStatus.CANCELLED.value).all()
    return analytics_service.cohort_analysis(customers, orders)


@router.get("/profit", response_model=list[ProfitItem])
@limiter.limit("30/minute")
def profit_report(request: Request, db: DbSession):
    """Per-product profit against the cheapest supplier price."""
    products = db.query(Product).options(selectinload(Product.supplier_prices)).order_by(Product.id).all()
    return analytics_service.profit_analysis(products)
