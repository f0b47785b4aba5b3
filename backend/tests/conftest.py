"""Pytest configuration and fixtures."""

import os

# Settings are read at import time; keep the app on an in-memory database
# with the background scan off before anything from stockroom is imported.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ALERT_SCAN_ENABLED", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from decimal import Decimal
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from stockroom.db.base import Base
from stockroom.db.session import get_db, set_sqlite_pragma
from stockroom.main import app
# Import all models to ensure they're registered with Base.metadata
from stockroom.models import *
from stockroom.models.customer import Customer
from stockroom.models.product import Product
from stockroom.models.supplier import Supplier, SupplierPrice
from stockroom.schemas.order import OrderCreate, OrderItemCreate
from stockroom.services.order_service import OrderService
from stockroom.services.stock_service import StockService

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", set_sqlite_pragma)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # Disable the rate limiter during tests to avoid flaky failures
    from stockroom.core.rate_limit import limiter
    limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_product(db_session: Session):
    """Factory creating a product with opening stock booked as a movement."""
    counter = {"n": 0}

    def _make(name=None, stock=0, minimum_stock=0, maximum_stock=0,
              cost_price="5.00", selling_price="10.00", **fields) -> Product:
        counter["n"] += 1
        fields.setdefault("sku", f"SKU-{counter['n']:04d}")
        return StockService(db_session).create_product(
            {
                "name": name or f"Product {counter['n']}",
                "minimum_stock": minimum_stock,
                "maximum_stock": maximum_stock,
                "cost_price": Decimal(cost_price),
                "selling_price": Decimal(selling_price),
                **fields,
            },
            opening_stock=stock,
        )

    return _make


@pytest.fixture
def test_customer(db_session: Session) -> Customer:
    """Create a test customer."""
    customer = Customer(
        name="Acme Hardware",
        email="buyer@acme.example.com",
        company="Acme Hardware (Pty) Ltd",
        price_level="standard",
    )
    db_session.add(customer)
    db_session.commit()
    db_session.refresh(customer)
    return customer


@pytest.fixture
def test_supplier(db_session: Session) -> Supplier:
    """Create a test supplier."""
    supplier = Supplier(
        name="Test Supplier",
        phone="+27115550100",
        email="supplier@example.com",
    )
    db_session.add(supplier)
    db_session.commit()
    db_session.refresh(supplier)
    return supplier


@pytest.fixture
def add_price(db_session: Session):
    """Factory recording a supplier price quote."""
    def _add(supplier: Supplier, product: Product, price: str) -> SupplierPrice:
        quote = SupplierPrice(supplier_id=supplier.id, product_id=product.id, price=Decimal(price))
        db_session.add(quote)
        db_session.commit()
        db_session.refresh(quote)
        return quote

    return _add


@pytest.fixture
def make_order(db_session: Session, test_customer: Customer):
    """Factory creating an order for the test customer.

    ``lines`` is a list of (product, quantity) pairs.
    """
    def _make(lines, customer: Customer = None, **fields):
        data = OrderCreate(
            customer_id=(customer or test_customer).id,
            items=[OrderItemCreate(product_id=p.id, quantity=q) for p, q in lines],
            **fields,
        )
        return OrderService(db_session).create_order(data)

    return _make
