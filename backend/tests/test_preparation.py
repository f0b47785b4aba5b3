"""Tests for order preparation, backorders and fulfilment."""

import pytest

from stockroom.core.exceptions import (
    InvalidOrderStateError,
    PreparationIncompleteError,
    VersionConflictError,
)
from stockroom.models.backorder import BackorderItem, BackorderStatus
from stockroom.models.order import OrderStatus, PreparationStatus
from stockroom.models.stock import MovementType, StockMovement
from stockroom.services.order_service import OrderService
from stockroom.services.preparation_service import (
    PreparationService,
    coerce_quantity,
    line_status,
    preparation_progress,
)
from stockroom.services.stock_service import StockService


def _movements(db, product, movement_type):
    return (
        db.query(StockMovement)
        .filter(StockMovement.product_id == product.id, StockMovement.type == movement_type.value)
        .order_by(StockMovement.id)
        .all()
    )


def _pending_backorders(db, order, product):
    return db.query(BackorderItem).filter(
        BackorderItem.order_id == order.id,
        BackorderItem.product_id == product.id,
        BackorderItem.status == BackorderStatus.PENDING.value,
    ).all()


# ============== Helpers ==============

class TestPreparationHelpers:
    """Pure helpers used by the preparation engine."""

    @pytest.mark.parametrize("value,expected", [
        (5, 5),
        ("7", 7),
        (-3, 0),
        ("abc", 0),
        (None, 0),
        (True, 0),
        (4.9, 4),
    ])
    def test_coerce_quantity(self, value, expected):
        assert coerce_quantity(value) == expected

    def test_line_status(self):
        assert line_status(10, 10, 0) == PreparationStatus.COMPLETE
        assert line_status(4, 10, 6) == PreparationStatus.PARTIAL
        assert line_status(0, 10, 10) == PreparationStatus.BACKORDER

    def test_progress_of_empty_order_is_zero(self):
        assert preparation_progress([]) == 0


# ============== prepare_item ==============

class TestPrepareItem:
    """PreparationService.prepare_item behaviour."""

    def test_partial_preparation_scenario(self, db_session, make_product, make_order):
        """Stock 100, ordered 150: 100 reserved, 50 backordered."""
        product = make_product(stock=100)
        order = make_order([(product, 150)])

        order = PreparationService(db_session).prepare_item(order.id, 0, 150, prepared_by="picker")

        item = order.items[0]
        assert item.prepared_quantity == 100
        assert item.backorder_quantity == 50
        assert item.preparation_status == PreparationStatus.PARTIAL.value
        assert item.available_stock == 100
        assert item.prepared_by == "picker"

        reserved = _movements(db_session, product, MovementType.RESERVED)
        assert len(reserved) == 1
        assert reserved[0].quantity == 100
        assert reserved[0].order_id == order.id

        backorders = _pending_backorders(db_session, order, product)
        assert len(backorders) == 1
        assert backorders[0].quantity == 50
        assert backorders[0].customer_id == order.customer_id

        assert product.stock == 100
        assert product.reserved_stock == 100
        assert product.available_stock == 0
        assert order.has_backorders is True
        assert order.status == OrderStatus.PREPARING.value
        assert order.preparation_progress == 0

    @pytest.mark.parametrize("stock,held_elsewhere,ordered,requested", [
        (100, 0, 150, 150),
        (100, 30, 50, 80),
        (100, 95, 20, 20),
        (10, 10, 5, 5),
        (40, 0, 25, 10),
        (0, 0, 3, 3),
    ])
    def test_never_prepares_more_than_available(
        self, db_session, make_product, make_order, stock, held_elsewhere, ordered, requested
    ):
        product = make_product(stock=stock)
        service = PreparationService(db_session)
        if held_elsewhere:
            other = make_order([(product, held_elsewhere)])
            service.prepare_item(other.id, 0, held_elsewhere)
        available_before = product.stock - product.reserved_stock

        order = make_order([(product, ordered)])
        order = service.prepare_item(order.id, 0, requested)
        item = order.items[0]

        assert item.prepared_quantity <= min(requested, ordered, available_before)
        assert item.prepared_quantity + item.backorder_quantity == item.quantity
        assert product.available_stock >= 0

    def test_full_preparation_marks_order_ready(self, db_session, make_product, make_order):
        product = make_product(stock=20)
        order = make_order([(product, 20)])

        order = PreparationService(db_session).prepare_item(order.id, 0, 20)

        assert order.items[0].preparation_status == PreparationStatus.COMPLETE.value
        assert order.preparation_progress == 100
        assert order.status == OrderStatus.READY.value
        assert order.has_backorders is False
        assert _pending_backorders(db_session, order, product) == []

    def test_progress_counts_complete_lines(self, db_session, make_product, make_order):
        first = make_product(stock=10)
        second = make_product(stock=10)
        order = make_order([(first, 5), (second, 5)])

        order = PreparationService(db_session).prepare_item(order.id, 0, 5)

        assert order.preparation_progress == 50
        assert order.status == OrderStatus.PREPARING.value

    def test_repeated_preparation_keeps_single_backorder(self, db_session, make_product, make_order):
        product = make_product(stock=100)
        order = make_order([(product, 150)])
        service = PreparationService(db_session)

        service.prepare_item(order.id, 0, 150)
        order = service.prepare_item(order.id, 0, 150)

        backorders = _pending_backorders(db_session, order, product)
        assert len(backorders) == 1
        assert backorders[0].quantity == 50
        # Second call re-targets the same reservation instead of stacking another
        assert len(_movements(db_session, product, MovementType.RESERVED)) == 1
        assert product.reserved_stock == 100

    def test_lowering_preparation_releases_reservation(self, db_session, make_product, make_order):
        product = make_product(stock=100)
        order = make_order([(product, 150)])
        service = PreparationService(db_session)

        service.prepare_item(order.id, 0, 100)
        order = service.prepare_item(order.id, 0, 40)

        item = order.items[0]
        assert item.prepared_quantity == 40
        assert item.backorder_quantity == 110
        released = _movements(db_session, product, MovementType.UNRESERVED)
        assert [m.quantity for m in released] == [60]
        assert product.reserved_stock == 40
        assert product.available_stock == 60
        assert _pending_backorders(db_session, order, product)[0].quantity == 110

    def test_restock_clears_backorder(self, db_session, make_product, make_order):
        product = make_product(stock=100)
        order = make_order([(product, 150)])
        service = PreparationService(db_session)

        service.prepare_item(order.id, 0, 150)
        StockService(db_session).record_movement(product.id, MovementType.IN, 60, "Delivery")
        order = service.prepare_item(order.id, 0, 150)

        assert order.items[0].prepared_quantity == 150
        assert order.items[0].backorder_quantity == 0
        assert order.status == OrderStatus.READY.value
        assert order.has_backorders is False
        assert _pending_backorders(db_session, order, product) == []
        cancelled = db_session.query(BackorderItem).filter(
            BackorderItem.order_id == order.id,
            BackorderItem.status == BackorderStatus.CANCELLED.value,
        ).count()
        assert cancelled == 1
        assert product.reserved_stock == 150
        assert product.available_stock == 10

    def test_lines_sharing_a_product_share_one_backorder(self, db_session, make_product, make_order):
        product = make_product(stock=5)
        order = make_order([(product, 10), (product, 10)])
        service = PreparationService(db_session)

        service.prepare_item(order.id, 0, 10)
        order = service.prepare_item(order.id, 1, 10)

        assert [(i.prepared_quantity, i.backorder_quantity) for i in order.items] == [(5, 5), (0, 10)]
        backorders = _pending_backorders(db_session, order, product)
        assert [b.quantity for b in backorders] == [15]
        assert product.reserved_stock == 5

    def test_completed_line_keeps_backorder_of_sibling_line(self, db_session, make_product, make_order):
        product = make_product(stock=5)
        order = make_order([(product, 5), (product, 10)])
        service = PreparationService(db_session)

        service.prepare_item(order.id, 1, 0)
        order = service.prepare_item(order.id, 0, 5)

        assert [(i.prepared_quantity, i.backorder_quantity) for i in order.items] == [(5, 0), (0, 10)]
        assert [b.quantity for b in _pending_backorders(db_session, order, product)] == [10]
        assert order.has_backorders is True

    def test_invalid_quantity_prepares_nothing(self, db_session, make_product, make_order):
        product = make_product(stock=10)
        order = make_order([(product, 4)])

        order = PreparationService(db_session).prepare_item(order.id, 0, "lots")

        item = order.items[0]
        assert item.prepared_quantity == 0
        assert item.backorder_quantity == 4
        assert item.preparation_status == PreparationStatus.BACKORDER.value
        assert _movements(db_session, product, MovementType.RESERVED) == []

    def test_unknown_order_or_line_returns_none(self, db_session, make_product, make_order):
        product = make_product(stock=10)
        order = make_order([(product, 4)])
        service = PreparationService(db_session)

        assert service.prepare_item(9999, 0, 1) is None
        assert service.prepare_item(order.id, 3, 1) is None
        assert service.prepare_item(order.id, -1, 1) is None
        assert product.reserved_stock == 0

    def test_stale_version_is_rejected(self, db_session, make_product, make_order):
        product = make_product(stock=10)
        order = make_order([(product, 4)])

        with pytest.raises(VersionConflictError):
            PreparationService(db_session).prepare_item(order.id, 0, 4, expected_version=order.version + 5)
        assert product.reserved_stock == 0

    def test_cancelled_order_cannot_be_prepared(self, db_session, make_product, make_order):
        product = make_product(stock=10)
        order = make_order([(product, 4)])
        OrderService(db_session).change_status(order.id, OrderStatus.CANCELLED)

        with pytest.raises(InvalidOrderStateError):
            PreparationService(db_session).prepare_item(order.id, 0, 4)

    def test_audit_entry_written(self, db_session, make_product, make_order):
        from stockroom.models.operations import AuditLogEntry

        product = make_product(stock=10)
        order = make_order([(product, 4)])
        PreparationService(db_session).prepare_item(order.id, 0, 4, prepared_by="picker")

        entry = db_session.query(AuditLogEntry).filter(AuditLogEntry.action == "prepare").one()
        assert entry.entity_id == str(order.id)
        assert entry.user_name == "picker"
        assert entry.details["prepared"] == 4


# ============== complete_order_preparation ==============

class TestCompleteOrderPreparation:
    """PreparationService.complete_order_preparation behaviour."""

    def test_ships_prepared_quantities(self, db_session, make_product, make_order):
        product = make_product(stock=30)
        order = make_order([(product, 12)])
        service = PreparationService(db_session)
        service.prepare_item(order.id, 0, 12)

        order = service.complete_order_preparation(order.id, completed_by="dispatch")

        assert order.status == OrderStatus.READY.value
        assert order.preparation_progress == 100
        assert order.fulfilled_at is not None
        assert product.stock == 18
        assert product.reserved_stock == 0
        assert product.available_stock == 18
        shipped = _movements(db_session, product, MovementType.OUT)
        assert [m.quantity for m in shipped] == [12]
        assert shipped[0].created_by == "dispatch"

    def test_incomplete_order_requires_allow_partial(self, db_session, make_product, make_order):
        product = make_product(stock=5)
        order = make_order([(product, 8)])
        service = PreparationService(db_session)
        service.prepare_item(order.id, 0, 8)

        with pytest.raises(PreparationIncompleteError):
            service.complete_order_preparation(order.id)
        assert product.stock == 5
        assert product.reserved_stock == 5

    def test_partial_completion_ships_what_was_prepared(self, db_session, make_product, make_order):
        ready = make_product(stock=10)
        short = make_product(stock=2)
        order = make_order([(ready, 4), (short, 6)])
        service = PreparationService(db_session)
        service.prepare_item(order.id, 0, 4)
        service.prepare_item(order.id, 1, 6)

        order = service.complete_order_preparation(order.id, allow_partial=True)

        assert order.preparation_progress == 50
        assert ready.stock == 6
        assert short.stock == 0
        assert short.reserved_stock == 0
        # The shortfall stays on backorder
        assert _pending_backorders(db_session, order, short)[0].quantity == 4

    def test_fulfilled_order_cannot_be_completed_twice(self, db_session, make_product, make_order):
        product = make_product(stock=10)
        order = make_order([(product, 3)])
        service = PreparationService(db_session)
        service.prepare_item(order.id, 0, 3)
        service.complete_order_preparation(order.id)

        with pytest.raises(InvalidOrderStateError):
            service.complete_order_preparation(order.id)
        with pytest.raises(InvalidOrderStateError):
            service.prepare_item(order.id, 0, 3)
        assert product.stock == 7

    def test_unknown_order_returns_none(self, db_session):
        assert PreparationService(db_session).complete_order_preparation(12345) is None
