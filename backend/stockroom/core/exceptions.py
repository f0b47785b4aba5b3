"""Domain exceptions raised by the inventory services.

Routes translate these into HTTP errors with ``http_error``; services never
raise HTTPException.
"""

from typing import Optional

from fastapi import HTTPException, status


class StockroomError(Exception):
    """Base class for inventory ledger errors."""


class InsufficientStockError(StockroomError):
    """Raised when a movement would take more than the available stock."""

    def __init__(self, product_name: str, product_id: int, available: int, needed: int):
        self.product_name = product_name
        self.product_id = product_id
        self.available = available
        self.needed = needed
        super().__init__(
            f"Insufficient stock for '{product_name}': need {needed}, have {available} available"
        )


class InvalidOrderStateError(StockroomError):
    """Raised when an order is not in a state that allows the operation."""

    def __init__(self, order_number: str, status: str, operation: str):
        self.order_number = order_number
        self.status = status
        self.operation = operation
        super().__init__(f"Cannot {operation} order {order_number} in status '{status}'")


class PreparationIncompleteError(StockroomError):
    """Raised when completing an order whose lines are not all prepared."""

    def __init__(self, order_number: str, incomplete_positions: list[int]):
        self.order_number = order_number
        self.incomplete_positions = incomplete_positions
        super().__init__(
            f"Order {order_number} has unprepared lines at positions {incomplete_positions}"
        )


class VersionConflictError(StockroomError):
    """Raised when an optimistic-lock version check fails."""

    def __init__(self, entity: str, expected: Optional[int], current: int):
        self.entity = entity
        self.expected = expected
        self.current = current
        super().__init__(f"Version conflict on {entity}: expected {expected}, current {current}")


class InvalidImportError(StockroomError):
    """Raised when an import payload is missing required collections."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Invalid backup file format: missing {', '.join(missing)}")


def http_error(exc: Exception) -> HTTPException:
    """Translate a service exception into the HTTP error routes raise."""
    if isinstance(exc, VersionConflictError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, (InvalidOrderStateError, PreparationIncompleteError)):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, InvalidImportError):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(exc))
