"""ORM-level guards for stock quantities, prices and rule payloads.

These run on attribute assignment through ``@validates`` hooks, so a bad
value is rejected whether it comes from a route, a service or an import.
"""

from decimal import Decimal, InvalidOperation


def _as_decimal(key: str, value) -> Decimal:
    try:
        return value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"{key} must be numeric, got {value!r}")


def non_negative(key: str, value):
    """Reject negative quantities and prices. None passes through."""
    if value is None:
        return value
    if _as_decimal(key, value) < 0:
        raise ValueError(f"{key} cannot be negative, got {value}")
    return value


def percentage(key: str, value):
    """Reject values outside 0..100 (progress, tax and discount rates)."""
    if value is None:
        return value
    if not Decimal(0) <= _as_decimal(key, value) <= Decimal(100):
        raise ValueError(f"{key} must be between 0 and 100, got {value}")
    return value


def validate_dict(key: str, value):
    """Automation conditions/actions must be a JSON object with string keys."""
    if value is None:
        return value
    if not isinstance(value, dict):
        raise ValueError(f"{key} must be a dict, got {type(value).__name__}")
    bad = [k for k in value if not isinstance(k, str)]
    if bad:
        raise ValueError(f"{key} keys must be strings, got {bad[0]!r}")
    return value
