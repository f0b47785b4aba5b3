"""Inventory analytics: ABC, XYZ, demand forecast, customer cohorts, profit.

All functions here are pure: they take already-loaded products, orders and
customers (ORM rows or any objects with the same attributes) and never touch
the database. Callers decide which orders to feed in.
"""

import math
import statistics
from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

# ABC bands on cumulative revenue share (percent)
ABC_A_THRESHOLD = Decimal("80")
ABC_B_THRESHOLD = Decimal("95")

# XYZ bands on coefficient of variation
XYZ_X_THRESHOLD = 0.5
XYZ_Y_THRESHOLD = 1.0
XYZ_MONTHS = 6

FORECAST_HISTORY_MONTHS = 12
FORECAST_HORIZON = 3

# Cohort segmentation
CHAMPION_MAX_DAYS = 30
CHAMPION_MIN_ORDERS = 3
LOYAL_MAX_DAYS = 60
LOYAL_MIN_VALUE = 1000
POTENTIAL_MAX_DAYS = 90
ATTENTION_MAX_DAYS = 180


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves rounded up."""
    return int(math.floor(value + 0.5))


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def month_keys(count: int, now: Optional[datetime] = None) -> List[Tuple[int, int]]:
    """(year, month) pairs for the trailing *count* calendar months, oldest first."""
    now = as_utc(now or datetime.now(timezone.utc))
    year, month = now.year, now.month
    keys = []
    for _ in range(count):
        keys.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    keys.reverse()
    return keys


def monthly_demand(orders: Iterable[Any], months: int, now: Optional[datetime] = None) -> Dict[int, List[float]]:
    """Ordered quantity per product per month over the trailing *months*."""
    keys = month_keys(months, now)
    index = {key: i for i, key in enumerate(keys)}
    demand: Dict[int, List[float]] = defaultdict(lambda: [0.0] * months)
    for order in orders:
        created = as_utc(order.created_at)
        slot = index.get((created.year, created.month))
        if slot is None:
            continue
        for item in order.items:
            demand[item.product_id][slot] += item.quantity
    return demand


def abc_analysis(products: Sequence[Any], orders: Iterable[Any]) -> List[Dict[str, Any]]:
    """
    Classify products by their share of revenue.

    Revenue is the sum of order-line totals per product. Products are sorted by
    revenue descending; a product is A while the running share stays within
    80 %, B within 95 %, C beyond. With no revenue at all every product is C.
    """
    revenue: Dict[int, Decimal] = defaultdict(Decimal)
    for order in orders:
        for item in order.items:
            revenue[item.product_id] += Decimal(str(item.total or 0))

    ranked = sorted(products, key=lambda p: revenue.get(p.id, Decimal(0)), reverse=True)
    total = sum((revenue.get(p.id, Decimal(0)) for p in ranked), Decimal(0))

    rows = []
    running = Decimal(0)
    for product in ranked:
        amount = revenue.get(product.id, Decimal(0))
        row = {"product_id": product.id, "product_name": product.name, "revenue": float(amount)}
        rows.append(row)
        if total <= 0:
            row.update(percentage=0.0, cumulative_percentage=0.0, category="C")
            continue
        running += amount
        cumulative = running * 100 / total
        if cumulative <= ABC_A_THRESHOLD:
            category = "A"
        elif cumulative <= ABC_B_THRESHOLD:
            category = "B"
        else:
            category = "C"
        row.update(
            percentage=float(amount * 100 / total),
            cumulative_percentage=float(cumulative),
            category=category,
        )
    return rows


def coefficient_of_variation(values: Sequence[float]) -> float:
    """Population standard deviation over mean; 0 when the mean is 0."""
    mean = statistics.fmean(values) if values else 0.0
    if mean == 0:
        return 0.0
    return statistics.pstdev(values) / mean


def xyz_analysis(products: Sequence[Any], orders: Iterable[Any], now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Classify products by how steady their monthly demand is."""
    demand = monthly_demand(orders, XYZ_MONTHS, now)
    rows = []
    for product in products:
        series = demand.get(product.id, [0.0] * XYZ_MONTHS)
        cv = coefficient_of_variation(series)
        if cv <= XYZ_X_THRESHOLD:
            category = "X"
        elif cv <= XYZ_Y_THRESHOLD:
            category = "Y"
        else:
            category = "Z"
        rows.append({
            "product_id": product.id,
            "product_name": product.name,
            "monthly_demand": series,
            "average_demand": statistics.fmean(series),
            "coefficient_of_variation": cv,
            "category": category,
        })
    return rows


def linear_forecast(history: Sequence[float], horizon: int = FORECAST_HORIZON) -> Tuple[float, float, List[int]]:
    """
    Least-squares line through *history* (x = 0 .. n-1, oldest first).

    Returns:
        Tuple of (slope, intercept, forecasts for x = n .. n+horizon-1),
        each forecast floored at 0 and rounded half up.
    """
    xs = list(range(len(history)))
    slope, intercept = statistics.linear_regression(xs, [float(y) for y in history])
    forecasts = [
        max(0, round_half_up(slope * x + intercept))
        for x in range(len(history), len(history) + horizon)
    ]
    return slope, intercept, forecasts


def _trend(slope: float) -> str:
    if slope > 1e-9:
        return "increasing"
    if slope < -1e-9:
        return "decreasing"
    return "stable"


def stock_recommendation(stock: int, forecasts: Sequence[int]) -> str:
    if stock < forecasts[0]:
        return "reorder_needed"
    if stock < forecasts[0] + forecasts[1]:
        return "monitor"
    return "adequate"


def demand_forecast(products: Sequence[Any], orders: Iterable[Any], now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Project the next three months of demand per product."""
    demand = monthly_demand(orders, FORECAST_HISTORY_MONTHS, now)
    rows = []
    for product in products:
        history = demand.get(product.id, [0.0] * FORECAST_HISTORY_MONTHS)
        slope, intercept, forecasts = linear_forecast(history)
        rows.append({
            "product_id": product.id,
            "product_name": product.name,
            "historical_demand": history,
            "forecast": forecasts,
            "slope": slope,
            "intercept": intercept,
            "trend": _trend(slope),
            "current_stock": product.stock,
            "recommendation": stock_recommendation(product.stock, forecasts),
        })
    return rows


def segment_customer(days_since_last: int, order_count: int, total_value: float) -> str:
    if days_since_last <= CHAMPION_MAX_DAYS and order_count >= CHAMPION_MIN_ORDERS:
        return "Champions"
    if days_since_last <= LOYAL_MAX_DAYS and total_value > LOYAL_MIN_VALUE:
        return "Loyal Customers"
    if days_since_last <= POTENTIAL_MAX_DAYS:
        return "Potential Loyalists"
    if days_since_last <= ATTENTION_MAX_DAYS:
        return "Need Attention"
    return "At Risk"


def cohort_analysis(customers: Sequence[Any], orders: Iterable[Any], now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Per-customer order history summary and RFM-style segment.

    Customers without orders are left out.
    """
    now = as_utc(now or datetime.now(timezone.utc))
    by_customer: Dict[int, List[Any]] = defaultdict(list)
    for order in orders:
        by_customer[order.customer_id].append(order)

    rows = []
    for customer in customers:
        history = sorted(by_customer.get(customer.id, []), key=lambda o: as_utc(o.created_at))
        if not history:
            continue
        first = as_utc(history[0].created_at)
        last = as_utc(history[-1].created_at)
        total_value = float(sum(Decimal(o.total or 0) for o in history))
        days_since_last = (now - last).days
        rows.append({
            "customer_id": customer.id,
            "customer_name": customer.name,
            "first_order_date": first.isoformat(),
            "last_order_date": last.isoformat(),
            "order_count": len(history),
            "total_value": total_value,
            "average_order_value": total_value / len(history),
            "days_since_first_order": (now - first).days,
            "days_since_last_order": days_since_last,
            "segment": segment_customer(days_since_last, len(history), total_value),
        })
    return rows


def profit_analysis(products: Sequence[Any]) -> List[Dict[str, Any]]:
    """Profit per unit against the cheapest supplier price (or cost price)."""
    rows = []
    for product in products:
        prices = [sp.price for sp in getattr(product, "supplier_prices", []) or []]
        best = min(prices) if prices else None
        cost = Decimal(best if best is not None else product.cost_price or 0)
        selling = Decimal(product.selling_price or 0)
        profit = selling - cost
        rows.append({
            "product_id": product.id,
            "product_name": product.name,
            "cost_price": Decimal(product.cost_price or 0),
            "best_supplier_price": best,
            "selling_price": selling,
            "profit": profit,
            "margin_percentage": float(profit / selling * 100) if selling > 0 else 0.0,
            "markup_percentage": float(profit / cost * 100) if cost > 0 else 0.0,
        })
    return rows
