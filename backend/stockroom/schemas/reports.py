"""Report schemas."""

from __future__ import annotations

from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel


class ABCItem(BaseModel):
    product_id: int
    product_name: str
    revenue: float
    percentage: float
    cumulative_percentage: float
    category: Literal["A", "B", "C"]


class XYZItem(BaseModel):
    product_id: int
    product_name: str
    monthly_demand: List[float]
    average_demand: float
    coefficient_of_variation: float
    category: Literal["X", "Y", "Z"]


class DemandForecastItem(BaseModel):
    product_id: int
    product_name: str
    historical_demand: List[float]
    forecast: List[int]
    slope: float
    intercept: float
    trend: Literal["increasing", "decreasing", "stable"]
    current_stock: int
    recommendation: Literal["reorder_needed", "monitor", "adequate"]


class CohortItem(BaseModel):
    customer_id: int
    customer_name: str
    first_order_date: str
    last_order_date: str
    order_count: int
    total_value: float
    average_order_value: float
    days_since_first_order: int
    days_since_last_order: int
    segment: Literal["Champions", "Loyal Customers", "Potential Loyalists", "Need Attention", "At Risk"]


class ProfitItem(BaseModel):
    product_id: int
    product_name: str
    cost_price: Decimal
    best_supplier_price: Optional[Decimal] = None
    selling_price: Decimal
    profit: Decimal
    margin_percentage: float
    markup_percentage: float
