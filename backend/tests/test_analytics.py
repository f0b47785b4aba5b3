"""Tests for the inventory analytics functions.

The analytics functions are pure, so most tests feed them plain objects
instead of database rows.
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

from stockroom.services import analytics_service
from stockroom.services.analytics_service import (
    abc_analysis,
    cohort_analysis,
    coefficient_of_variation,
    demand_forecast,
    linear_forecast,
    month_keys,
    profit_analysis,
    round_half_up,
    segment_customer,
    stock_recommendation,
    xyz_analysis,
)

NOW = datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)


def _product(id, name=None, stock=0, cost_price="5.00", selling_price="10.00", supplier_prices=()):
    return SimpleNamespace(
        id=id,
        name=name or f"Product {id}",
        stock=stock,
        cost_price=Decimal(cost_price),
        selling_price=Decimal(selling_price),
        supplier_prices=[SimpleNamespace(price=Decimal(p)) for p in supplier_prices],
    )


def _order(created_at, lines, customer_id=1, total=None):
    items = [
        SimpleNamespace(product_id=pid, quantity=qty, total=Decimal(str(line_total)))
        for pid, qty, line_total in lines
    ]
    order_total = total if total is not None else sum(i.total for i in items)
    return SimpleNamespace(created_at=created_at, items=items, customer_id=customer_id, total=order_total)


def _month(year, month, day=10):
    return datetime(year, month, day, tzinfo=timezone.utc)


class TestHelpers:

    @pytest.mark.parametrize("value,expected", [(2.5, 3), (0.5, 1), (1.49, 1), (9.5, 10), (0.0, 0)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_month_keys_cross_year_boundary(self):
        keys = month_keys(3, now=datetime(2026, 2, 1, tzinfo=timezone.utc))
        assert keys == [(2025, 12), (2026, 1), (2026, 2)]

    def test_naive_datetimes_are_read_as_utc(self):
        naive = datetime(2026, 3, 1, 8, 30)
        assert analytics_service.as_utc(naive) == datetime(2026, 3, 1, 8, 30, tzinfo=timezone.utc)

    def test_coefficient_of_variation_zero_mean(self):
        assert coefficient_of_variation([0, 0, 0]) == 0.0


class TestABCAnalysis:

    def test_bands_partition_products(self):
        products = [_product(i) for i in range(1, 6)]
        orders = [_order(NOW, [(1, 1, 500), (2, 1, 300), (3, 1, 150), (4, 1, 50)])]

        rows = abc_analysis(products, orders)

        categories = {r["product_id"]: r["category"] for r in rows}
        assert set(categories) == {1, 2, 3, 4, 5}
        assert categories == {1: "A", 2: "A", 3: "B", 4: "C", 5: "C"}
        assert [r["product_id"] for r in rows][:4] == [1, 2, 3, 4]
        assert rows[1]["cumulative_percentage"] == pytest.approx(80.0)

    def test_a_band_share_never_exceeds_eighty_percent(self):
        products = [_product(i) for i in range(1, 11)]
        revenues = [900, 450, 300, 120, 95, 60, 40, 22, 9, 4]
        orders = [_order(NOW, [(i + 1, 1, r) for i, r in enumerate(revenues)])]

        rows = abc_analysis(products, orders)

        total = sum(revenues)
        a_share = sum(r["revenue"] for r in rows if r["category"] == "A") / total * 100
        assert a_share <= 80.0
        assert all(r["category"] in ("A", "B", "C") for r in rows)
        assert len(rows) == len(products)

    def test_exact_boundaries_with_cent_totals(self):
        products = [_product(i) for i in range(1, 6)]
        # Running shares land exactly on 80 and 95
        orders = [_order(NOW, [
            (1, 1, "0.10"), (1, 1, "0.20"), (1, 1, "0.30"),
            (2, 1, "0.10"), (2, 1, "0.10"),
            (3, 1, "0.15"),
            (4, 1, "0.03"), (5, 1, "0.02"),
        ])]

        rows = abc_analysis(products, orders)

        assert [r["category"] for r in rows] == ["A", "A", "B", "C", "C"]
        assert rows[1]["cumulative_percentage"] == 80.0
        assert rows[2]["cumulative_percentage"] == 95.0
        assert rows[0]["revenue"] == 0.6
        assert isinstance(rows[0]["percentage"], float)

    def test_no_revenue_puts_everything_in_c(self):
        rows = abc_analysis([_product(1), _product(2)], [])
        assert [r["category"] for r in rows] == ["C", "C"]
        assert all(r["percentage"] == 0.0 for r in rows)


class TestXYZAnalysis:

    def test_variability_bands(self):
        products = [_product(1), _product(2), _product(3)]
        orders = []
        steady = [10, 10, 10, 10, 10, 10]
        alternating = [0, 20, 0, 20, 0, 20]
        spiky = [0, 0, 0, 0, 0, 60]
        for month in range(1, 7):
            lines = [
                (1, steady[month - 1], 1),
                (2, alternating[month - 1], 1),
                (3, spiky[month - 1], 1),
            ]
            orders.append(_order(_month(2026, month), [l for l in lines if l[1]]))

        rows = {r["product_id"]: r for r in xyz_analysis(products, orders, now=NOW)}

        assert rows[1]["category"] == "X"
        assert rows[1]["coefficient_of_variation"] == pytest.approx(0.0)
        assert rows[2]["category"] == "Y"
        assert rows[2]["coefficient_of_variation"] == pytest.approx(1.0)
        assert rows[3]["category"] == "Z"
        assert rows[3]["monthly_demand"] == [0, 0, 0, 0, 0, 60]

    def test_orders_outside_window_are_ignored(self):
        orders = [_order(_month(2025, 10), [(1, 100, 1)])]
        rows = xyz_analysis([_product(1)], orders, now=NOW)
        assert rows[0]["monthly_demand"] == [0.0] * 6
        assert rows[0]["category"] == "X"


class TestForecast:

    def test_constant_demand_forecasts_constant(self):
        slope, intercept, forecasts = linear_forecast([10] * 12)
        assert slope == pytest.approx(0.0, abs=1e-9)
        assert intercept == pytest.approx(10.0)
        assert forecasts == [10, 10, 10]

    def test_rising_demand(self):
        slope, _, forecasts = linear_forecast([float(x) for x in range(1, 13)])
        assert slope == pytest.approx(1.0)
        assert forecasts == [13, 14, 15]

    def test_forecast_is_floored_at_zero(self):
        _, _, forecasts = linear_forecast([12, 10, 8, 6, 4, 2, 0, 0, 0, 0, 0, 0])
        assert all(f >= 0 for f in forecasts)

    def test_recommendations(self):
        assert stock_recommendation(5, [10, 10, 10]) == "reorder_needed"
        assert stock_recommendation(15, [10, 10, 10]) == "monitor"
        assert stock_recommendation(25, [10, 10, 10]) == "adequate"

    def test_demand_forecast_rows(self):
        orders = [
            _order(datetime(year, month, 5, tzinfo=timezone.utc), [(1, 10, 1)])
            for year, month in month_keys(12, now=NOW)
        ]
        rows = demand_forecast([_product(1, stock=5)], orders, now=NOW)

        assert rows[0]["historical_demand"] == [10.0] * 12
        assert rows[0]["forecast"] == [10, 10, 10]
        assert rows[0]["trend"] == "stable"
        assert rows[0]["recommendation"] == "reorder_needed"


class TestCohorts:

    @pytest.mark.parametrize("days,count,value,segment", [
        (10, 3, 100, "Champions"),
        (10, 1, 5000, "Loyal Customers"),
        (45, 1, 1500, "Loyal Customers"),
        (45, 1, 1000, "Potential Loyalists"),
        (120, 5, 9000, "Need Attention"),
        (200, 10, 9000, "At Risk"),
    ])
    def test_segment_customer(self, days, count, value, segment):
        assert segment_customer(days, count, value) == segment

    def test_cohort_rows(self):
        customers = [SimpleNamespace(id=1, name="Acme"), SimpleNamespace(id=2, name="Idle Co")]
        orders = [
            _order(NOW - timedelta(days=40), [(1, 1, 200)], customer_id=1),
            _order(NOW - timedelta(days=5), [(1, 1, 300)], customer_id=1),
            _order(NOW - timedelta(days=20), [(1, 1, 100)], customer_id=1),
        ]

        rows = cohort_analysis(customers, orders, now=NOW)

        assert len(rows) == 1
        row = rows[0]
        assert row["customer_id"] == 1
        assert row["order_count"] == 3
        assert row["total_value"] == pytest.approx(600.0)
        assert row["average_order_value"] == pytest.approx(200.0)
        assert row["days_since_first_order"] == 40
        assert row["days_since_last_order"] == 5
        assert row["segment"] == "Champions"


class TestProfit:

    def test_uses_cheapest_supplier_price(self):
        product = _product(1, cost_price="8.00", selling_price="10.00", supplier_prices=["7.00", "6.00"])
        row = profit_analysis([product])[0]
        assert row["best_supplier_price"] == Decimal("6.00")
        assert row["profit"] == Decimal("4.00")
        assert row["margin_percentage"] == pytest.approx(40.0)
        assert row["markup_percentage"] == pytest.approx(66.6667, rel=1e-4)

    def test_falls_back_to_cost_price(self):
        row = profit_analysis([_product(1, cost_price="8.00", selling_price="0")])[0]
        assert row["best_supplier_price"] is None
        assert row["profit"] == Decimal("-8.00")
        assert row["margin_percentage"] == 0.0
