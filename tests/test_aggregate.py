"""
Tests for monthly sales aggregation.
"""

import pytest

from rdash.aggregate import (
    aggregate_sales,
    get_sales_summary,
    next_months,
    product_history,
    product_names,
    round_price,
    sales_frame,
)
from rdash.data_cleaner import clean_orders

from conftest import make_raw_item, make_raw_order


@pytest.fixture
def orders(sample_feed):
    return clean_orders(sample_feed).orders


def _by_key(records):
    return {(r.product_name, r.month): r for r in records}


class TestAggregateSales:
    """Test cases for sales aggregation."""

    def test_only_realized_orders_counted(self, orders):
        """Test that only Delivered and Shipped orders contribute."""
        records = _by_key(aggregate_sales(orders))

        assert records[("Widget", "2024-01")].units_sold == 5
        assert records[("Widget", "2024-02")].units_sold == 4
        assert records[("Widget", "2024-03")].units_sold == 6
        assert records[("Gizmo", "2024-02")].units_sold == 1
        assert len(records) == 4

    def test_mean_price(self, orders):
        """Test that the price is the mean of line unit prices."""
        records = _by_key(aggregate_sales(orders))
        assert records[("Widget", "2024-01")].price == 11.0

    def test_price_rounded(self):
        """Test that the mean price is rounded to 2 decimals."""
        feed = [
            make_raw_order(str(i), items=[make_raw_item("Widget", 1, price)])
            for i, price in enumerate([1.0, 1.0, 1.01])
        ]
        records = aggregate_sales(clean_orders(feed).orders)
        assert records[0].price == 1.0

    def test_price_halves_round_up(self):
        """Test that a mean price exactly halfway between cents rounds up."""
        feed = [
            make_raw_order("1", items=[make_raw_item("Widget", 1, 10.0)]),
            make_raw_order("2", items=[make_raw_item("Widget", 1, 10.25)]),
        ]
        records = aggregate_sales(clean_orders(feed).orders)
        assert records[0].price == 10.13

    def test_round_price(self):
        """Test cent rounding of representable halves and binary near-halves."""
        assert round_price(10.125) == 10.13
        assert round_price(0.125) == 0.13
        assert round_price(-0.125) == -0.13
        # 1.005 is stored just below the half
        assert round_price(1.005) == 1.0
        assert round_price(2.0) == 2.0

    def test_integer_units(self, orders):
        """Test that integral quantities stay integers."""
        for record in aggregate_sales(orders):
            assert isinstance(record.units_sold, int)

    def test_fractional_units(self):
        """Test that fractional quantities are summed as floats."""
        feed = [
            make_raw_order("1", items=[make_raw_item("Rope", 1.5, 2.0)]),
            make_raw_order("2", items=[make_raw_item("Rope", 2, 2.0)]),
        ]
        records = aggregate_sales(clean_orders(feed).orders)
        assert records[0].units_sold == 3.5

    def test_units_beyond_int64(self):
        """Test that quantities too large for a 64-bit integer are summed as floats."""
        feed = [
            make_raw_order("1", items=[make_raw_item("Bolt", 2**64, 0.01)]),
            make_raw_order("2", items=[make_raw_item("Bolt", 3, 0.01)]),
        ]
        records = aggregate_sales(clean_orders(feed).orders)

        assert len(records) == 1
        assert isinstance(records[0].units_sold, float)
        assert records[0].units_sold == pytest.approx(2.0**64)

    def test_sum_beyond_int64(self):
        """Test that integer quantities whose sum overflows a 64-bit integer are summed as floats."""
        half = 2**62
        feed = [
            make_raw_order(str(i), items=[make_raw_item("Bolt", half, 0.01)])
            for i in range(3)
        ]
        records = aggregate_sales(clean_orders(feed).orders)
        assert records[0].units_sold == pytest.approx(3.0 * half)

    def test_names_with_delimiters_kept_apart(self):
        """Test that product names containing separators do not collide."""
        feed = [
            make_raw_order("1", order_date="2024-01-02", items=[make_raw_item("A-2024", 1)]),
            make_raw_order("2", order_date="2024-01-03", items=[make_raw_item("A", 2)]),
        ]
        records = _by_key(aggregate_sales(clean_orders(feed).orders))
        assert records[("A-2024", "2024-01")].units_sold == 1
        assert records[("A", "2024-01")].units_sold == 2

    def test_no_realized_orders(self):
        """Test that no qualifying orders yields no records."""
        feed = [make_raw_order(status="Processing")]
        assert aggregate_sales(clean_orders(feed).orders) == []

    def test_empty(self):
        """Test that no orders yields no records."""
        assert aggregate_sales([]) == []

    def test_idempotent(self, orders):
        """Test that aggregating the same orders twice gives the same records."""
        first = aggregate_sales(orders)
        second = aggregate_sales(orders)

        assert _by_key(first) == _by_key(second)
        assert sorted(r.model_dump_json() for r in first) == sorted(r.model_dump_json() for r in second)


class TestSalesHelpers:
    """Test cases for sales record helpers."""

    def test_product_names(self, orders):
        """Test sorted unique product names."""
        assert product_names(aggregate_sales(orders)) == ["Gizmo", "Widget"]

    def test_product_history_sorted(self, orders):
        """Test that history is chronological regardless of input order."""
        records = list(reversed(aggregate_sales(orders)))
        history = product_history(records, "Widget")
        assert [r.month for r in history] == ["2024-01", "2024-02", "2024-03"]

    def test_product_history_unknown(self, orders):
        """Test that an unknown product has no history."""
        assert product_history(aggregate_sales(orders), "Nothing") == []

    def test_sales_frame(self, orders):
        """Test the DataFrame view of sales records."""
        df = sales_frame(aggregate_sales(orders))
        assert df.columns == ["product_name", "month", "units_sold", "price"]
        assert df.height == 4
        assert df["product_name"].to_list()[0] == "Gizmo"

    def test_next_months(self):
        """Test month label arithmetic across a year boundary."""
        assert next_months("2024-11", 3) == ["2024-12", "2025-01", "2025-02"]
        assert next_months("2024-01", 1) == ["2024-02"]

    def test_sales_summary(self, orders):
        """Test summary statistics."""
        summary = get_sales_summary(aggregate_sales(orders))
        assert summary["records"] == 4
        assert summary["products"] == 2
        assert summary["month_range"] == ("2024-01", "2024-03")
        assert summary["total_units"] == 16

    def test_sales_summary_empty(self):
        """Test summary of no records."""
        summary = get_sales_summary([])
        assert summary["records"] == 0
        assert summary["month_range"] is None
