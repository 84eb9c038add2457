"""
Monthly sales aggregation for demand forecasting.

This module collapses validated orders into one sales record per
(product, month) pair. Only realized orders (Delivered or Shipped)
contribute demand.
"""

import math
import polars as pl
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Dict, Any, Iterable
import logging

from .constants import MONTH_LENGTH
from .schemas import Order, SalesRecord

logger = logging.getLogger(__name__)

KEY_COLUMNS: List[str] = ["product_name", "month"]

INT64_MAX: int = 2**63 - 1

SALES_SCHEMA = {
    "product_name": pl.Utf8,
    "month": pl.Utf8,
    "units_sold": pl.Float64,
    "price": pl.Float64,
}


def round_price(value: float) -> float:
    """Round a price to cents with exact halves rounded away from zero."""
    if not math.isfinite(value):
        return value
    return float(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _order_lines(orders: Iterable[Order]) -> pl.DataFrame:
    """Flatten the lines of realized orders into a DataFrame."""
    names, months, quantities, prices = [], [], [], []

    for order in orders:
        if not order.is_realized:
            continue
        for item in order.items:
            names.append(item.name)
            months.append(order.order_month)
            quantities.append(item.quantity)
            prices.append(item.unit_price)

    # Integer units only while every sum fits in Int64
    integral = all(isinstance(q, int) for q in quantities)
    if integral and sum(abs(q) for q in quantities) <= INT64_MAX:
        quantity_type = pl.Int64
    else:
        quantity_type = pl.Float64
        quantities = [float(q) for q in quantities]

    return pl.DataFrame([
        pl.Series("product_name", names, dtype=pl.Utf8),
        pl.Series("month", months, dtype=pl.Utf8),
        pl.Series("quantity", quantities, dtype=quantity_type),
        pl.Series("unit_price", prices, dtype=pl.Float64),
    ])


def aggregate_sales(orders: Iterable[Order]) -> List[SalesRecord]:
    """
    Aggregate orders into monthly per-product sales records.

    Units are summed and the price is the mean of the per-line unit prices
    observed in the month, rounded to 2 decimals. The order of the returned
    records is unspecified; sort by month where chronology matters.

    Args:
        orders: Validated orders

    Returns:
        List of SalesRecord, one per (product, month)
    """
    lines = _order_lines(orders)

    if lines.is_empty():
        logger.info("No realized orders to aggregate")
        return []

    agg_df = (
        lines
        .group_by(KEY_COLUMNS, maintain_order=True)
        .agg([
            pl.col("quantity").sum().alias("units_sold"),
            pl.col("unit_price").mean().alias("price"),
        ])
    )

    records = [
        SalesRecord(
            product_name=row["product_name"],
            month=row["month"],
            units_sold=row["units_sold"],
            price=round_price(row["price"]),
        )
        for row in agg_df.iter_rows(named=True)
    ]

    logger.info(f"Aggregated {lines.height} order lines into {len(records)} monthly sales records")
    return records


def sales_frame(records: Iterable[SalesRecord]) -> pl.DataFrame:
    """Convert sales records to a DataFrame sorted by product and month."""
    rows = [
        {
            "product_name": r.product_name,
            "month": r.month,
            "units_sold": float(r.units_sold),
            "price": r.price,
        }
        for r in records
    ]
    return pl.DataFrame(rows, schema=SALES_SCHEMA).sort(KEY_COLUMNS)


def product_names(records: Iterable[SalesRecord]) -> List[str]:
    """Sorted unique product names."""
    return sorted({r.product_name for r in records})


def product_history(records: Iterable[SalesRecord], product: str) -> List[SalesRecord]:
    """Sales records of one product in chronological order."""
    return sorted(
        (r for r in records if r.product_name == product),
        key=lambda r: r.month
    )


def next_months(month: str, count: int) -> List[str]:
    """
    Months following a YYYY-MM label.

    Example:
        next_months("2024-11", 3) -> ["2024-12", "2025-01", "2025-02"]
    """
    year, month_num = (int(part) for part in month[:MONTH_LENGTH].split("-"))
    labels = []
    for _ in range(count):
        month_num += 1
        if month_num > 12:
            month_num = 1
            year += 1
        labels.append(f"{year:04d}-{month_num:02d}")
    return labels


def get_sales_summary(records: List[SalesRecord]) -> Dict[str, Any]:
    """Generate summary statistics for a set of sales records."""
    df = sales_frame(records)

    if df.is_empty():
        return {
            "records": 0,
            "products": 0,
            "month_range": None,
            "total_units": 0,
        }

    return {
        "records": df.height,
        "products": df.select(pl.col("product_name").n_unique()).item(),
        "month_range": (
            df.select(pl.col("month").min()).item(),
            df.select(pl.col("month").max()).item()
        ),
        "total_units": df.select(pl.col("units_sold").sum()).item(),
    }
