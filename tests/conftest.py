"""
Shared fixtures for the test suite.
"""

import pytest


def make_raw_order(
    order_id="1001",
    status="Delivered",
    order_date="2024-01-15",
    items=None,
    **overrides
):
    """Build a raw feed record with camelCase keys."""
    if items is None:
        items = [make_raw_item()]
    record = {
        "id": order_id,
        "customerName": "Ada Lovelace",
        "orderDate": order_date,
        "status": status,
        "items": items,
        "estimatedDelivery": "2024-01-20",
        "totalOrderValue": 59.98,
        "returnPolicy": "30 days",
    }
    record.update(overrides)
    return record


def make_raw_item(name="Widget", quantity=2, unit_price=29.99, category="Gadgets"):
    return {
        "name": name,
        "category": category,
        "unitPrice": unit_price,
        "quantity": quantity,
        "total": unit_price * quantity,
    }


def monthly_feed(product, units_by_month, status="Delivered"):
    """One order per month with the given units of a single product."""
    return [
        make_raw_order(
            order_id=str(2000 + i),
            status=status,
            order_date=f"{month}-10",
            items=[make_raw_item(name=product, quantity=units)],
        )
        for i, (month, units) in enumerate(units_by_month)
    ]


@pytest.fixture
def raw_order():
    return make_raw_order()


@pytest.fixture
def sample_feed():
    """A small feed spanning two products, three months and every status kind."""
    return [
        make_raw_order("1001", "Delivered", "2024-01-05", [make_raw_item("Widget", 2, 10.0)]),
        make_raw_order("1002", "Shipped", "2024-01-20", [make_raw_item("Widget", 3, 12.0)]),
        make_raw_order("1003", "Processing", "2024-01-22", [make_raw_item("Widget", 50, 10.0)]),
        make_raw_order("1004", "Delivered", "2024-02-03", [
            make_raw_item("Widget", 4, 10.0),
            make_raw_item("Gizmo", 1, 99.5),
        ]),
        make_raw_order("1005", "Cancelled", "2024-02-14", [make_raw_item("Gizmo", 7, 99.5)]),
        make_raw_order("1006", "Delivered", "2024-03-01", [make_raw_item("Widget", 6, 11.0)]),
        make_raw_order("1007", "Returned", "2024-03-09", [make_raw_item("Widget", 9, 11.0)]),
    ]
