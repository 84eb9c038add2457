"""
Tests for order normalization and validation.
"""

import pytest

from rdash.constants import MAX_VALIDATION_ISSUES, OrderStatus
from rdash.data_cleaner import (
    DataLoadError,
    FeedStructureError,
    clean_orders,
    normalize_order,
    to_number,
    to_string,
    validate_order,
)

from conftest import make_raw_item, make_raw_order


class TestCoercion:
    """Test cases for primitive coercion."""

    def test_to_string(self):
        """Test string coercion of JSON values."""
        assert to_string(None) == ""
        assert to_string(1234) == "1234"
        assert to_string(1234.0) == "1234"
        assert to_string(12.5) == "12.5"
        assert to_string(True) == "true"
        assert to_string("abc") == "abc"

    def test_to_number(self):
        """Test numeric coercion with zero default."""
        assert to_number(5) == 5
        assert to_number(2.5) == 2.5
        assert to_number("7") == 7
        assert isinstance(to_number("7"), int)
        assert to_number(" 3.25 ") == 3.25
        assert to_number("") == 0
        assert to_number("abc") == 0
        assert to_number(None) == 0
        assert to_number(float("nan")) == 0
        assert to_number([1]) == 0
        assert to_number(True) == 1

    def test_to_number_rejects_digit_separators(self):
        """Test that underscore separated digits are not read as numbers."""
        assert to_number("1_000") == 0
        assert to_number("1_000.5") == 0
        assert to_number("1000") == 1000


class TestNormalizeOrder:
    """Test cases for record normalization."""

    def test_numeric_id_becomes_string(self, raw_order):
        """Test that a numeric id is coerced to its string form."""
        raw_order["id"] = 1001
        normalized = normalize_order(raw_order)
        assert normalized["id"] == "1001"

    def test_dates_truncated(self, raw_order):
        """Test that timestamps are truncated to dates."""
        raw_order["orderDate"] = "2024-01-15T10:30:00Z"
        normalized = normalize_order(raw_order)
        assert normalized["orderDate"] == "2024-01-15"

    def test_non_string_date_becomes_empty(self, raw_order):
        """Test that a non-string date becomes empty and later fails validation."""
        raw_order["orderDate"] = 20240115
        normalized = normalize_order(raw_order)
        assert normalized["orderDate"] == ""

    def test_status_trimmed(self, raw_order):
        """Test that status whitespace is stripped."""
        raw_order["status"] = "  Shipped "
        assert normalize_order(raw_order)["status"] == "Shipped"

    def test_items_coerced(self, raw_order):
        """Test that item fields are coerced."""
        raw_order["items"] = [{"name": "Widget", "category": "Gadgets", "unitPrice": "9.5", "quantity": "3"}]
        item = normalize_order(raw_order)["items"][0]
        assert item["unitPrice"] == 9.5
        assert item["quantity"] == 3
        assert item["total"] == 0

    def test_missing_items_becomes_empty_list(self, raw_order):
        """Test that a non-list items value becomes an empty list."""
        raw_order["items"] = "none"
        assert normalize_order(raw_order)["items"] == []

    def test_non_object_passed_through(self):
        """Test that non-object records are not normalized."""
        assert normalize_order(42) == 42
        assert normalize_order(None) is None

    def test_extra_fields_preserved(self, raw_order):
        """Test that unknown fields survive normalization."""
        raw_order["channel"] = "web"
        assert normalize_order(raw_order)["channel"] == "web"


class TestValidateOrder:
    """Test cases for record validation."""

    def test_valid_order(self, raw_order):
        """Test that a well-formed order validates."""
        order, errors = validate_order(normalize_order(raw_order))
        assert errors == []
        assert order.id == "1001"
        assert order.status == OrderStatus.DELIVERED
        assert order.order_month == "2024-01"
        assert order.is_realized

    def test_unknown_status_rejected(self, raw_order):
        """Test that a status outside the enumeration is rejected."""
        raw_order["status"] = "Lost"
        order, errors = validate_order(normalize_order(raw_order))
        assert order is None
        assert any(e.startswith("status") for e in errors)

    def test_empty_items_rejected(self, raw_order):
        """Test that an order without items is rejected."""
        raw_order["items"] = []
        order, errors = validate_order(normalize_order(raw_order))
        assert order is None
        assert errors

    def test_empty_customer_rejected(self, raw_order):
        """Test that a missing customer name is rejected."""
        del raw_order["customerName"]
        order, errors = validate_order(normalize_order(raw_order))
        assert order is None
        assert any("customerName" in e for e in errors)

    def test_non_object_rejected(self):
        """Test that a non-object record is rejected."""
        order, errors = validate_order(normalize_order("not an order"))
        assert order is None
        assert errors


class TestCleanOrders:
    """Test cases for batch cleaning."""

    def test_skips_invalid_records(self):
        """Test that invalid records are skipped and counted."""
        data = [make_raw_order("1"), make_raw_order("2", status="Lost"), "junk"]
        result = clean_orders(data)

        assert len(result.orders) == 1
        assert result.total_records == 3
        assert result.invalid_records == 2
        assert [issue.index for issue in result.issues] == [1, 2]

    def test_issue_list_capped(self):
        """Test that only the first validation issues are kept."""
        data = [make_raw_order("ok")] + [make_raw_order(str(i), status="Lost") for i in range(15)]
        result = clean_orders(data)

        assert result.invalid_records == 15
        assert len(result.issues) == MAX_VALIDATION_ISSUES

    def test_not_a_list(self):
        """Test that a non-array feed is a structural error."""
        with pytest.raises(FeedStructureError, match="not an array"):
            clean_orders({"orders": []})

    def test_no_valid_records(self):
        """Test that a non-empty feed without valid records is a structural error."""
        with pytest.raises(FeedStructureError, match="no valid order objects"):
            clean_orders([{"foo": "bar"}])

    def test_empty_list_is_valid(self):
        """Test that an empty feed loads with no orders."""
        result = clean_orders([])
        assert result.orders == []
        assert result.total_records == 0

    def test_structure_error_is_load_error(self):
        """Test the load error hierarchy."""
        assert issubclass(FeedStructureError, DataLoadError)

    def test_string_quantities_accepted(self):
        """Test that string quantities are coerced before validation."""
        item = make_raw_item(quantity=1)
        item["quantity"] = "4"
        result = clean_orders([make_raw_order(items=[item])])
        assert result.orders[0].items[0].quantity == 4

    def test_negative_numbers_accepted(self):
        """Test that negative prices and quantities, as used for returns, are kept."""
        result = clean_orders([make_raw_order(items=[make_raw_item(quantity=-3, unit_price=-1.5)])])

        item = result.orders[0].items[0]
        assert result.invalid_records == 0
        assert item.quantity == -3
        assert item.unit_price == -1.5
