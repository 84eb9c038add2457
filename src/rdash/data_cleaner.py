"""
Normalization and validation of raw order feed records.

Every field is coerced to its expected primitive type before validation, so
that a rejected record reflects a structural problem rather than a type
mismatch (a numeric id, a timestamp instead of a date).
"""

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from .constants import (
    ORDER_STRING_FIELDS, ORDER_DATE_FIELDS, ITEM_STRING_FIELDS, ITEM_NUMBER_FIELDS,
    DATE_LENGTH, MAX_VALIDATION_ISSUES
)
from .schemas import Order, ValidationIssue

logger = logging.getLogger(__name__)


class DataLoadError(Exception):
    """Loading the order feed failed."""


class FeedStructureError(DataLoadError, ValueError):
    """The feed as a whole does not have the expected structure."""


@dataclass
class CleaningResult:
    """Outcome of cleaning a batch of raw records."""
    orders: List[Order]
    total_records: int
    invalid_records: int = 0
    issues: List[ValidationIssue] = field(default_factory=list)


def to_string(value: Any) -> str:
    """Coerce a JSON value to a string, mapping null to an empty string."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def to_number(value: Any) -> Union[int, float]:
    """Coerce a JSON value to a number, defaulting to 0 when it is not numeric."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return 0 if isinstance(value, float) and math.isnan(value) else value
    if isinstance(value, str):
        text = value.strip()
        # Digit separators are not numeric literals in the feed
        if not text or "_" in text:
            return 0
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return 0
        return 0 if math.isnan(number) else number
    return 0


def _truncate_date(value: Any) -> str:
    return value[:DATE_LENGTH] if isinstance(value, str) else ""


def normalize_item(raw: Any) -> Dict[str, Any]:
    """Normalize one order line."""
    item = dict(raw) if isinstance(raw, Mapping) else {}
    for name in ITEM_STRING_FIELDS:
        item[name] = to_string(item.get(name))
    for name in ITEM_NUMBER_FIELDS:
        item[name] = to_number(item.get(name))
    return item


def normalize_order(raw: Any) -> Any:
    """
    Normalize a raw order record into a consistent shape.

    Values that are not JSON objects are returned untouched and fail
    validation later.
    """
    if not isinstance(raw, Mapping):
        return raw

    order = dict(raw)
    for name in ORDER_STRING_FIELDS:
        order[name] = to_string(raw.get(name))
    for name in ORDER_DATE_FIELDS:
        order[name] = _truncate_date(raw.get(name))

    status = raw.get("status")
    order["status"] = status.strip() if isinstance(status, str) else ""
    order["totalOrderValue"] = to_number(raw.get("totalOrderValue"))

    items = raw.get("items")
    order["items"] = [normalize_item(item) for item in items] if isinstance(items, list) else []
    return order


def _format_error(error: Dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    message = error.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


def validate_order(record: Any) -> Tuple[Optional[Order], List[str]]:
    """
    Validate a normalized record against the Order schema.

    Returns:
        Tuple of (order, errors); order is None when errors is non-empty
    """
    try:
        return Order.model_validate(record), []
    except ValidationError as e:
        return None, [_format_error(error) for error in e.errors()]


def clean_orders(data: Any) -> CleaningResult:
    """
    Normalize and validate a batch of raw order records.

    Invalid records are skipped and the first issues are kept for diagnostics.

    Args:
        data: Parsed JSON document, expected to be a list of order objects

    Returns:
        CleaningResult with the valid orders

    Raises:
        FeedStructureError: If data is not a list, or a non-empty list yields no valid order
    """
    if not isinstance(data, list):
        raise FeedStructureError(
            "Fetched data is not an array. The JSON file must contain an array of order objects."
        )

    result = CleaningResult(orders=[], total_records=len(data))

    for index, raw in enumerate(data):
        order, errors = validate_order(normalize_order(raw))
        if order is not None:
            result.orders.append(order)
            continue

        result.invalid_records += 1
        if len(result.issues) < MAX_VALIDATION_ISSUES:
            result.issues.append(ValidationIssue(index=index, errors=errors))

    if result.invalid_records:
        logger.warning(
            f"Data validation finished with some issues. {result.invalid_records} out of "
            f"{result.total_records} records were invalid."
        )
        for issue in result.issues:
            logger.warning(f"Record {issue.index}: {'; '.join(issue.errors)}")

    if not result.orders and data:
        raise FeedStructureError(
            "Fetched data, but no valid order objects were found. Please check the structure "
            "of the objects in the JSON file. See the logs for detailed validation errors."
        )

    logger.info(f"Validated {len(result.orders)} of {result.total_records} orders")
    return result
