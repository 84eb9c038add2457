"""
Order feed loading.

The feed is a JSON array of order objects served over HTTP, or stored in a
local file for offline work. Loading fails as a whole on transport, parse
and structural errors; individual bad records are only skipped.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

import requests

from .data_cleaner import DataLoadError, FeedStructureError, clean_orders
from .schemas import LoadReport, Order

logger = logging.getLogger(__name__)

__all__ = [
    "DataLoadError",
    "FeedTransportError",
    "FeedParseError",
    "FeedStructureError",
    "LoadedOrders",
    "fetch_orders",
    "read_orders_file",
    "load_orders",
]


class FeedTransportError(DataLoadError):
    """The feed could not be retrieved."""


class FeedParseError(DataLoadError):
    """The feed is not valid JSON."""


class LoadedOrders:
    """Valid orders of a feed together with the load report."""

    def __init__(self, orders: list[Order], report: LoadReport):
        self.orders = orders
        self.report = report

    def __len__(self) -> int:
        return len(self.orders)


def _build(data: Any, source: str) -> LoadedOrders:
    result = clean_orders(data)
    report = LoadReport(
        source=source,
        total_records=result.total_records,
        valid_records=len(result.orders),
        invalid_records=result.invalid_records,
        issues=result.issues,
    )
    return LoadedOrders(result.orders, report)


def fetch_orders(url: str, timeout: Optional[float] = None) -> LoadedOrders:
    """
    Fetch, parse, normalize and validate orders from a URL.

    Args:
        url: Feed URL returning a JSON array
        timeout: Request timeout in seconds (None waits indefinitely)

    Returns:
        LoadedOrders with the valid orders and the load report
    """
    logger.info(f"Fetching orders from {url}")

    try:
        response = requests.get(url, timeout=timeout)
    except requests.RequestException as e:
        logger.error(f"Network request to {url} failed: {e}")
        raise FeedTransportError(
            "Network request failed. Please check your internet connection."
        ) from e

    if not response.ok:
        raise FeedTransportError(
            f"Failed to fetch data: {response.status_code} {response.reason}. "
            "Please check the URL and network permissions (CORS)."
        )

    try:
        data = response.json()
    except ValueError as e:
        raise FeedParseError("Failed to parse JSON. The data from the URL is not valid JSON.") from e

    return _build(data, url)


def read_orders_file(path: str) -> LoadedOrders:
    """Read, normalize and validate orders from a local JSON file."""
    file_path = Path(path)
    logger.info(f"Reading orders from {file_path}")

    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as e:
        raise FeedTransportError(f"Failed to read data file {file_path}: {e}") from e

    try:
        data = json.loads(text)
    except ValueError as e:
        raise FeedParseError(f"Failed to parse JSON. {file_path} is not valid JSON.") from e

    return _build(data, str(file_path))


def load_orders(source: str, timeout: Optional[float] = None) -> LoadedOrders:
    """Load orders from an http(s) URL or a local file path."""
    if source.startswith(("http://", "https://")):
        return fetch_orders(source, timeout=timeout)
    return read_orders_file(source)
