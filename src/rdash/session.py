"""
Process-wide dashboard state.

Orders are loaded once per session (and on explicit reload) and kept in
memory together with the derived sales records. Nothing is persisted.
"""

import itertools
import logging
import threading
from typing import Dict, List, Optional

from .aggregate import aggregate_sales
from .data_loader import DataLoadError, load_orders
from .models.forecast_api import DemandForecaster
from .schemas import LoadReport, Order, SalesRecord

logger = logging.getLogger(__name__)


class DataNotLoadedError(RuntimeError):
    """The order feed has not been loaded successfully."""


class DashboardState:
    """In-memory orders, sales records and the outcome of the last load."""

    def __init__(self):
        self.orders: List[Order] = []
        self.sales_records: List[SalesRecord] = []
        self.report: Optional[LoadReport] = None
        self.error: Optional[str] = None
        self._orders_by_id: Dict[str, Order] = {}

    @property
    def is_loaded(self) -> bool:
        return self.report is not None and self.error is None

    def set_orders(self, orders: List[Order], report: LoadReport) -> None:
        """Replace the session data with a freshly loaded order list."""
        self.orders = list(orders)
        self.sales_records = aggregate_sales(self.orders)
        self.report = report
        self.error = None
        self._orders_by_id = {}
        for order in self.orders:
            self._orders_by_id.setdefault(order.id, order)

    def reload(self, source: str, timeout: Optional[float] = None) -> LoadReport:
        """
        Load orders from a URL or file and rebuild the sales records.

        On failure the previous data is discarded and the error text is kept
        for display.
        """
        try:
            loaded = load_orders(source, timeout=timeout)
        except DataLoadError as e:
            logger.error(f"Data loading error: {e}")
            self.orders = []
            self.sales_records = []
            self.report = None
            self.error = str(e)
            self._orders_by_id = {}
            raise

        self.set_orders(loaded.orders, loaded.report)
        logger.info(
            f"Loaded {len(self.orders)} orders and {len(self.sales_records)} sales records from {source}"
        )
        return loaded.report

    def require_loaded(self) -> None:
        if not self.is_loaded:
            raise DataNotLoadedError(self.error or "Order data has not been loaded.")

    def find_order(self, order_id: str) -> Optional[Order]:
        """First order with the given id."""
        return self._orders_by_id.get(order_id)

    def forecaster(self) -> DemandForecaster:
        self.require_loaded()
        return DemandForecaster(self.sales_records)


class RequestSequencer:
    """
    Monotonic request tokens per channel.

    A response whose token is no longer the latest for its channel is stale
    and should be discarded by the client.
    """

    def __init__(self):
        self._counter = itertools.count(1)
        self._latest: Dict[str, int] = {}
        self._lock = threading.Lock()

    def issue(self, channel: str) -> int:
        with self._lock:
            token = next(self._counter)
            self._latest[channel] = token
            return token

    def is_current(self, channel: str, token: int) -> bool:
        with self._lock:
            return self._latest.get(channel) == token
