"""
Constants and enumerations for the retail dashboard.

Note: The order feed is a JSON array of order objects with camelCase keys.
Only Delivered and Shipped orders count as realized demand.
"""

from enum import Enum
from typing import FrozenSet, List


class OrderStatus(str, Enum):
    """Order lifecycle status."""
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    IN_TRANSIT = "In Transit"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    RETURNED = "Returned"


# Statuses that contribute to the sales series
QUALIFYING_STATUSES: FrozenSet[OrderStatus] = frozenset({
    OrderStatus.DELIVERED,
    OrderStatus.SHIPPED,
})


class ForecastModel(str, Enum):
    """Forecasting model identifiers."""
    SES = "ses"
    HOLT = "holt"
    HOLT_WINTERS = "holt_winters"

    @property
    def label(self) -> str:
        return MODEL_LABELS[self]


MODEL_LABELS = {
    ForecastModel.SES: "Simple Exponential Smoothing",
    ForecastModel.HOLT: "Holt's Method (Trend Corrected)",
    ForecastModel.HOLT_WINTERS: "Holt-Winters (Trend & Seasonality)",
}

# Feed record fields
ORDER_STRING_FIELDS: List[str] = ["id", "customerName", "returnPolicy"]
ORDER_DATE_FIELDS: List[str] = ["orderDate", "estimatedDelivery"]
ITEM_STRING_FIELDS: List[str] = ["name", "category"]
ITEM_NUMBER_FIELDS: List[str] = ["unitPrice", "quantity", "total"]

DATE_PATTERN: str = r"^\d{4}-\d{2}-\d{2}$"
MONTH_PATTERN: str = r"^\d{4}-\d{2}$"
DATE_LENGTH: int = 10
MONTH_LENGTH: int = 7

# Validation diagnostics kept per load
MAX_VALIDATION_ISSUES: int = 10

# Smoothing parameters
SES_ALPHA: float = 0.3
HOLT_ALPHA: float = 0.3
HOLT_BETA: float = 0.1
HW_ALPHA: float = 0.3
HW_BETA: float = 0.1
HW_GAMMA: float = 0.1
SEASON_LENGTH: int = 12

# Data requirements
MIN_TREND_OBSERVATIONS: int = 2
MIN_SEASONAL_OBSERVATIONS: int = 2 * SEASON_LENGTH
MIN_PRODUCT_HISTORY: int = 2

# AI commentary
CHAT_HISTORY_MESSAGES: int = 10
DEFAULT_AI_MODEL: str = "gemini-2.5-flash"

DEFAULT_DATA_URL: str = (
    "https://gist.githubusercontent.com/devesh-dkp/04406dd4928f7e869eb097b9e8f3e4da/raw/"
    "b06de629e7a69707e672da6737e59fb4be9736a5/my-mock-orders.json"
)
