"""
Pydantic schemas for data validation and type safety.

These schemas define the structure of orders, derived sales records and
forecast results. Wire names stay camelCase through field aliases so the
order feed can be validated as-is.
"""

from datetime import datetime
from typing import List, Literal, Optional, Union
from pydantic import BaseModel, Field, ConfigDict

from .constants import (
    OrderStatus, ForecastModel, QUALIFYING_STATUSES,
    DATE_PATTERN, MONTH_PATTERN, MONTH_LENGTH
)

Number = Union[int, float]


class OrderItem(BaseModel):
    """Schema for a single order line."""

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        extra="ignore"
    )

    name: str = Field(..., description="Product name", min_length=1)
    category: str = Field(..., description="Product category", min_length=1)
    unit_price: float = Field(..., description="Price per unit", alias="unitPrice")
    quantity: Number = Field(..., description="Units ordered")
    total: float = Field(..., description="Line total")


class Order(BaseModel):
    """Schema for a customer order as delivered by the order feed."""

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        extra="ignore"
    )

    id: str = Field(..., description="Order identifier", min_length=1)
    customer_name: str = Field(..., description="Customer name", alias="customerName", min_length=1)
    order_date: str = Field(..., description="Order date (YYYY-MM-DD)", alias="orderDate", pattern=DATE_PATTERN)
    status: OrderStatus = Field(..., description="Order status")
    items: List[OrderItem] = Field(..., description="Order lines", min_length=1)
    estimated_delivery: str = Field(
        ..., description="Estimated delivery date (YYYY-MM-DD)",
        alias="estimatedDelivery", pattern=DATE_PATTERN
    )
    total_order_value: float = Field(..., description="Order value", alias="totalOrderValue")
    return_policy: str = Field(..., description="Return policy text", alias="returnPolicy", min_length=1)

    @property
    def order_month(self) -> str:
        """Order month as YYYY-MM."""
        return self.order_date[:MONTH_LENGTH]

    @property
    def is_realized(self) -> bool:
        """Whether the order counts as a realized sale."""
        return self.status in QUALIFYING_STATUSES


class SalesRecord(BaseModel):
    """Monthly sales of one product."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    product_name: str = Field(..., description="Product name", alias="productName")
    month: str = Field(..., description="Month (YYYY-MM)", pattern=MONTH_PATTERN)
    units_sold: Number = Field(..., description="Units sold in the month", alias="unitsSold")
    price: float = Field(..., description="Mean unit price in the month")


class ValidationIssue(BaseModel):
    """Validation failure of one feed record."""

    model_config = ConfigDict(populate_by_name=True)

    index: int = Field(..., description="Position of the record in the feed", alias="itemIndex")
    errors: List[str] = Field(default_factory=list, description="Validation errors")


class LoadReport(BaseModel):
    """Summary of an order feed load."""

    source: str = Field(..., description="URL or path the orders were loaded from")
    total_records: int = Field(..., description="Records in the feed")
    valid_records: int = Field(..., description="Records accepted")
    invalid_records: int = Field(..., description="Records rejected")
    issues: List[ValidationIssue] = Field(default_factory=list, description="First validation issues")
    loaded_at: datetime = Field(default_factory=datetime.now, description="Load time")


class ChatMessage(BaseModel):
    """A message of the support chat transcript."""

    sender: Literal["user", "bot"]
    text: str
    timestamp: datetime = Field(default_factory=datetime.now)


class ForecastInsights(BaseModel):
    """AI generated commentary on a forecast."""

    model_config = ConfigDict(populate_by_name=True)

    reasoning: str = Field(
        ...,
        description="A brief, one-sentence explanation for the forecast based on historical trends "
                    "(e.g., growth, decline, stability, seasonality)."
    )
    pricing_strategy: str = Field(
        ..., alias="pricingStrategy",
        description="A specific, one-sentence pricing suggestion."
    )
    marketing_suggestion: str = Field(
        ..., alias="marketingSuggestion",
        description="A creative, one-sentence marketing idea to either boost sales or manage high demand."
    )
    inventory_suggestion: str = Field(
        ..., alias="inventorySuggestion",
        description="A practical, one-sentence inventory recommendation."
    )


class ProductForecast(BaseModel):
    """Forecast of one product's monthly demand."""

    model_config = ConfigDict(populate_by_name=True)

    product_name: str = Field(..., alias="productName")
    months: List[str] = Field(..., description="Historical months, oldest first")
    history: List[Number] = Field(..., description="Units sold per historical month")
    forecast: List[float] = Field(..., description="Forecasted units per future month")
    forecast_months: List[str] = Field(..., alias="forecastMonths", description="Future months")
    model_requested: ForecastModel = Field(..., alias="modelRequested")
    model_used: ForecastModel = Field(..., alias="modelUsed")
    fell_back: bool = Field(..., alias="fellBack", description="Whether a simpler model was substituted")
    demand_forecast: int = Field(..., alias="demandForecast", description="Next month demand, rounded")
    insights: Optional[ForecastInsights] = None
