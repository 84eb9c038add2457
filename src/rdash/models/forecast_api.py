"""
Unified forecasting API with model selection and fallback.

A model whose data requirements are unmet is replaced by the next simpler
model (Holt-Winters -> Holt -> SES). The result always names the model that
actually ran.
"""

import math
from dataclasses import dataclass
from typing import List, Dict, Sequence, Union, Iterable
import logging

from ..constants import (
    ForecastModel, MODEL_LABELS,
    MIN_TREND_OBSERVATIONS, MIN_SEASONAL_OBSERVATIONS, MIN_PRODUCT_HISTORY, SEASON_LENGTH
)
from ..schemas import SalesRecord, ProductForecast
from ..aggregate import product_names, product_history, next_months
from .smoothing import (
    simple_exponential_smoothing,
    holt_forecast,
    holt_winters_forecast
)

logger = logging.getLogger(__name__)

ModelLike = Union[ForecastModel, str]


class UnknownModelError(ValueError):
    """The requested forecasting model does not exist."""


class InsufficientHistoryError(ValueError):
    """A product has too little history to forecast."""


class UnknownProductError(LookupError):
    """No sales records exist for a product."""


class NonFiniteForecastError(ValueError):
    """The forecast is infinite or NaN and cannot be reported as a unit count."""


@dataclass(frozen=True)
class ForecastResult:
    """Forecast values with the requested and the executed model."""
    values: List[float]
    model_requested: ForecastModel
    model_used: ForecastModel

    @property
    def fell_back(self) -> bool:
        return self.model_used != self.model_requested


_LABEL_LOOKUP: Dict[str, ForecastModel] = {
    label.lower(): model for model, label in MODEL_LABELS.items()
}


def resolve_model(model: ModelLike) -> ForecastModel:
    """
    Resolve a model identifier or display label.

    Raises:
        UnknownModelError: If the identifier is not recognized
    """
    if isinstance(model, ForecastModel):
        return model

    key = str(model).strip().lower()
    try:
        return ForecastModel(key)
    except ValueError:
        pass

    if key in _LABEL_LOOKUP:
        return _LABEL_LOOKUP[key]

    raise UnknownModelError(f"Unknown forecasting model: {model}")


def select_model(model: ForecastModel, n_observations: int) -> ForecastModel:
    """Apply the fallback policy for a series of the given length."""
    if model == ForecastModel.HOLT_WINTERS and n_observations < MIN_SEASONAL_OBSERVATIONS:
        model = ForecastModel.HOLT
    if model == ForecastModel.HOLT and n_observations < MIN_TREND_OBSERVATIONS:
        model = ForecastModel.SES
    return model


def forecast(model: ModelLike, series: Sequence[float], horizon: int = 1) -> ForecastResult:
    """
    Forecast a chronologically ordered series.

    Args:
        model: Model identifier ("ses", "holt", "holt_winters") or display label
        series: Historical values, oldest first
        horizon: Number of future periods (>= 1)

    Returns:
        ForecastResult with horizon values and the model actually used

    Raises:
        UnknownModelError: If the model is not recognized
        ValueError: If horizon is below 1
    """
    requested = resolve_model(model)

    if horizon < 1:
        raise ValueError(f"Horizon must be at least 1, got {horizon}")

    values = list(series)
    used = select_model(requested, len(values))

    if used != requested:
        logger.warning(
            f"{requested.label} requires more data than the {len(values)} observations available. "
            f"Falling back to {used.label}."
        )

    if used == ForecastModel.SES:
        forecast_values = simple_exponential_smoothing(values, horizon)
    elif used == ForecastModel.HOLT:
        forecast_values = holt_forecast(values, horizon)
    else:
        forecast_values = holt_winters_forecast(values, horizon, season_length=SEASON_LENGTH)

    return ForecastResult(values=forecast_values, model_requested=requested, model_used=used)


def run_forecasting_model(model: ModelLike, series: Sequence[float], horizon: int = 1) -> List[float]:
    """Forecast values only, for callers that do not need the model report."""
    return forecast(model, series, horizon).values


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer with halves rounded up.

    Raises:
        NonFiniteForecastError: If value is infinite or NaN
    """
    if not math.isfinite(value):
        raise NonFiniteForecastError(
            "The forecast is not a finite number. Check the product's sales history for extreme quantities."
        )
    return int(math.floor(value + 0.5))


class DemandForecaster:
    """Per-product forecasting over monthly sales records."""

    def __init__(self, records: Iterable[SalesRecord]):
        self.records = list(records)

    def products(self) -> List[str]:
        return product_names(self.records)

    def history(self, product: str) -> List[SalesRecord]:
        """Chronological sales records of a product."""
        history = product_history(self.records, product)
        if not history:
            raise UnknownProductError(f"No sales data found for product: {product}")
        return history

    def series(self, product: str) -> List[float]:
        return [r.units_sold for r in self.history(product)]

    def forecast_product(
        self,
        product: str,
        model: ModelLike = ForecastModel.HOLT_WINTERS,
        horizon: int = 1
    ) -> ProductForecast:
        """
        Forecast the monthly demand of one product.

        Raises:
            UnknownProductError: If the product has no sales records
            InsufficientHistoryError: If fewer than two months of history exist
            UnknownModelError: If the model is not recognized
            NonFiniteForecastError: If the history produces an infinite or NaN forecast
        """
        history = self.history(product)
        units = [r.units_sold for r in history]

        if len(units) < MIN_PRODUCT_HISTORY:
            raise InsufficientHistoryError(
                "Not enough historical data to generate a forecast for this product."
            )

        result = forecast(model, units, horizon)
        months = [r.month for r in history]

        logger.info(
            f"Forecast for {product}: {result.values[0]:.2f} units next month "
            f"({result.model_used.label}, {len(units)} months of history)"
        )

        return ProductForecast(
            product_name=product,
            months=months,
            history=units,
            forecast=result.values,
            forecast_months=next_months(months[-1], horizon),
            model_requested=result.model_requested,
            model_used=result.model_used,
            fell_back=result.fell_back,
            demand_forecast=round_half_up(result.values[0]),
        )
