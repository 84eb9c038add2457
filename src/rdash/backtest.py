"""
Rolling backtests and evaluation metrics for the smoothing models.

Each origin forecasts one month ahead from all history before it, the way
the dashboard forecasts next month from the full series.
"""

import numpy as np
from typing import List, Dict, Any, Optional, Sequence
import logging

from .constants import ForecastModel, MIN_PRODUCT_HISTORY
from .models.forecast_api import ModelLike, forecast, resolve_model

logger = logging.getLogger(__name__)


def calculate_mape(actual: Sequence[float], forecast_values: Sequence[float]) -> float:
    """Calculate Mean Absolute Percentage Error."""
    if len(actual) != len(forecast_values):
        raise ValueError("Actual and forecast must have same length")

    errors = []
    for a, f in zip(actual, forecast_values):
        if a != 0:
            errors.append(abs((a - f) / a))
        else:
            errors.append(abs(f) if f != 0 else 0)

    return float(np.mean(errors) * 100)


def calculate_smape(actual: Sequence[float], forecast_values: Sequence[float]) -> float:
    """Calculate Symmetric Mean Absolute Percentage Error."""
    if len(actual) != len(forecast_values):
        raise ValueError("Actual and forecast must have same length")

    errors = []
    for a, f in zip(actual, forecast_values):
        denominator = (abs(a) + abs(f)) / 2
        if denominator != 0:
            errors.append(abs(a - f) / denominator)
        else:
            errors.append(0)

    return float(np.mean(errors) * 100)


def calculate_rmse(actual: Sequence[float], forecast_values: Sequence[float]) -> float:
    """Calculate Root Mean Square Error."""
    if len(actual) != len(forecast_values):
        raise ValueError("Actual and forecast must have same length")

    squared_errors = [(a - f) ** 2 for a, f in zip(actual, forecast_values)]
    return float(np.sqrt(np.mean(squared_errors)))


def rolling_backtest(
    series: Sequence[float],
    model: ModelLike,
    min_train_size: int = MIN_PRODUCT_HISTORY
) -> Dict[str, Any]:
    """
    One-step-ahead rolling origin evaluation on an expanding window.

    Args:
        series: Historical values, oldest first
        model: Model identifier
        min_train_size: History length of the first origin

    Returns:
        Dictionary with forecasts, actuals, metrics and the models actually used
    """
    values = list(series)
    model = resolve_model(model)

    if min_train_size < 1:
        raise ValueError("min_train_size must be at least 1")
    if len(values) < min_train_size + 1:
        raise ValueError(f"Series must have at least {min_train_size + 1} observations")

    forecasts = []
    actuals = []
    models_used = []

    for origin in range(min_train_size, len(values)):
        result = forecast(model, values[:origin], horizon=1)
        forecasts.append(result.values[0])
        actuals.append(values[origin])
        models_used.append(result.model_used)

    metrics = {
        "mape": calculate_mape(actuals, forecasts),
        "smape": calculate_smape(actuals, forecasts),
        "rmse": calculate_rmse(actuals, forecasts),
    }

    logger.info(
        f"Backtest {model.label}: {len(forecasts)} origins, "
        f"MAPE {metrics['mape']:.1f}%, RMSE {metrics['rmse']:.2f}"
    )

    return {
        "model": model,
        "origins": len(forecasts),
        "forecasts": forecasts,
        "actuals": actuals,
        "models_used": models_used,
        "metrics": metrics,
    }


def compare_models(
    series: Sequence[float],
    models: Optional[List[ModelLike]] = None,
    min_train_size: int = MIN_PRODUCT_HISTORY
) -> Dict[ForecastModel, Dict[str, Any]]:
    """Backtest several models on the same series."""
    if models is None:
        models = list(ForecastModel)

    return {
        resolve_model(m): rolling_backtest(series, m, min_train_size)
        for m in models
    }


def best_model(results: Dict[ForecastModel, Dict[str, Any]]) -> Optional[ForecastModel]:
    """Get the best model based on backtest MAPE."""
    if not results:
        return None

    return min(results.keys(), key=lambda m: results[m]["metrics"].get("mape", float("inf")))
