"""
Exponential smoothing models for monthly demand forecasting.

Each model is a fold over the series: an immutable state tuple is carried
from one observation to the next, and the forecast is projected from the
final state.
"""

from functools import reduce
from typing import List, NamedTuple, Sequence, Tuple
import logging

import numpy as np

from ..constants import (
    SES_ALPHA, HOLT_ALPHA, HOLT_BETA, HW_ALPHA, HW_BETA, HW_GAMMA,
    SEASON_LENGTH, MIN_TREND_OBSERVATIONS
)

logger = logging.getLogger(__name__)


class TrendState(NamedTuple):
    """Level and trend after an observation."""
    level: float
    trend: float


class SeasonalState(NamedTuple):
    """Level, trend and seasonal indices after an observation."""
    level: float
    trend: float
    seasonal: Tuple[float, ...]


def _ratio(numerator: float, denominator: float, default: float) -> float:
    return numerator / denominator if denominator != 0 else default


def simple_exponential_smoothing(
    series: Sequence[float],
    horizon: int,
    alpha: float = SES_ALPHA
) -> List[float]:
    """
    Simple exponential smoothing with a flat projection.

    An empty series forecasts zero demand.
    """
    if len(series) == 0:
        return [0.0] * horizon

    level = reduce(
        lambda smoothed, x: alpha * x + (1 - alpha) * smoothed,
        series[1:],
        float(series[0])
    )
    return [level] * horizon


def _holt_step(state: TrendState, x: float, alpha: float, beta: float) -> TrendState:
    level = alpha * x + (1 - alpha) * (state.level + state.trend)
    trend = beta * (level - state.level) + (1 - beta) * state.trend
    return TrendState(level, trend)


def holt_state(
    series: Sequence[float],
    alpha: float = HOLT_ALPHA,
    beta: float = HOLT_BETA
) -> TrendState:
    """Final level and trend of Holt's method over a series."""
    if len(series) < MIN_TREND_OBSERVATIONS:
        raise ValueError(f"Series must have at least {MIN_TREND_OBSERVATIONS} observations")

    initial = TrendState(float(series[0]), float(series[1] - series[0]))
    return reduce(lambda state, x: _holt_step(state, x, alpha, beta), series[1:], initial)


def holt_forecast(
    series: Sequence[float],
    horizon: int,
    alpha: float = HOLT_ALPHA,
    beta: float = HOLT_BETA
) -> List[float]:
    """Holt's linear trend method (double exponential smoothing)."""
    state = holt_state(series, alpha, beta)
    return [state.level + h * state.trend for h in range(1, horizon + 1)]


def initial_seasonal_indices(series: Sequence[float], season_length: int = SEASON_LENGTH) -> Tuple[float, ...]:
    """
    Seed seasonal indices as each early observation over the series mean.

    Observations are reused cyclically when the series is shorter than the
    season. This is a rough seed, not a seasonal decomposition. A zero mean
    seeds neutral indices.
    """
    n = len(series)
    mean = float(np.mean(series))
    return tuple(_ratio(float(series[k % n]), mean, 1.0) for k in range(season_length))


def _holt_winters_step(
    state: SeasonalState,
    observation: Tuple[int, float],
    alpha: float,
    beta: float,
    gamma: float,
) -> SeasonalState:
    i, x = observation
    slot = i % len(state.seasonal)
    index = state.seasonal[slot]

    # A zero seasonal index leaves the observation unadjusted
    level = alpha * _ratio(x, index, x) + (1 - alpha) * (state.level + state.trend)
    trend = beta * (level - state.level) + (1 - beta) * state.trend
    new_index = gamma * _ratio(x, level, 1.0) + (1 - gamma) * index

    seasonal = state.seasonal[:slot] + (new_index,) + state.seasonal[slot + 1:]
    return SeasonalState(level, trend, seasonal)


def holt_winters_state(
    series: Sequence[float],
    season_length: int = SEASON_LENGTH,
    alpha: float = HW_ALPHA,
    beta: float = HW_BETA,
    gamma: float = HW_GAMMA
) -> SeasonalState:
    """Final state of multiplicative Holt-Winters over a series."""
    if len(series) < season_length:
        raise ValueError(f"Series must have at least {season_length} observations")

    initial = SeasonalState(
        level=float(series[0]),
        trend=0.0,
        seasonal=initial_seasonal_indices(series, season_length)
    )
    return reduce(
        lambda state, obs: _holt_winters_step(state, obs, alpha, beta, gamma),
        enumerate(float(x) for x in series),
        initial
    )


def holt_winters_forecast(
    series: Sequence[float],
    horizon: int,
    season_length: int = SEASON_LENGTH,
    alpha: float = HW_ALPHA,
    beta: float = HW_BETA,
    gamma: float = HW_GAMMA
) -> List[float]:
    """Holt-Winters triple exponential smoothing with multiplicative seasonality."""
    state = holt_winters_state(series, season_length, alpha, beta, gamma)
    n = len(series)
    return [
        (state.level + h * state.trend) * state.seasonal[(n + h - 1) % season_length]
        for h in range(1, horizon + 1)
    ]
