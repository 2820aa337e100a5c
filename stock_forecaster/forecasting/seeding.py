"""
Historical series seeding.

A forecast needs a price window to derive its technical snapshot from.  When
the caller has real closes it passes them in; otherwise a 30-point synthetic
walk is generated that starts 5% below the current price and drifts back
toward it.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

from stock_forecaster.forecasting.random_source import RandomSource
from stock_forecaster.models.market import HistoricalSeries

logger = logging.getLogger(__name__)

SYNTHETIC_POINTS = 30
SYNTHETIC_START_RATIO = 0.95
SYNTHETIC_BASE_VOLATILITY = 0.018
SYNTHETIC_REVERSION = 0.003
DEMO_FALLBACK_PRICE = 1400.0


def deviation_pct(anchor: float, price: float) -> float:
    """Percentage points by which ``price`` sits below ``anchor`` (negative when above)."""
    return (anchor - price) / anchor * 100


def resolve_current_price(
    price: Optional[float], fallback: float = DEMO_FALLBACK_PRICE
) -> float:
    """Return ``price`` when it is a usable seed, else the demo ``fallback``.

    Missing, non-finite and non-positive prices are all replaced.
    """
    if price is None or not math.isfinite(price) or price <= 0:
        logger.info("No usable current price (%r); using demo price %.2f", price, fallback)
        return fallback
    return price


def synthesize_history(
    current_price: float,
    rng: RandomSource,
    points: int = SYNTHETIC_POINTS,
) -> HistoricalSeries:
    """Generate a mean-reverting random walk ending near ``current_price``.

    Each step applies ``U(-0.5, 0.5) * 0.018`` noise plus a pull of
    0.003 per percentage point of deviation from the current price
    (``(current_price - p) / current_price * 100 * 0.003``), so the walk
    converges at any price scale.

    Raises:
        ValueError: If ``current_price <= 0`` or ``points < 2``.
    """
    if current_price <= 0:
        raise ValueError(f"current_price must be > 0, got {current_price}.")
    if points < 2:
        raise ValueError(f"points must be >= 2, got {points}.")

    prices: list[float] = []
    price = current_price * SYNTHETIC_START_RATIO
    for _ in range(points):
        random_walk = (rng.random() - 0.5) * SYNTHETIC_BASE_VOLATILITY
        mean_reversion = deviation_pct(current_price, price) * SYNTHETIC_REVERSION
        price = price * (1 + random_walk + mean_reversion)
        prices.append(price)
    return HistoricalSeries(prices=tuple(prices))


def resolve_series(
    current_price: float,
    rng: RandomSource,
    historical_prices: Optional[Sequence[float]] = None,
    points: int = SYNTHETIC_POINTS,
) -> HistoricalSeries:
    """Use the supplied closes when given, otherwise synthesize a window."""
    if historical_prices is not None:
        return HistoricalSeries(prices=tuple(historical_prices))
    return synthesize_history(current_price, rng, points=points)
