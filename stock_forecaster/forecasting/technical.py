"""
Technical snapshot derivation.

The snapshot is a handful of scalar levels read off the seed window.  It is
deliberately cruder than ``analysis.indicators``: RSI only looks at the
first 14 transitions of the window and ``sma20`` is the mean of the whole
window, whatever its length.

All functions here are pure.
"""

from __future__ import annotations

import math
import statistics

from stock_forecaster.models.market import HistoricalSeries, TechnicalSnapshot

RSI_PERIOD = 14
TRADING_DAYS_PER_YEAR = 252
TREND_WINDOW = 5
DEFAULT_VOLATILITY = 0.02


def derive_snapshot(series: HistoricalSeries) -> TechnicalSnapshot:
    """Compute RSI, window mean, annualised volatility and support/resistance.

    Windows shorter than two points get neutral defaults: RSI 50, volatility
    0.02 and support/resistance 4% either side of the single price.
    """
    prices = series.prices
    n = len(prices)

    if n < 2:
        anchor = prices[0] if prices else 0.0
        return TechnicalSnapshot(
            rsi=50.0,
            sma20=anchor,
            volatility=DEFAULT_VOLATILITY,
            support=anchor * 0.96,
            resistance=anchor * 1.04,
        )

    gains = 0.0
    losses = 0.0
    for i in range(1, min(RSI_PERIOD, n - 1) + 1):
        change = prices[i] - prices[i - 1]
        if change > 0:
            gains += change
        else:
            losses -= change
    rs = gains / max(losses, 0.01)
    rsi = 100 - 100 / (1 + rs)

    log_returns = [math.log(prices[i] / prices[i - 1]) for i in range(1, n)]
    volatility = statistics.pstdev(log_returns) * math.sqrt(TRADING_DAYS_PER_YEAR)

    return TechnicalSnapshot(
        rsi=rsi,
        sma20=statistics.fmean(prices),
        volatility=volatility,
        support=min(prices) * 0.97,
        resistance=max(prices) * 1.03,
    )


def trend_strength(series: HistoricalSeries) -> float:
    """Directional consistency of the last five points, in [-1, 1].

    ``(up_moves - down_moves) / (k - 1)`` over the trailing ``k <= 5``
    prices; flat moves count as neither.
    """
    if len(series) < 2:
        return 0.0
    recent = series.prices[-TREND_WINDOW:]
    up = sum(1 for a, b in zip(recent, recent[1:]) if b > a)
    down = sum(1 for a, b in zip(recent, recent[1:]) if b < a)
    return (up - down) / (len(recent) - 1)


def long_term_direction(series: HistoricalSeries) -> int:
    """Sign of ``last - first``; 0 for flat or single-point windows."""
    if len(series) < 2:
        return 0
    delta = series.prices[-1] - series.prices[0]
    if delta > 0:
        return 1
    if delta < 0:
        return -1
    return 0
