"""
Shared pytest fixtures for the stock forecaster test suite.

Provides:
  - ``rng``: A seeded ``random.Random`` for reproducible stochastic tests.
  - ``midpoint_rng``: A ``FixedRandom`` that always returns the midpoint of
    its range, so every random component in the engine is zero.
  - Sample series, market data and news factories.
"""

from __future__ import annotations

import random
from datetime import date, datetime, timedelta, timezone

import pytest

from stock_forecaster.models.market import (
    FundamentalData,
    HistoricalSeries,
    MacdValues,
    MarketSnapshot,
    PriceBar,
    StockInfo,
    TechnicalIndicators,
)


class FixedRandom:
    """Random source that returns one fixed fraction for every draw.

    ``uniform(a, b)`` returns ``a + (b - a) * value``; with the default 0.5
    that is the midpoint of the range.
    """

    def __init__(self, value: float = 0.5) -> None:
        self.value = value
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        return self.value

    def uniform(self, a: float, b: float) -> float:
        self.calls += 1
        return a + (b - a) * self.value


START_DATE = date(2026, 1, 5)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


@pytest.fixture
def midpoint_rng() -> FixedRandom:
    return FixedRandom(0.5)


@pytest.fixture
def start_date() -> date:
    return START_DATE


@pytest.fixture
def uptrend_series() -> HistoricalSeries:
    """Five closes rising overall with one dip: trend strength 0.5."""
    return HistoricalSeries(prices=(1400.0, 1410.0, 1420.0, 1415.0, 1430.0))


@pytest.fixture
def flat_series() -> HistoricalSeries:
    return HistoricalSeries(prices=(1000.0,) * 20)


@pytest.fixture
def choppy_series() -> HistoricalSeries:
    """Thirty closes alternating 1000 / 1100: very high annualised volatility."""
    return HistoricalSeries(prices=tuple(1100.0 if i % 2 else 1000.0 for i in range(30)))


# ── Market data factories ─────────────────────────────────────────────────────

def make_bars(closes: list[float], start: date = date(2025, 1, 1)) -> tuple[PriceBar, ...]:
    return tuple(
        PriceBar(
            date=start + timedelta(days=i),
            open=c, high=c * 1.01, low=c * 0.99, close=c, volume=1_000_000,
        )
        for i, c in enumerate(closes)
    )


@pytest.fixture
def sample_fundamentals() -> FundamentalData:
    return FundamentalData(
        market_cap=14_000_000_000_000,
        trailing_pe=18.0,
        price_to_book=4.0,
        dividend_yield=0.015,
        return_on_equity=0.22,
        current_ratio=2.1,
        debt_to_equity=12.0,
        trailing_eps=210.0,
        beta=0.8,
        sector="Technology",
        industry="Information Technology Services",
    )


@pytest.fixture
def sample_info(sample_fundamentals) -> StockInfo:
    return StockInfo(
        **sample_fundamentals.model_dump(),
        symbol="TCS.NS",
        long_name="Tata Consultancy Services Limited",
        current_price=3850.0,
        previous_close=3800.0,
        change=50.0,
        change_percent=1.3158,
        day_high=3870.0,
        day_low=3790.0,
        volume=2_500_000,
    )


@pytest.fixture
def sample_snapshot(sample_info) -> MarketSnapshot:
    closes = [3700.0 + i * 2.5 for i in range(60)]
    return MarketSnapshot(
        symbol="TCS.NS",
        info=sample_info,
        bars=make_bars(closes),
        indicators=TechnicalIndicators(
            sma20=3800.0, sma50=3760.0, rsi=62.0,
            macd=MacdValues(line=12.0, signal=10.0, histogram=2.0),
        ),
    )


@pytest.fixture
def fixed_clock():
    now = datetime(2026, 1, 5, 9, 30, tzinfo=timezone.utc)
    return lambda: now
