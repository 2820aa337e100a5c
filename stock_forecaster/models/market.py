"""
Market data models.

``HistoricalSeries`` and ``TechnicalSnapshot`` seed the forecasting engine.
``PriceBar``, ``StockInfo``, ``TechnicalIndicators`` and ``MarketSnapshot``
carry what the market-data layer retrieved for one symbol.

All models are frozen.  A snapshot describes one fetch; a newer fetch
produces a new object rather than mutating the old one.
"""

from __future__ import annotations

import datetime as dt
import math
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class HistoricalSeries(BaseModel):
    """Chronological closing prices (oldest first) used to seed a model run.

    May be empty or hold a single price; downstream derivations fall back to
    neutral defaults in that case.
    """

    model_config = ConfigDict(frozen=True)

    prices: tuple[float, ...] = ()

    @field_validator("prices")
    @classmethod
    def validate_prices(cls, v: tuple[float, ...]) -> tuple[float, ...]:
        for i, p in enumerate(v):
            if not math.isfinite(p) or p <= 0:
                raise ValueError(f"prices[{i}] must be a finite positive number, got {p}.")
        return v

    def __len__(self) -> int:
        return len(self.prices)

    @property
    def first(self) -> Optional[float]:
        return self.prices[0] if self.prices else None

    @property
    def last(self) -> Optional[float]:
        return self.prices[-1] if self.prices else None


class TechnicalSnapshot(BaseModel):
    """Indicator bundle derived once from a ``HistoricalSeries``.

    Attributes:
        rsi: Relative strength index over the first 14 transitions, [0, 100].
        sma20: Mean of the whole supplied window (not a rolling 20-day SMA).
        volatility: Annualised standard deviation of log returns.
        support: ``min(prices) * 0.97``.
        resistance: ``max(prices) * 1.03``.
    """

    model_config = ConfigDict(frozen=True)

    rsi: float
    sma20: float
    volatility: float
    support: float
    resistance: float

    @field_validator("rsi")
    @classmethod
    def validate_rsi(cls, v: float) -> float:
        if not 0.0 <= v <= 100.0:
            raise ValueError(f"rsi must be in [0, 100], got {v}.")
        return v

    @field_validator("volatility")
    @classmethod
    def validate_volatility(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"volatility must be >= 0, got {v}.")
        return v


class PriceBar(BaseModel):
    """One daily OHLCV bar."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


class MacdValues(BaseModel):
    model_config = ConfigDict(frozen=True)

    line: float = 0.0
    signal: float = 0.0
    histogram: float = 0.0


class TechnicalIndicators(BaseModel):
    """Dashboard indicator set computed from the full daily close history."""

    model_config = ConfigDict(frozen=True)

    sma20: float = 0.0
    sma50: float = 0.0
    rsi: float = 50.0
    macd: MacdValues = MacdValues()


class FundamentalData(BaseModel):
    """Company fundamentals, real or sector-estimated.

    Ratios follow provider conventions: ``return_on_equity`` and
    ``dividend_yield`` are fractions (0.18 = 18%), ``debt_to_equity`` is a
    percentage (35 = 35%).
    """

    model_config = ConfigDict(frozen=True)

    market_cap: Optional[float] = None
    trailing_pe: Optional[float] = None
    price_to_book: Optional[float] = None
    dividend_yield: Optional[float] = None
    return_on_equity: Optional[float] = None
    current_ratio: Optional[float] = None
    debt_to_equity: Optional[float] = None
    trailing_eps: Optional[float] = None
    beta: Optional[float] = None
    sector: Optional[str] = None
    industry: Optional[str] = None
    description: Optional[str] = None
    fifty_two_week_high: Optional[float] = None
    fifty_two_week_low: Optional[float] = None
    is_estimated: bool = False


class StockInfo(FundamentalData):
    """Quote plus fundamentals for one symbol."""

    symbol: str
    long_name: str
    current_price: float
    previous_close: float = 0.0
    change: float = 0.0
    change_percent: float = 0.0
    day_high: Optional[float] = None
    day_low: Optional[float] = None
    volume: Optional[float] = None
    country: str = "India"


class MarketSnapshot(BaseModel):
    """Everything fetched for one symbol in one request."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    info: StockInfo
    bars: tuple[PriceBar, ...] = ()
    indicators: TechnicalIndicators = TechnicalIndicators()

    @model_validator(mode="after")
    def validate_bars_sorted(self) -> "MarketSnapshot":
        dates = [b.date for b in self.bars]
        if dates != sorted(dates):
            raise ValueError("bars must be in chronological order.")
        return self

    @property
    def closes(self) -> list[float]:
        return [b.close for b in self.bars]
