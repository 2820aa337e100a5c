"""Technical indicator calculations on daily closes."""

from __future__ import annotations

from typing import Sequence

import numpy as np
import pandas as pd

from stock_forecaster.models.market import MacdValues, PriceBar, TechnicalIndicators

RSI_PERIOD = 14


def _latest_sma(closes: pd.Series, period: int) -> float:
    """Latest ``period``-day SMA, or the last close when the series is shorter."""
    if len(closes) < period:
        return float(closes.iloc[-1])
    return float(closes.tail(period).mean())


def _latest_rsi(closes: pd.Series, period: int = RSI_PERIOD) -> float:
    """RSI from simple averages of the last ``period`` gains and losses.

    Fewer than ``period + 1`` closes gives 50; no losses in the window gives 100.
    """
    if len(closes) < period + 1:
        return 50.0
    delta = closes.diff().dropna()
    avg_gain = float(delta.clip(lower=0).tail(period).mean())
    avg_loss = float((-delta.clip(upper=0)).tail(period).mean())
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100 - 100 / (1 + rs)


def _macd(closes: pd.Series) -> tuple[pd.Series, pd.Series]:
    """MACD line (EMA12 - EMA26) and its EMA9 signal, EMAs seeded with the first close."""
    ema12 = closes.ewm(span=12, adjust=False).mean()
    ema26 = closes.ewm(span=26, adjust=False).mean()
    line = ema12 - ema26
    signal = line.ewm(span=9, adjust=False).mean()
    return line, signal


def compute_indicators(closes: Sequence[float]) -> TechnicalIndicators:
    """Latest SMA20, SMA50, RSI14 and MACD for a chronological close series."""
    if len(closes) == 0:
        return TechnicalIndicators()

    series = pd.Series(closes, dtype=float)
    line, signal = _macd(series)
    macd_line = float(line.iloc[-1])
    macd_signal = float(signal.iloc[-1])

    return TechnicalIndicators(
        sma20=_latest_sma(series, 20),
        sma50=_latest_sma(series, 50),
        rsi=_latest_rsi(series),
        macd=MacdValues(
            line=macd_line,
            signal=macd_signal,
            histogram=macd_line - macd_signal,
        ),
    )


def bars_to_frame(bars: Sequence[PriceBar]) -> pd.DataFrame:
    """OHLCV frame indexed by date."""
    frame = pd.DataFrame(
        [b.model_dump() for b in bars],
        columns=["date", "open", "high", "low", "close", "volume"],
    )
    return frame.set_index("date")


def add_indicators(frame: pd.DataFrame) -> pd.DataFrame:
    """Return a copy of an OHLCV frame with rolling indicator columns for charting."""
    enriched = frame.copy()
    close = enriched["close"]

    enriched["sma_20"] = close.rolling(window=20, min_periods=20).mean()
    enriched["sma_50"] = close.rolling(window=50, min_periods=50).mean()

    delta = close.diff()
    avg_gain = delta.clip(lower=0).rolling(window=RSI_PERIOD, min_periods=RSI_PERIOD).mean()
    avg_loss = (-delta.clip(upper=0)).rolling(window=RSI_PERIOD, min_periods=RSI_PERIOD).mean()
    rs = avg_gain / avg_loss.replace(0, np.nan)
    enriched["rsi_14"] = (100 - 100 / (1 + rs)).fillna(50)

    line, signal = _macd(close)
    enriched["macd"] = line
    enriched["macd_signal"] = signal
    enriched["macd_hist"] = line - signal
    return enriched
