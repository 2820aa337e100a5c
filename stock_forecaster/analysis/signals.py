"""
Indicator signals.

Each indicator maps to one of ``Strong Buy``, ``Buy``, ``Hold``, ``Sell``,
``Strong Sell`` (MACD may also report ``No Data``):

  RSI          : > 70 Strong Sell, > 60 Sell, < 30 Strong Buy, < 40 Buy
  SMA (20, 50) : price deviation from the average, > 5% Strong Buy,
                 > 2% Buy, < -5% Strong Sell, < -2% Sell
  MACD         : line - signal, > 0.5 Strong Buy, > 0 Buy,
                 < -0.5 Strong Sell, < 0 Sell

Overall (first match wins)
--------------------------
    1. Strong Buy  : >= 2 strong buys OR >= 3 bullish   conf min(95, 60 + 10*bullish)
    2. Buy         : bullish > bearish                  conf 55 + 5*bullish
    3. Strong Sell : >= 2 strong sells OR >= 3 bearish  conf min(95, 60 + 10*bearish)
    4. Sell        : bearish > bullish                  conf 55 + 5*bearish
    5. Hold        : mixed                              conf 50
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

from stock_forecaster.models.market import MacdValues, TechnicalIndicators

SignalLabel = Literal["Strong Buy", "Buy", "Hold", "Sell", "Strong Sell", "No Data"]
Strength = Literal["Strong", "Medium", "Neutral", "N/A"]

_BULLISH = {"Strong Buy", "Buy"}
_BEARISH = {"Strong Sell", "Sell"}


class TechnicalSignal(BaseModel):
    """One indicator's reading."""

    model_config = ConfigDict(frozen=True)

    indicator: str
    signal: SignalLabel
    strength: Strength
    action: str


class OverallSignal(BaseModel):
    model_config = ConfigDict(frozen=True)

    signal: SignalLabel
    confidence: int
    action: str
    components: tuple[TechnicalSignal, ...]


def rsi_signal(rsi: float) -> TechnicalSignal:
    if rsi > 70:
        return TechnicalSignal(indicator="RSI (14)", signal="Strong Sell", strength="Strong",
                               action="Consider selling - stock is overbought")
    if rsi > 60:
        return TechnicalSignal(indicator="RSI (14)", signal="Sell", strength="Medium",
                               action="Watch for selling opportunities")
    if rsi < 30:
        return TechnicalSignal(indicator="RSI (14)", signal="Strong Buy", strength="Strong",
                               action="Consider buying - stock is oversold")
    if rsi < 40:
        return TechnicalSignal(indicator="RSI (14)", signal="Buy", strength="Medium",
                               action="Good buying opportunity emerging")
    return TechnicalSignal(indicator="RSI (14)", signal="Hold", strength="Neutral",
                           action="Neutral zone - monitor closely")


def sma_signal(price: float, sma: float, period: int) -> TechnicalSignal:
    """Signal from the price's percentage deviation from a moving average.

    A zero average is treated as the price itself, which reads as Hold.
    """
    name = f"SMA ({period})"
    sma = sma or price
    deviation = (price - sma) / sma * 100 if sma else 0.0

    if deviation > 5:
        return TechnicalSignal(indicator=name, signal="Strong Buy", strength="Strong",
                               action=f"Price {deviation:.1f}% above {period}-day average")
    if deviation > 2:
        return TechnicalSignal(indicator=name, signal="Buy", strength="Medium",
                               action=f"Price trending above {period}-day average")
    if deviation < -5:
        return TechnicalSignal(indicator=name, signal="Strong Sell", strength="Strong",
                               action=f"Price {abs(deviation):.1f}% below {period}-day average")
    if deviation < -2:
        return TechnicalSignal(indicator=name, signal="Sell", strength="Medium",
                               action=f"Price trending below {period}-day average")
    return TechnicalSignal(indicator=name, signal="Hold", strength="Neutral",
                           action=f"Price near {period}-day average")


def macd_signal(macd: MacdValues | None) -> TechnicalSignal:
    """Signal from the MACD line/signal crossover.

    A missing MACD, or a zero line or signal, reports ``No Data``.
    """
    if macd is None or not macd.line or not macd.signal:
        return TechnicalSignal(indicator="MACD", signal="No Data", strength="N/A",
                               action="Insufficient data for analysis")

    crossover = macd.line - macd.signal
    if crossover > 0.5:
        return TechnicalSignal(indicator="MACD", signal="Strong Buy", strength="Strong",
                               action="MACD line strongly above signal - bullish momentum")
    if crossover > 0:
        return TechnicalSignal(indicator="MACD", signal="Buy", strength="Medium",
                               action="MACD line above signal - positive momentum")
    if crossover < -0.5:
        return TechnicalSignal(indicator="MACD", signal="Strong Sell", strength="Strong",
                               action="MACD line strongly below signal - bearish momentum")
    if crossover < 0:
        return TechnicalSignal(indicator="MACD", signal="Sell", strength="Medium",
                               action="MACD line below signal - negative momentum")
    return TechnicalSignal(indicator="MACD", signal="Hold", strength="Neutral",
                           action="MACD signals are mixed")


def combine_signals(components: tuple[TechnicalSignal, ...]) -> OverallSignal:
    """Vote the individual readings into an overall signal."""
    labels = [c.signal for c in components]
    strong_buys = labels.count("Strong Buy")
    strong_sells = labels.count("Strong Sell")
    bullish = sum(1 for s in labels if s in _BULLISH)
    bearish = sum(1 for s in labels if s in _BEARISH)

    if strong_buys >= 2 or bullish >= 3:
        return OverallSignal(signal="Strong Buy", confidence=min(95, 60 + bullish * 10),
                             action="Multiple indicators suggest strong buying opportunity",
                             components=components)
    if bullish > bearish:
        return OverallSignal(signal="Buy", confidence=55 + bullish * 5,
                             action="Majority of indicators suggest buying",
                             components=components)
    if strong_sells >= 2 or bearish >= 3:
        return OverallSignal(signal="Strong Sell", confidence=min(95, 60 + bearish * 10),
                             action="Multiple indicators suggest strong selling pressure",
                             components=components)
    if bearish > bullish:
        return OverallSignal(signal="Sell", confidence=55 + bearish * 5,
                             action="Majority of indicators suggest selling",
                             components=components)
    return OverallSignal(signal="Hold", confidence=50,
                         action="Mixed signals - maintain current position",
                         components=components)


def evaluate_signals(price: float, indicators: TechnicalIndicators) -> OverallSignal:
    """Read RSI, SMA20, SMA50 and MACD against ``price`` and combine them."""
    components = (
        rsi_signal(indicators.rsi or 50.0),
        sma_signal(price, indicators.sma20, 20),
        sma_signal(price, indicators.sma50, 50),
        macd_signal(indicators.macd),
    )
    return combine_signals(components)
