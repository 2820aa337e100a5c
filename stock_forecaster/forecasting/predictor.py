"""
Single-model predictor.

Walks one archetype forward ``days`` simulated trading days from the seed
price.  The walk is a fold: ``DayState(price, rsi)`` goes into ``_step`` and
a new ``DayState`` plus the day's ``PredictionPoint`` come out.  Nothing on
the predictor changes while a run is in progress, so one predictor can
produce any number of independent runs.

Per-day draws from the random source, in order:
  1. the random component of the price move
  2. the contextual-trend jitter (contextual-trend archetype only)
  3. the RSI drift magnitude
  4. the momentum-score jitter
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date
from functools import cached_property
from typing import Optional

from stock_forecaster.forecasting.archetypes import ArchetypeModel, StepContext
from stock_forecaster.forecasting.random_source import RandomSource
from stock_forecaster.forecasting.seeding import deviation_pct
from stock_forecaster.forecasting.technical import (
    DEFAULT_VOLATILITY,
    TRADING_DAYS_PER_YEAR,
    derive_snapshot,
    long_term_direction,
    trend_strength,
)
from stock_forecaster.models.forecast import PredictionPoint, Trend
from stock_forecaster.models.market import HistoricalSeries, TechnicalSnapshot
from stock_forecaster.utils.time_utils import forecast_dates, today_ist

logger = logging.getLogger(__name__)

MIN_PRICE = 0.01
RSI_FLOOR = 25.0
RSI_CEILING = 75.0
CONFIDENCE_FLOOR = 68.0
MAX_VOLATILITY_PENALTY = 15.0
BAND_SCALE = 0.08
TREND_THRESHOLD = 0.002
MEAN_REVERSION = 0.001


@dataclass(frozen=True)
class DayState:
    price: float
    rsi: float


def effective_volatility(snapshot: TechnicalSnapshot) -> float:
    """Snapshot volatility, or the 0.02 default when it is zero."""
    return snapshot.volatility or DEFAULT_VOLATILITY


def day_confidence(base_confidence: float, day: int, sigma: float) -> float:
    """Confidence for ``day``: linear decay to 68 minus a volatility penalty, floored at 68."""
    time_confidence = max(CONFIDENCE_FLOOR, base_confidence - day * 1.5)
    volatility_penalty = min(MAX_VOLATILITY_PENALTY, sigma * 80)
    return max(CONFIDENCE_FLOOR, time_confidence - volatility_penalty)


def classify_change(change: float) -> Trend:
    if change > TREND_THRESHOLD:
        return "up"
    if change < -TREND_THRESHOLD:
        return "down"
    return "neutral"


class SingleModelPredictor:
    """Generates prediction runs for one archetype from one seed window.

    The technical snapshot, trend strength and long-term direction are
    derived from ``series`` on first use and cached.

    Args:
        model:         The archetype to simulate.
        series:        Seed price window.
        current_price: Price the run starts from.

    Raises:
        ValueError: If ``current_price <= 0``.
    """

    def __init__(
        self,
        model: ArchetypeModel,
        series: HistoricalSeries,
        current_price: float,
    ) -> None:
        if not current_price > 0:
            raise ValueError(f"current_price must be > 0, got {current_price}.")
        self.model = model
        self.series = series
        self.current_price = current_price

    @cached_property
    def snapshot(self) -> TechnicalSnapshot:
        return derive_snapshot(self.series)

    @cached_property
    def trend_strength(self) -> float:
        return trend_strength(self.series)

    @cached_property
    def direction(self) -> int:
        return long_term_direction(self.series)

    @property
    def sigma(self) -> float:
        return effective_volatility(self.snapshot)

    def predict(
        self,
        days: int,
        rng: RandomSource,
        start_date: Optional[date] = None,
    ) -> tuple[PredictionPoint, ...]:
        """Simulate ``days`` days and return one point per day.

        Dates run from ``start_date + 1`` (default: today on the exchange
        clock) in steps of one calendar day.

        Raises:
            ValueError: If ``days < 1``.
        """
        dates = forecast_dates(start_date or today_ist(), days)

        state = DayState(price=self.current_price, rsi=self.snapshot.rsi)
        points: list[PredictionPoint] = []
        for day, point_date in enumerate(dates, start=1):
            state, point = self._step(day, point_date, state, rng)
            points.append(point)

        logger.debug(
            "%s run complete | days=%d | final=%.2f",
            self.model.archetype.value, days, points[-1].predicted_price,
        )
        return tuple(points)

    def _step(
        self,
        day: int,
        point_date: date,
        state: DayState,
        rng: RandomSource,
    ) -> tuple[DayState, PredictionPoint]:
        sigma = self.sigma
        volatility_factor = sigma * math.sqrt(day / TRADING_DAYS_PER_YEAR)
        ctx = StepContext(
            day=day,
            price=state.price,
            rsi=state.rsi,
            current_price=self.current_price,
            trend_strength=self.trend_strength,
            direction=self.direction,
            time_decay=math.exp(-day / 30),
            random_component=rng.uniform(-0.5, 0.5) * volatility_factor,
            mean_reversion=deviation_pct(self.current_price, state.price) * MEAN_REVERSION,
        )
        change = self.model.price_change(ctx, rng)

        price = max(state.price * (1 + change), MIN_PRICE)
        rsi_drift = rng.uniform(0.0, 2.0)
        rsi = state.rsi + rsi_drift if change > 0 else state.rsi - rsi_drift
        rsi = min(RSI_CEILING, max(RSI_FLOOR, rsi))

        confidence = day_confidence(self.model.params.base_confidence, day, sigma)
        half_width = (100 - confidence) / 100 * price * BAND_SCALE
        momentum_jitter = rng.uniform(0.0, 20.0)

        point = PredictionPoint(
            date=point_date,
            predicted_price=round(price, 2),
            upper_bound=round(price + half_width, 2),
            lower_bound=round(max(0.0, price - half_width), 2),
            confidence=round(confidence),
            trend=classify_change(change),
            volatility_score=round(max(65.0, 100 - sigma * 400)),
            momentum_score=round(50 + self.trend_strength * 100 + momentum_jitter),
            rsi=round(rsi),
            support=round(self.snapshot.support, 2),
            resistance=round(self.snapshot.resistance, 2),
        )
        return DayState(price=price, rsi=rsi), point
