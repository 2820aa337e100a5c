"""
Forecast output models.

``PredictionPoint`` is one simulated trading day of one model run.  A run is
a tuple of points with strictly consecutive dates.

``ForecastResult`` bundles everything produced for a single
``ForecastRequest``: the primary run (single archetype or ensemble), the
member runs when the ensemble was selected, trading metrics, feature
importance, market-factor scores and the strategy verdict.

All models are frozen.  A forecast is produced once per request and never
mutated; re-running the request produces a new result.
"""

from __future__ import annotations

import datetime as dt
from enum import StrEnum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from stock_forecaster.models.market import TechnicalSnapshot
from stock_forecaster.taxonomy.archetype_taxonomy import ModelSelection

Trend = Literal["up", "down", "neutral"]


class PredictionPoint(BaseModel):
    """One simulated day.

    Attributes:
        date: Calendar date of the simulated close.
        predicted_price: Central price estimate (2 dp for single runs).
        upper_bound: Top of the confidence band.
        lower_bound: Bottom of the confidence band, never negative.
        confidence: Integer confidence in [68, 99].
        trend: Direction of the day's move.
        volatility_score: Integer in [0, 100]; higher means calmer.
        momentum_score: Integer momentum gauge around 50.
        rsi: Simulated RSI after the day's move.
        support: Support level carried from the technical snapshot.
        resistance: Resistance level carried from the technical snapshot.
    """

    model_config = ConfigDict(frozen=True)

    date: dt.date
    predicted_price: float
    upper_bound: float
    lower_bound: float
    confidence: int
    trend: Trend
    volatility_score: int
    momentum_score: int
    rsi: int
    support: float
    resistance: float

    @field_validator("confidence")
    @classmethod
    def validate_confidence(cls, v: int) -> int:
        if not 68 <= v <= 99:
            raise ValueError(f"confidence must be in [68, 99], got {v}.")
        return v

    @field_validator("volatility_score", "rsi")
    @classmethod
    def validate_percent_scale(cls, v: int) -> int:
        if not 0 <= v <= 100:
            raise ValueError(f"value must be in [0, 100], got {v}.")
        return v

    @model_validator(mode="after")
    def validate_band_ordering(self) -> "PredictionPoint":
        if self.lower_bound < 0:
            raise ValueError(f"lower_bound must be >= 0, got {self.lower_bound}.")
        if not self.lower_bound <= self.predicted_price <= self.upper_bound:
            raise ValueError(
                f"Expected lower_bound <= predicted_price <= upper_bound, got "
                f"{self.lower_bound} / {self.predicted_price} / {self.upper_bound}."
            )
        return self


class PerformanceMetrics(BaseModel):
    """Synthetic trading-performance figures for the selected model."""

    model_config = ConfigDict(frozen=True)

    mape: float
    rmse: float
    directional_accuracy: float
    sharpe_ratio: float
    max_drawdown: float
    win_rate: float
    avg_return: float

    @field_validator("directional_accuracy")
    @classmethod
    def validate_directional_accuracy(cls, v: float) -> float:
        if v > 95:
            raise ValueError(f"directional_accuracy must be <= 95, got {v}.")
        return v

    @field_validator("win_rate")
    @classmethod
    def validate_win_rate(cls, v: float) -> float:
        if v > 92:
            raise ValueError(f"win_rate must be <= 92, got {v}.")
        return v


class FeatureImportance(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    importance: int

    @field_validator("importance")
    @classmethod
    def validate_importance(cls, v: int) -> int:
        if not 30 <= v <= 100:
            raise ValueError(f"importance must be in [30, 100], got {v}.")
        return v


class MarketFactors(BaseModel):
    """Headline factor scores shown beside the forecast chart."""

    model_config = ConfigDict(frozen=True)

    technical_score: float
    fundamental_score: float
    sentiment_score: float
    market_regime_score: float
    volume_score: float
    macro_score: float


class Verdict(StrEnum):
    STRONG_BUY = "STRONG BUY"
    BUY = "BUY"
    HOLD = "HOLD"
    CONSIDER_SELL = "CONSIDER SELL"
    SELL = "SELL"


class StrategyVerdict(BaseModel):
    """Advisor output: a verdict label, a one-sentence rationale and a badge style."""

    model_config = ConfigDict(frozen=True)

    verdict: Verdict
    rationale: str
    badge_color: str

    @field_validator("rationale")
    @classmethod
    def validate_rationale_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("rationale must not be empty.")
        return v


class ForecastRequest(BaseModel):
    """Input to ``run_forecast``.

    ``historical_prices`` is optional; when absent a synthetic window is
    generated around ``current_price``.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str = "DEMO"
    current_price: float
    days: int
    selection: ModelSelection = ModelSelection.ENSEMBLE
    historical_prices: Optional[tuple[float, ...]] = None

    @field_validator("current_price")
    @classmethod
    def validate_current_price(cls, v: float) -> float:
        if not v > 0:
            raise ValueError(f"current_price must be > 0, got {v}.")
        return v

    @field_validator("days")
    @classmethod
    def validate_days(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"days must be >= 1, got {v}.")
        return v


class ForecastResult(BaseModel):
    """Everything produced for one forecast request.

    ``runs`` is keyed by ``ModelSelection`` value.  A single-archetype
    request carries one run; an ensemble request carries ``"ensemble"``
    plus one run per archetype.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    current_price: float
    days: int
    selection: ModelSelection
    snapshot: TechnicalSnapshot
    runs: dict[str, tuple[PredictionPoint, ...]]
    metrics: PerformanceMetrics
    feature_importance: tuple[FeatureImportance, ...]
    market_factors: MarketFactors
    verdict: StrategyVerdict

    @model_validator(mode="after")
    def validate_primary_run(self) -> "ForecastResult":
        run = self.runs.get(self.selection.value)
        if run is None:
            raise ValueError(f"runs must contain the selected model '{self.selection.value}'.")
        if len(run) != self.days:
            raise ValueError(f"primary run has {len(run)} points, expected {self.days}.")
        return self

    @property
    def primary(self) -> tuple[PredictionPoint, ...]:
        """The run for the selected model."""
        return self.runs[self.selection.value]

    @property
    def final_point(self) -> PredictionPoint:
        return self.primary[-1]
