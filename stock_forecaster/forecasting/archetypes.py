"""
Archetype models: the closed set of synthetic predictors.

Every archetype follows the same contract:
  1. Carry a fixed ``ArchetypeParams`` tuple as a class attribute.
  2. Carry the feature-importance boosts it applies on top of the base map.
  3. Implement ``price_change(ctx, rng) -> float``: the fractional move for
     one simulated day, given the day's ``StepContext``.

``price_change`` reads nothing but its arguments.  The predictor owns the
day loop and the state it threads through it.

Usage::

    for model in ARCHETYPE_MODELS:
        change = model.price_change(ctx, rng)

Parameter table (volatility multiplier, trend strength, base confidence,
accuracy bonus, sharpe bonus)::

    momentum             1.8  0.0045  85   2  -0.1
    contextual_trend     1.3  0.005   91   1   0.2
    indicator_reversion  1.6  0.0035  87  -1   0.1
    ensemble             1.5  0.004   92   3   0.3
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar

from stock_forecaster.forecasting.random_source import RandomSource
from stock_forecaster.taxonomy.archetype_taxonomy import ModelArchetype, ModelSelection


@dataclass(frozen=True)
class ArchetypeParams:
    """Hand-tuned constants for one model selection.

    Attributes:
        volatility_multiplier: Scale applied to the day's random component.
        trend_strength:        Drift per day for the contextual-trend model.
        base_confidence:       Day-0 confidence before decay and penalty.
        accuracy_bonus:        Added to directional accuracy and win rate.
        sharpe_bonus:          Added to the Sharpe ratio.
    """

    volatility_multiplier: float
    trend_strength: float
    base_confidence: float
    accuracy_bonus: float
    sharpe_bonus: float


@dataclass(frozen=True)
class StepContext:
    """Inputs to one day's transition.

    Attributes:
        day:              1-based index of the simulated day.
        price:            Simulated price entering the day.
        rsi:              Simulated RSI entering the day.
        current_price:    Seed price the run started from.
        trend_strength:   Trailing five-point trend strength, in [-1, 1].
        direction:        Sign of the seed window's overall move.
        time_decay:       ``exp(-day / 30)``.
        random_component: ``U(-0.5, 0.5) * sigma * sqrt(day / 252)``.
        mean_reversion:   0.001 per percentage point the price sits below
                          ``current_price`` (negative above it).
    """

    day: int
    price: float
    rsi: float
    current_price: float
    trend_strength: float
    direction: int
    time_decay: float
    random_component: float
    mean_reversion: float


class ArchetypeModel(ABC):
    """Abstract base for the synthetic predictors.

    Subclasses must set ``archetype``, ``params`` and ``feature_boosts`` and
    implement ``price_change``.
    """

    archetype: ClassVar[ModelArchetype]
    params: ClassVar[ArchetypeParams]
    feature_boosts: ClassVar[dict[str, float]]

    @abstractmethod
    def price_change(self, ctx: StepContext, rng: RandomSource) -> float:
        """Fractional price change for the day described by ``ctx``."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class MomentumModel(ArchetypeModel):
    """Extrapolates recent directional consistency (UI: LSTM)."""

    archetype = ModelArchetype.MOMENTUM
    params = ArchetypeParams(1.8, 0.0045, 85, 2, -0.1)
    feature_boosts = {"Momentum (20D)": 10, "RSI (14D)": 5}

    def price_change(self, ctx: StepContext, rng: RandomSource) -> float:
        momentum = ctx.trend_strength * 0.01
        return (
            momentum * ctx.time_decay
            + ctx.random_component * self.params.volatility_multiplier
            + ctx.mean_reversion
        )


class ContextualTrendModel(ArchetypeModel):
    """Follows the long-run direction of the seed window (UI: Transformer)."""

    archetype = ModelArchetype.CONTEXTUAL_TREND
    params = ArchetypeParams(1.3, 0.005, 91, 1, 0.2)
    feature_boosts = {"Macro Economic Factors": 15, "Fundamental Strength": 10}

    def price_change(self, ctx: StepContext, rng: RandomSource) -> float:
        contextual = ctx.direction * self.params.trend_strength * (1.2 - rng.uniform(0.0, 0.4))
        return (
            contextual * ctx.time_decay
            + ctx.random_component * self.params.volatility_multiplier * 0.8
            + ctx.mean_reversion
        )


class IndicatorReversionModel(ArchetypeModel):
    """Pulls the path back toward RSI 50 (UI: XGBoost)."""

    archetype = ModelArchetype.INDICATOR_REVERSION
    params = ArchetypeParams(1.6, 0.0035, 87, -1, 0.1)
    feature_boosts = {"Trading Volume": 10, "Volatility Index": 8}

    def price_change(self, ctx: StepContext, rng: RandomSource) -> float:
        rsi_influence = (50 - ctx.rsi) * 0.0002
        return (
            rsi_influence
            + ctx.random_component * self.params.volatility_multiplier * 1.2
            + ctx.mean_reversion
        )


# Iteration order is the ensemble's member order; the first member supplies
# the pass-through fields of each ensemble point.
ARCHETYPE_MODELS: tuple[ArchetypeModel, ...] = (
    MomentumModel(),
    ContextualTrendModel(),
    IndicatorReversionModel(),
)

ENSEMBLE_PARAMS = ArchetypeParams(1.5, 0.004, 92, 3, 0.3)

_BY_ARCHETYPE: dict[ModelArchetype, ArchetypeModel] = {m.archetype: m for m in ARCHETYPE_MODELS}


def model_for(archetype: ModelArchetype) -> ArchetypeModel:
    """Return the registered model for ``archetype``."""
    return _BY_ARCHETYPE[archetype]


def params_for(selection: ModelSelection) -> ArchetypeParams:
    """Parameter tuple for a selection; the ensemble has its own."""
    if selection.archetype is None:
        return ENSEMBLE_PARAMS
    return model_for(selection.archetype).params


def feature_boosts_for(selection: ModelSelection) -> dict[str, float]:
    """Feature-importance boosts for a selection; the ensemble applies none."""
    if selection.archetype is None:
        return {}
    return dict(model_for(selection.archetype).feature_boosts)
