"""
Synthetic performance metrics, feature importance and market-factor scores.

None of these figures come from comparing predictions to outcomes.  They
are closed-form functions of the seed window's volatility ``sigma`` (the
snapshot volatility, or 0.02 when that is zero), the absolute trend
strength ``T`` and the selected model's parameter tuple:

    mape                  = 2.1 + sigma*12
    rmse                  = sigma*800
    directional_accuracy  = min(95, 82 + T*10 - sigma*8 + accuracy_bonus)
    sharpe_ratio          = 1.6 + T*0.6 - sigma*1.5 + sharpe_bonus
    max_drawdown          = 4 + sigma*12
    win_rate              = min(92, 76 + T*12 - sigma*6 + accuracy_bonus)
    avg_return            = T*18 + U(0, 4)

Every value is rounded to 2 dp.
"""

from __future__ import annotations

from stock_forecaster.forecasting.archetypes import (
    ArchetypeParams,
    feature_boosts_for,
)
from stock_forecaster.forecasting.random_source import RandomSource
from stock_forecaster.models.forecast import FeatureImportance, MarketFactors, PerformanceMetrics
from stock_forecaster.taxonomy.archetype_taxonomy import ModelSelection

BASE_FEATURE_IMPORTANCE: dict[str, float] = {
    "Momentum (20D)": 85,
    "Market Sentiment": 78,
    "RSI (14D)": 72,
    "Volatility Index": 65,
    "Macro Economic Factors": 58,
    "Trading Volume": 45,
    "Fundamental Strength": 52,
}

FEATURE_JITTER = 7.5
MIN_IMPORTANCE = 30
MAX_IMPORTANCE = 100


def compute_performance_metrics(
    sigma: float,
    trend_strength: float,
    params: ArchetypeParams,
    rng: RandomSource,
) -> PerformanceMetrics:
    """Closed-form trading metrics for one model.

    Args:
        sigma:          Effective volatility of the seed window.
        trend_strength: Signed trend strength; only its magnitude is used.
        params:         Parameter tuple of the selected model.
        rng:            Source for the ``avg_return`` jitter.
    """
    t = abs(trend_strength)
    return PerformanceMetrics(
        mape=round(2.1 + sigma * 12, 2),
        rmse=round(sigma * 800, 2),
        directional_accuracy=min(
            95.0, round(82 + t * 10 - sigma * 8 + params.accuracy_bonus, 2)
        ),
        sharpe_ratio=round(1.6 + t * 0.6 - sigma * 1.5 + params.sharpe_bonus, 2),
        max_drawdown=round(4 + sigma * 12, 2),
        win_rate=min(92.0, round(76 + t * 12 - sigma * 6 + params.accuracy_bonus, 2)),
        avg_return=round(t * 18 + rng.uniform(0.0, 4.0), 2),
    )


def feature_importance(
    selection: ModelSelection,
    rng: RandomSource,
) -> tuple[FeatureImportance, ...]:
    """Jittered, archetype-boosted feature ranking, most important first.

    Each base value gets ``U(-7.5, 7.5)`` (capped at 100), then the
    selection's boosts are added and the result clamped to [30, 100].
    """
    boosts = feature_boosts_for(selection)
    scored: list[FeatureImportance] = []
    for name, base in BASE_FEATURE_IMPORTANCE.items():
        value = min(MAX_IMPORTANCE, base + rng.uniform(-FEATURE_JITTER, FEATURE_JITTER))
        value += boosts.get(name, 0)
        value = min(MAX_IMPORTANCE, max(MIN_IMPORTANCE, value))
        scored.append(FeatureImportance(name=name, importance=round(value)))
    return tuple(sorted(scored, key=lambda f: f.importance, reverse=True))


def market_factors(
    rsi: float,
    trend_strength: float,
    rng: RandomSource,
) -> MarketFactors:
    """Headline factor scores around the forecast.

    ``technical_score`` rewards a strong trend and an RSI near 50; the other
    scores are a trend-weighted base plus jitter.
    """
    t = abs(trend_strength)
    rsi = rsi or 50.0
    return MarketFactors(
        technical_score=round(65 + t * 25 + (50 - abs(rsi - 50)) * 0.3, 2),
        fundamental_score=round(72 + rng.uniform(0.0, 16.0), 2),
        sentiment_score=round(60 + t * 20 + rng.uniform(0.0, 12.0), 2),
        market_regime_score=round(55 + t * 30 + rng.uniform(0.0, 8.0), 2),
        volume_score=round(68 + rng.uniform(0.0, 20.0), 2),
        macro_score=round(62 + rng.uniform(0.0, 24.0), 2),
    )
