"""
Tests for stock_forecaster/forecasting/metrics.py.

What we test
------------
compute_performance_metrics():
  - Closed-form values with a fixed random source.
  - Trend strength raises directional accuracy; only its magnitude counts.
  - Caps at 95 (accuracy) and 92 (win rate).

feature_importance():
  - Seven features, sorted, clamped to [30, 100].
  - Archetype boosts applied; the ensemble gets none.

market_factors():
  - technical_score peaks at RSI 50; jittered scores stay in range.
"""

from __future__ import annotations

import random

import pytest

from stock_forecaster.forecasting.archetypes import ENSEMBLE_PARAMS, ArchetypeParams, params_for
from stock_forecaster.forecasting.metrics import (
    BASE_FEATURE_IMPORTANCE,
    compute_performance_metrics,
    feature_importance,
    market_factors,
)
from stock_forecaster.taxonomy.archetype_taxonomy import ModelSelection


class TestPerformanceMetrics:
    def test_closed_form_values(self, midpoint_rng):
        m = compute_performance_metrics(0.2, 0.5, ENSEMBLE_PARAMS, midpoint_rng)
        assert m.mape == pytest.approx(4.5)
        assert m.rmse == pytest.approx(160.0)
        assert m.directional_accuracy == pytest.approx(88.4)
        assert m.sharpe_ratio == pytest.approx(1.9)
        assert m.max_drawdown == pytest.approx(6.4)
        assert m.win_rate == pytest.approx(83.8)
        assert m.avg_return == pytest.approx(11.0)

    def test_trend_strength_magnitude_only(self, midpoint_rng):
        params = params_for(ModelSelection.MOMENTUM)
        up = compute_performance_metrics(0.1, 0.6, params, midpoint_rng)
        down = compute_performance_metrics(0.1, -0.6, params, midpoint_rng)
        assert up.directional_accuracy == down.directional_accuracy

    def test_positive_trend_beats_baseline(self, rng):
        m = compute_performance_metrics(0.08, 0.5, params_for(ModelSelection.MOMENTUM), rng)
        assert m.directional_accuracy > 82

    def test_higher_volatility_raises_drawdown(self, rng):
        calm = compute_performance_metrics(0.05, 0.0, ENSEMBLE_PARAMS, rng)
        wild = compute_performance_metrics(1.5, 0.0, ENSEMBLE_PARAMS, rng)
        assert wild.max_drawdown > calm.max_drawdown
        assert wild.mape > calm.mape

    def test_caps(self, rng):
        generous = ArchetypeParams(1.0, 0.0, 90, 50, 0.0)
        m = compute_performance_metrics(0.0, 1.0, generous, rng)
        assert m.directional_accuracy == 95.0
        assert m.win_rate == 92.0


class TestFeatureImportance:
    @pytest.mark.parametrize("selection", list(ModelSelection))
    def test_shape_and_ordering(self, selection, rng):
        features = feature_importance(selection, rng)
        assert {f.name for f in features} == set(BASE_FEATURE_IMPORTANCE)
        values = [f.importance for f in features]
        assert values == sorted(values, reverse=True)
        assert all(30 <= v <= 100 for v in values)

    def test_ensemble_midpoint_is_base_map(self, midpoint_rng):
        features = {f.name: f.importance for f in feature_importance(ModelSelection.ENSEMBLE, midpoint_rng)}
        assert features == {k: round(v) for k, v in BASE_FEATURE_IMPORTANCE.items()}

    def test_archetype_boosts(self, midpoint_rng):
        features = {
            f.name: f.importance
            for f in feature_importance(ModelSelection.CONTEXTUAL_TREND, midpoint_rng)
        }
        assert features["Macro Economic Factors"] == 73
        assert features["Fundamental Strength"] == 62
        assert features["Momentum (20D)"] == 85

    def test_boosted_values_clamped_to_100(self):
        top = random.Random()
        top.uniform = lambda a, b: b  # type: ignore[method-assign]
        features = {
            f.name: f.importance for f in feature_importance(ModelSelection.MOMENTUM, top)
        }
        assert features["Momentum (20D)"] == 100


class TestMarketFactors:
    def test_technical_score_peaks_at_rsi_fifty(self, midpoint_rng):
        centred = market_factors(50.0, 0.0, midpoint_rng)
        stretched = market_factors(80.0, 0.0, midpoint_rng)
        assert centred.technical_score == pytest.approx(80.0)
        assert stretched.technical_score == pytest.approx(71.0)

    def test_jittered_scores_within_range(self, rng):
        for _ in range(50):
            f = market_factors(55.0, 0.4, rng)
            assert 72 <= f.fundamental_score <= 88
            assert 68 <= f.volume_score <= 88
            assert 62 <= f.macro_score <= 86
