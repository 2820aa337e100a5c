"""
Tests for stock_forecaster/forecasting/predictor.py and archetypes.py.

What we test
------------
SingleModelPredictor.predict():
  - Exactly ``days`` points, dated start+1 .. start+days.
  - Bands ordered and non-negative for every archetype and volatility level.
  - RSI stays within [25, 75].
  - Confidence never rises with the day index and never drops below 68.
  - High-volatility windows pin confidence to the floor.
  - Seeded runs reproduce; runs do not mutate the predictor.

Archetype transitions:
  - With every random draw at its midpoint the moves are closed-form.
"""

from __future__ import annotations

import math
import random
from datetime import timedelta

import pytest

from stock_forecaster.forecasting.archetypes import (
    ARCHETYPE_MODELS,
    ContextualTrendModel,
    IndicatorReversionModel,
    MomentumModel,
    StepContext,
    model_for,
)
from stock_forecaster.forecasting.predictor import (
    SingleModelPredictor,
    classify_change,
    day_confidence,
)
from stock_forecaster.models.market import HistoricalSeries
from stock_forecaster.taxonomy.archetype_taxonomy import ModelArchetype


def _ctx(**overrides) -> StepContext:
    values = dict(
        day=1, price=1000.0, rsi=50.0, current_price=1000.0, trend_strength=0.5,
        direction=1, time_decay=math.exp(-1 / 30), random_component=0.0, mean_reversion=0.0,
    )
    values.update(overrides)
    return StepContext(**values)


# ── Archetype transitions ─────────────────────────────────────────────────────

class TestArchetypeTransitions:
    def test_momentum_follows_trend_strength(self, midpoint_rng):
        ctx = _ctx()
        assert MomentumModel().price_change(ctx, midpoint_rng) == pytest.approx(
            0.5 * 0.01 * ctx.time_decay
        )

    def test_contextual_trend_midpoint_jitter(self, midpoint_rng):
        ctx = _ctx(direction=-1)
        # 1.2 - U(0, 0.4) at the midpoint is exactly 1.0.
        assert ContextualTrendModel().price_change(ctx, midpoint_rng) == pytest.approx(
            -0.005 * ctx.time_decay
        )

    def test_reversion_pulls_rsi_toward_fifty(self, midpoint_rng):
        model = IndicatorReversionModel()
        assert model.price_change(_ctx(rsi=70.0), midpoint_rng) == pytest.approx(-0.004)
        assert model.price_change(_ctx(rsi=30.0), midpoint_rng) == pytest.approx(0.004)

    def test_random_component_scaled_per_archetype(self, midpoint_rng):
        ctx = _ctx(trend_strength=0.0, direction=0, random_component=0.01)
        assert MomentumModel().price_change(ctx, midpoint_rng) == pytest.approx(0.018)
        assert ContextualTrendModel().price_change(ctx, midpoint_rng) == pytest.approx(0.0104)
        assert IndicatorReversionModel().price_change(
            _ctx(trend_strength=0.0, random_component=0.01), midpoint_rng
        ) == pytest.approx(0.0192)

    def test_registry_order_and_lookup(self):
        assert [m.archetype for m in ARCHETYPE_MODELS] == [
            ModelArchetype.MOMENTUM,
            ModelArchetype.CONTEXTUAL_TREND,
            ModelArchetype.INDICATOR_REVERSION,
        ]
        assert isinstance(model_for(ModelArchetype.MOMENTUM), MomentumModel)


# ── Helpers ───────────────────────────────────────────────────────────────────

class TestDayConfidence:
    def test_linear_decay_before_floor(self):
        assert day_confidence(92, 1, 0.0) == pytest.approx(90.5)
        assert day_confidence(92, 4, 0.0) == pytest.approx(86.0)

    def test_volatility_penalty_capped_at_fifteen(self):
        assert day_confidence(92, 1, 10.0) == pytest.approx(75.5)

    def test_floor_at_sixty_eight(self):
        assert day_confidence(85, 30, 0.5) == 68.0

    def test_non_increasing_in_day(self):
        values = [day_confidence(91, d, 0.1) for d in range(1, 40)]
        assert all(b <= a for a, b in zip(values, values[1:]))


@pytest.mark.parametrize(
    "change, expected",
    [(0.0021, "up"), (0.002, "neutral"), (-0.002, "neutral"), (-0.0021, "down")],
)
def test_classify_change(change, expected):
    assert classify_change(change) == expected


# ── Predictor ─────────────────────────────────────────────────────────────────

class TestSingleModelPredictor:
    @pytest.mark.parametrize("days", [1, 7, 30, 90])
    @pytest.mark.parametrize("model", ARCHETYPE_MODELS, ids=lambda m: m.archetype.value)
    def test_point_count_and_dates(self, model, days, uptrend_series, rng, start_date):
        points = SingleModelPredictor(model, uptrend_series, 1430.0).predict(
            days, rng, start_date=start_date
        )
        assert len(points) == days
        assert points[0].date == start_date + timedelta(days=1)
        assert all(
            b.date - a.date == timedelta(days=1) for a, b in zip(points, points[1:])
        )

    @pytest.mark.parametrize("model", ARCHETYPE_MODELS, ids=lambda m: m.archetype.value)
    @pytest.mark.parametrize("fixture_name", ["uptrend_series", "flat_series", "choppy_series"])
    def test_invariants_hold_for_every_day(self, model, fixture_name, request, start_date):
        series = request.getfixturevalue(fixture_name)
        predictor = SingleModelPredictor(model, series, series.last)
        for seed in range(20):
            points = predictor.predict(90, random.Random(seed), start_date=start_date)
            for p in points:
                assert 0 <= p.lower_bound <= p.predicted_price <= p.upper_bound
                assert 25 <= p.rsi <= 75
                assert 68 <= p.confidence <= 99
            confidences = [p.confidence for p in points]
            assert all(b <= a for a, b in zip(confidences, confidences[1:]))

    def test_high_volatility_pins_confidence_to_floor(self, choppy_series, rng, start_date):
        predictor = SingleModelPredictor(MomentumModel(), choppy_series, 1000.0)
        points = predictor.predict(7, rng, start_date=start_date)
        assert predictor.sigma > 1.0
        assert points[-1].confidence == 68
        assert all(p.volatility_score == 65 for p in points)

    def test_calm_window_keeps_higher_confidence(self, uptrend_series, rng, start_date):
        predictor = SingleModelPredictor(ContextualTrendModel(), uptrend_series, 1430.0)
        points = predictor.predict(3, rng, start_date=start_date)
        assert points[0].confidence > 80

    def test_seeded_runs_reproduce(self, uptrend_series, start_date):
        predictor = SingleModelPredictor(MomentumModel(), uptrend_series, 1430.0)
        a = predictor.predict(10, random.Random(9), start_date=start_date)
        b = predictor.predict(10, random.Random(9), start_date=start_date)
        assert a == b

    def test_noise_free_momentum_run_rises(self, uptrend_series, midpoint_rng, start_date):
        predictor = SingleModelPredictor(MomentumModel(), uptrend_series, 1430.0)
        points = predictor.predict(5, midpoint_rng, start_date=start_date)
        prices = [p.predicted_price for p in points]
        assert all(b > a for a, b in zip(prices, prices[1:]))
        assert all(p.trend == "up" for p in points)
        # Momentum score: 50 + 0.5*100 + U(0, 20) midpoint.
        assert all(p.momentum_score == 110 for p in points)

    def test_rsi_drifts_with_price_direction(self, uptrend_series, midpoint_rng, start_date):
        predictor = SingleModelPredictor(MomentumModel(), uptrend_series, 1430.0)
        points = predictor.predict(3, midpoint_rng, start_date=start_date)
        # Snapshot RSI 87.5 → +1 → clamped to 75.
        assert all(p.rsi == 75 for p in points)

    def test_support_and_resistance_from_snapshot(self, uptrend_series, rng, start_date):
        points = SingleModelPredictor(MomentumModel(), uptrend_series, 1430.0).predict(
            2, rng, start_date=start_date
        )
        assert points[0].support == pytest.approx(1358.0)
        assert points[0].resistance == pytest.approx(1472.9)

    def test_price_never_crosses_zero(self, start_date):
        series = HistoricalSeries(prices=tuple(10.0 if i % 2 else 0.5 for i in range(30)))
        predictor = SingleModelPredictor(IndicatorReversionModel(), series, 0.5)
        for seed in range(10):
            for p in predictor.predict(90, random.Random(seed), start_date=start_date):
                assert p.predicted_price >= 0.0
                assert p.lower_bound >= 0.0

    def test_empty_series_uses_defaults(self, rng, start_date):
        predictor = SingleModelPredictor(MomentumModel(), HistoricalSeries(), 500.0)
        points = predictor.predict(3, rng, start_date=start_date)
        assert len(points) == 3
        assert predictor.sigma == pytest.approx(0.02)

    def test_non_positive_price_raises(self, uptrend_series):
        with pytest.raises(ValueError, match="current_price"):
            SingleModelPredictor(MomentumModel(), uptrend_series, 0.0)

    def test_zero_days_raises(self, uptrend_series, rng):
        with pytest.raises(ValueError, match="days"):
            SingleModelPredictor(MomentumModel(), uptrend_series, 1430.0).predict(0, rng)
