"""
Tests for stock_forecaster/forecasting/engine.py.

What we test
------------
run_forecast():
  - Single-archetype requests carry one run; ensemble requests carry four.
  - The verdict is computed from the primary run's final point.
  - Supplied historical prices seed the run; otherwise a window is synthesized.
  - Uptrend scenario: momentum forecasts rise on average over 100 seeds.
  - High-volatility scenario: confidence pinned to the floor, drawdown up.
  - Seeded requests reproduce exactly.
"""

from __future__ import annotations

import random
import statistics

import pytest
from pydantic import ValidationError

from stock_forecaster.forecasting.engine import run_forecast
from stock_forecaster.models.forecast import ForecastRequest
from stock_forecaster.recommendations.strategy import determine_verdict, percent_change
from stock_forecaster.taxonomy.archetype_taxonomy import ModelSelection

UPTREND = (1400.0, 1410.0, 1420.0, 1415.0, 1430.0)


def _request(**overrides) -> ForecastRequest:
    values = dict(symbol="TCS.NS", current_price=1400.0, days=7)
    values.update(overrides)
    return ForecastRequest(**values)


class TestRunForecast:
    def test_single_archetype_result(self, rng, start_date):
        result = run_forecast(
            _request(selection=ModelSelection.MOMENTUM), rng=rng, start_date=start_date
        )
        assert list(result.runs) == ["momentum"]
        assert len(result.primary) == 7
        assert result.final_point is result.primary[-1]

    def test_ensemble_result_carries_members(self, rng, start_date):
        result = run_forecast(_request(), rng=rng, start_date=start_date)
        assert result.selection is ModelSelection.ENSEMBLE
        assert set(result.runs) == {
            "ensemble", "momentum", "contextual_trend", "indicator_reversion",
        }

    def test_verdict_matches_final_point(self, rng, start_date):
        result = run_forecast(_request(days=30), rng=rng, start_date=start_date)
        final = result.final_point
        change = percent_change(final.predicted_price, result.current_price)
        expected = determine_verdict(change, final.confidence, final.volatility_score)
        assert result.verdict.verdict is expected

    def test_supplied_history_drives_snapshot(self, rng, start_date):
        result = run_forecast(
            _request(historical_prices=UPTREND), rng=rng, start_date=start_date
        )
        assert result.snapshot.rsi == pytest.approx(87.5)
        assert result.snapshot.support == pytest.approx(1358.0)

    def test_history_points_sets_synthetic_window(self, rng, start_date):
        result = run_forecast(_request(), rng=rng, start_date=start_date, history_points=2)
        assert result.snapshot.sma20 > 0

    def test_seeded_runs_reproduce(self, start_date):
        a = run_forecast(_request(), rng=random.Random(11), start_date=start_date)
        b = run_forecast(_request(), rng=random.Random(11), start_date=start_date)
        assert a == b

    def test_default_rng_and_date(self):
        result = run_forecast(_request(days=1))
        assert len(result.primary) == 1

    def test_invalid_request_rejected(self):
        with pytest.raises(ValidationError):
            _request(current_price=0.0)
        with pytest.raises(ValidationError):
            _request(days=0)


class TestScenarios:
    def test_uptrend_momentum_rises_on_average(self, start_date):
        finals = []
        for seed in range(100):
            result = run_forecast(
                _request(selection=ModelSelection.MOMENTUM, historical_prices=UPTREND),
                rng=random.Random(seed),
                start_date=start_date,
            )
            finals.append(result.final_point.predicted_price)
            assert result.metrics.directional_accuracy > 82
        assert statistics.fmean(finals) > 1400.0

    def test_high_volatility_pulls_confidence_to_floor(self, rng, start_date):
        choppy = tuple(1100.0 if i % 2 else 1000.0 for i in range(30))
        calm = run_forecast(
            _request(selection=ModelSelection.MOMENTUM, days=3, historical_prices=UPTREND),
            rng=rng, start_date=start_date,
        )
        wild = run_forecast(
            _request(selection=ModelSelection.MOMENTUM, days=3, historical_prices=choppy),
            rng=rng, start_date=start_date,
        )
        assert wild.final_point.confidence == 68
        assert wild.final_point.confidence < calm.final_point.confidence
        assert wild.metrics.max_drawdown > calm.metrics.max_drawdown
